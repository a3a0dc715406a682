"""Commands for browsing the Dremio catalog."""

from __future__ import annotations

import asyncio

import typer

from dremops.cli.common.context import AppContext, build_app_context, open_workbench
from dremops.cli.common.exits import die, warn_exit
from dremops.cli.common.options import (
    DepthOpt,
    EndpointOpt,
    InsecureOpt,
    PatOpt,
    VerboseOpt,
)
from dremops.cli.common.output import out
from dremops.core.catalog import CatalogTreeCache
from dremops.core.nodes import CatalogNode
from dremops.core.result import Err

catalog_app = typer.Typer(
    help="Browse the Dremio catalog.",
    no_args_is_help=False,
    invoke_without_command=True,
)


@catalog_app.callback()
def _init(
    ctx: typer.Context,
    endpoint: str | None = EndpointOpt,
    pat: str | None = PatOpt,
    insecure: bool = InsecureOpt,
    verbose: bool = VerboseOpt,
):
    """Initialize catalog context."""
    ctx.obj = build_app_context(
        endpoint=endpoint, pat=pat, insecure=insecure, verbose=verbose
    )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


async def locate_or_exit(tree: CatalogTreeCache, path: str) -> CatalogNode:
    """Resolve a dotted catalog path, exiting when it cannot be found."""
    with out.status(f"Looking up {path}..."):
        located = await tree.locate(path)
    if isinstance(located, Err):
        die(f"Could not load catalog: {located.error.describe()}", code=1)
    if located.value is None:
        die(f"Catalog item '{path}' does not exist.", code=1)
    return located.value


async def _list(appctx: AppContext, path: str | None) -> None:
    async with open_workbench(appctx) as wb:
        if not path:
            with out.status("Loading catalog..."):
                listed = await wb.tree.list_top()
            if isinstance(listed, Err):
                die(f"Could not load catalog: {listed.error.describe()}", code=1)
            nodes = listed.value
            title = "Catalog"
        else:
            node = await locate_or_exit(wb.tree, path)
            if node.is_dataset:
                fields = await wb.tree.load_fields(node)
                out.fields_table(fields, title=node.full_path)
                return
            if not node.is_container:
                warn_exit(f"'{path}' is a {node.kind.value.lower()} and has no children.")
            with out.status("Loading children..."):
                expanded = await wb.tree.expand(node)
            if isinstance(expanded, Err):
                out.error(f"Failed to load children: {expanded.error.describe()}")
                raise typer.Exit(1)
            nodes = expanded.value
            title = node.full_path

    if not nodes:
        warn_exit("Empty.")
    out.nodes_table(nodes, title=title)


@catalog_app.command("ls")
def ls(
    ctx: typer.Context,
    path: str | None = typer.Argument(
        None, help="Dotted path of a container or dataset (default: top level)"
    ),
):
    """List top-level catalog entries or the children of a container."""
    asyncio.run(_list(ctx.obj, path))


async def _schema(appctx: AppContext, path: str) -> None:
    async with open_workbench(appctx) as wb:
        node = await locate_or_exit(wb.tree, path)
        if not node.is_dataset:
            warn_exit(f"'{path}' is not a dataset.", code=2)
        with out.status("Loading fields..."):
            fields = await wb.tree.load_fields(node)

    if not fields:
        warn_exit("No columns found.")
    out.header(node.full_path)
    out.kv({"Type": node.dataset_kind or "-", "Columns": len(fields)})
    out.fields_table(fields, title="Fields")


@catalog_app.command("schema")
def schema(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Dotted path of a dataset"),
):
    """Show the columns of a dataset."""
    asyncio.run(_schema(ctx.obj, path))


async def _expand_levels(tree: CatalogTreeCache, nodes: tuple[CatalogNode, ...], depth: int) -> None:
    """Expand containers breadth-first; siblings are fetched concurrently."""
    level = [n for n in nodes if n.is_container]
    for _ in range(depth):
        if not level:
            return
        results = await asyncio.gather(*(tree.expand(n) for n in level))
        next_level: list[CatalogNode] = []
        for node, result in zip(level, results):
            if isinstance(result, Err):
                out.warn(f"{node.full_path}: {result.error.describe()}")
                continue
            next_level.extend(c for c in result.value if c.is_container)
        level = next_level


async def _tree(appctx: AppContext, path: str | None, depth: int) -> None:
    async with open_workbench(appctx) as wb:
        if path:
            root = await locate_or_exit(wb.tree, path)
            with out.status("Loading tree..."):
                await _expand_levels(wb.tree, (root,), depth)
            roots = (wb.tree.find(root.id) or root,)
            title = root.full_path
        else:
            with out.status("Loading tree..."):
                listed = await wb.tree.list_top()
                if isinstance(listed, Err):
                    die(f"Could not load catalog: {listed.error.describe()}", code=1)
                await _expand_levels(wb.tree, listed.value, depth - 1)
            roots = wb.tree.roots
            title = "Catalog"

    out.catalog_tree(roots, title=title)


@catalog_app.command("tree")
def tree(
    ctx: typer.Context,
    path: str | None = typer.Argument(None, help="Dotted path of a container"),
    depth: int | None = DepthOpt,
):
    """Show the catalog as a tree, expanding containers to a given depth."""
    appctx: AppContext = ctx.obj
    asyncio.run(_tree(appctx, path, depth or appctx.settings.container_depth))
