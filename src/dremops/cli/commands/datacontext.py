"""Commands for assembling a data context from catalog selections."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer

from dremops.cli.commands.catalog import locate_or_exit
from dremops.cli.common.context import AppContext, build_app_context, open_workbench
from dremops.cli.common.exits import exit_from_exc, warn_exit
from dremops.cli.common.options import (
    DepthOpt,
    EndpointOpt,
    FormatOpt,
    InsecureOpt,
    NotesOpt,
    PatOpt,
    PickOpt,
    VerboseOpt,
)
from dremops.cli.common.output import out
from dremops.cli.tui import select_nodes
from dremops.core.annotations import TableAnnotation, load_annotations
from dremops.core.context import DataContext, render_markdown, summarize
from dremops.core.nodes import CatalogNode
from dremops.core.result import Err

context_app = typer.Typer(
    help="Assemble table/column context from catalog selections.",
    no_args_is_help=False,
    invoke_without_command=True,
)

_FORMATS = ("table", "json", "markdown")


@context_app.callback()
def _init(
    ctx: typer.Context,
    endpoint: str | None = EndpointOpt,
    pat: str | None = PatOpt,
    insecure: bool = InsecureOpt,
    verbose: bool = VerboseOpt,
):
    """Initialize context commands."""
    ctx.obj = build_app_context(
        endpoint=endpoint, pat=pat, insecure=insecure, verbose=verbose
    )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


def _read_notes(notes: Path | None) -> dict[str, TableAnnotation] | None:
    if notes is None:
        return None
    try:
        return load_annotations(notes)
    except (OSError, ValueError) as exc:
        exit_from_exc(exc, message=f"Could not read notes from {notes}: {exc}", code=2)


async def _pick_within(wb, nodes: list[CatalogNode]) -> list[CatalogNode]:
    """Replace each container with the children the user picks inside it."""
    picked: list[CatalogNode] = []
    for node in nodes:
        if not node.is_container:
            picked.append(node)
            continue
        expanded = await wb.tree.expand(node)
        if isinstance(expanded, Err):
            out.warn(f"{node.full_path}: {expanded.error.describe()}")
            continue
        children = [c for c in expanded.value if c.is_container or c.is_dataset]
        if not children:
            out.warn(f"{node.full_path} is empty.")
            continue
        picked.extend(await select_nodes(children, message=f"Select items in {node.full_path}:"))
    return picked


def _emit(context: DataContext, items, fmt: str) -> None:
    if fmt == "json":
        out.print_json(json.dumps(context.to_payload()))
        return
    if fmt == "markdown":
        typer.echo(render_markdown(context))
        return

    out.selection_table(items)
    counts = summarize(context)
    out.kv(
        {
            "Tables": counts["tables"],
            "Containers": counts["containers"],
            "Columns": counts["columns"],
        }
    )


async def _build(
    appctx: AppContext,
    paths: list[str],
    notes: Path | None,
    fmt: str,
    pick: bool,
    depth: int | None,
) -> None:
    annotations = _read_notes(notes)
    async with open_workbench(appctx, annotations=annotations) as wb:
        if depth:
            wb.selection.container_depth = depth

        nodes = [await locate_or_exit(wb.tree, p) for p in paths]
        if pick:
            nodes = await _pick_within(wb, nodes)
            if not nodes:
                warn_exit("Nothing selected.")

        unselectable = [n.full_path for n in nodes if not (n.is_container or n.is_dataset)]
        if unselectable:
            out.warn(f"Skipping items that are neither containers nor datasets: {', '.join(unselectable)}")
        nodes = [n for n in nodes if n.is_container or n.is_dataset]
        if not nodes:
            warn_exit("Nothing to select.", code=2)

        wb.selection.select_many(nodes)
        with out.status(f"Resolving {len(nodes)} item(s)..."):
            await wb.selection.wait_idle()

        context = wb.context
        items = wb.selection.items

    _emit(context, items, fmt)


@context_app.command("build")
def build(
    ctx: typer.Context,
    paths: list[str] = typer.Argument(..., help="Dotted paths of datasets or containers"),
    notes: Path | None = NotesOpt,
    fmt: str = FormatOpt,
    pick: bool = PickOpt,
    depth: int | None = DepthOpt,
):
    """Select catalog items and print the resulting data context."""
    fmt = fmt.lower()
    if fmt not in _FORMATS:
        raise typer.BadParameter(f"Format must be one of: {', '.join(_FORMATS)}")
    asyncio.run(_build(ctx.obj, paths, notes, fmt, pick, depth))
