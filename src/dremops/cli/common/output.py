"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from rich.console import Console
from rich.table import Table
from rich.theme import Theme
from rich.tree import Tree

from dremops.core.nodes import CatalogNode, Field, LoadState

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)

_STATE_STYLE = {
    "SUCCEEDED": "ok",
    "FAILED": "err",
    "CANCELED": "err",
    "TIMED_OUT": "err",
}


def node_kind_label(node: Any) -> str:
    """Short kind label: container sub-type, `view`/`table`, or the raw kind."""
    kind = getattr(node, "kind", None)
    kind_value = getattr(kind, "value", str(kind or ""))
    if kind_value == "CONTAINER":
        return (getattr(node, "container_kind", None) or "container").lower()
    if kind_value == "DATASET":
        return "view" if getattr(node, "dataset_kind", None) == "VIRTUAL" else "table"
    return kind_value.lower()


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def print_json(self, data: str) -> None:
        """Pretty-print a JSON document."""
        console.print_json(data)

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def nodes_table(self, nodes: Iterable[CatalogNode], title: str = "Catalog") -> None:
        """
        Render catalog nodes.

        Expects objects with .full_path, .kind, .container_kind, .dataset_kind
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Name", style="ok")
        t.add_column("Kind", style="meta")
        t.add_column("Path")

        for n in nodes:
            t.add_row(n.name, node_kind_label(n), n.full_path)

        console.print(t)

    def fields_table(self, fields: Iterable[Field], title: str = "Fields") -> None:
        """Render dataset fields with formatted types."""
        t = Table(title=title, show_lines=False)
        t.add_column("Column", style="ok")
        t.add_column("Type", style="meta")

        for f in fields:
            t.add_row(f.name, f.type_display)

        console.print(t)

    def catalog_tree(self, roots: Iterable[CatalogNode], title: str = "Catalog") -> None:
        """Render the materialized part of the catalog as a tree."""
        tree = Tree(f"[title]{title}[/]")

        def _add(branch: Tree, node: CatalogNode) -> None:
            label = f"{node.name} [meta]({node_kind_label(node)})[/]"
            child = branch.add(label)
            if node.load_state == LoadState.LOADED and node.is_container and not node.children:
                child.add("[meta]Empty[/]")
            for c in node.children or ():
                _add(child, c)

        for r in roots:
            _add(tree, r)
        console.print(tree)

    def selection_table(self, items: Iterable[Any], title: str = "Selection") -> None:
        """
        Render the selection set.

        Expects objects with .path, .kind, .columns, .child_datasets
        (e.g. dremops.core.selection.SelectedItem)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Path", style="ok")
        t.add_column("Kind", style="meta")
        t.add_column("Datasets", justify="right")
        t.add_column("Columns", justify="right")

        for item in items:
            children = getattr(item, "child_datasets", None) or ()
            if getattr(item, "is_loading", False):
                t.add_row(item.path, node_kind_label(item), "[warn]loading[/]", "[warn]loading[/]")
                continue
            if children:
                columns = sum(len(d.columns) for d in children)
                datasets = str(len(children))
            else:
                columns = len(getattr(item, "columns", ()) or ())
                datasets = "-" if node_kind_label(item) in ("table", "view") else "0"
            t.add_row(item.path, node_kind_label(item), datasets, str(columns))

        console.print(t)

    def job_summary(self, job: Any) -> None:
        """Print state, job id and detail of a query job."""
        state = getattr(job.state, "value", str(job.state))
        style = _STATE_STYLE.get(state, "warn")
        self.kv(
            {
                "Job ID": job.job_id or "-",
                "State": f"[{style}]{state}[/{style}]",
                "Status checks": job.poll_attempts,
            }
        )
        if job.error_kind is not None:
            self.kv({"Error kind": job.error_kind.value})
        if job.error_detail:
            self.error(job.error_detail)

    def results_table(self, job: Any, title: str = "Results") -> None:
        """Render the result page of a succeeded query job."""
        t = Table(title=title, show_lines=False)
        schema = job.schema or ()
        for col in schema:
            t.add_column(f"{col.name}\n[meta]{col.type}[/]")

        for row in job.rows or ():
            t.add_row(*("" if row.get(c.name) is None else str(row.get(c.name)) for c in schema))

        console.print(t)
        shown = len(job.rows or ())
        total = job.row_count if job.row_count is not None else shown
        if total > shown:
            self.info(f"Showing first {shown} of {total} rows")
        else:
            self.info(f"{total} row(s)")


out = Out()
