"""Projection of the selection set into the data-context payload.

The data context is what a downstream assistant receives: the selected
tables with their columns, and the selected containers with the datasets
found inside them. It is rebuilt from scratch on every selection change;
`assemble` is pure and gives the same result for the same inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from dremops.core.annotations import TableAnnotation
from dremops.core.nodes import Field, NodeKind
from dremops.core.selection import SelectedItem


@dataclass(frozen=True)
class ColumnContext:
    name: str
    type: str
    note: str | None = None

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "type": self.type}
        if self.note:
            out["note"] = self.note
        return out


@dataclass(frozen=True)
class TableContext:
    path: str
    columns: tuple[ColumnContext, ...] = ()
    description: str | None = None
    tags: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "path": self.path,
            "columns": [c.to_payload() for c in self.columns],
        }
        if self.description:
            out["description"] = self.description
        if self.tags:
            out["tags"] = list(self.tags)
        return out


@dataclass(frozen=True)
class ContainerContext:
    path: str
    type: str
    child_datasets: tuple[TableContext, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "type": self.type,
            "childDatasets": [d.to_payload() for d in self.child_datasets],
        }


@dataclass(frozen=True)
class DataContext:
    tables: tuple[TableContext, ...] = ()
    containers: tuple[ContainerContext, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.tables and not self.containers

    def to_payload(self) -> dict[str, Any]:
        """Wire form handed to the downstream consumer."""
        return {
            "tables": [t.to_payload() for t in self.tables],
            "containers": [c.to_payload() for c in self.containers],
        }


def _table_context(
    path: str,
    fields: Iterable[Field],
    annotations: Mapping[str, TableAnnotation] | None,
) -> TableContext:
    note = annotations.get(path) if annotations else None
    column_notes = note.column_notes if note else {}
    return TableContext(
        path=path,
        columns=tuple(
            ColumnContext(name=f.name, type=f.type_display, note=column_notes.get(f.name))
            for f in fields
        ),
        description=(note.description or None) if note else None,
        tags=note.tags if note else (),
    )


def assemble(
    selection: Iterable[SelectedItem],
    annotations: Mapping[str, TableAnnotation] | None = None,
) -> DataContext:
    """
    Split the selection into tables and containers.

    Columns and child datasets are carried through as already resolved;
    items still loading contribute empty column lists. Annotations, when
    given, add descriptions, tags and column notes.
    """
    tables: list[TableContext] = []
    containers: list[ContainerContext] = []

    for item in selection:
        if item.kind == NodeKind.DATASET:
            tables.append(_table_context(item.path, item.columns, annotations))
        elif item.kind == NodeKind.CONTAINER:
            containers.append(
                ContainerContext(
                    path=item.path,
                    type=item.container_kind or "CONTAINER",
                    child_datasets=tuple(
                        _table_context(d.path, d.columns, annotations)
                        for d in item.child_datasets or ()
                    ),
                )
            )

    return DataContext(tables=tuple(tables), containers=tuple(containers))


def summarize(context: DataContext) -> dict[str, int]:
    """Count tables, containers and columns in a context."""
    columns = sum(len(t.columns) for t in context.tables) + sum(
        len(d.columns) for c in context.containers for d in c.child_datasets
    )
    return {
        "tables": len(context.tables),
        "containers": len(context.containers),
        "columns": columns,
    }


def _render_table(lines: list[str], heading: str, table: TableContext) -> None:
    lines.append(f"{heading} `{table.path}`")
    if table.description:
        lines.append(table.description)
    if table.tags:
        lines.append("Tags: " + ", ".join(table.tags))
    if table.columns:
        with_notes = any(c.note for c in table.columns)
        if with_notes:
            lines.append("| Column | Type | Note |")
            lines.append("|--------|------|------|")
        else:
            lines.append("| Column | Type |")
            lines.append("|--------|------|")
        for c in table.columns:
            row = f"| {c.name} | {c.type} |"
            if with_notes:
                row += f" {c.note or ''} |"
            lines.append(row)
    else:
        lines.append("(Column information not available)")
    lines.append("")


def render_markdown(context: DataContext) -> str:
    """Render the schema block an assistant embeds in its prompt."""
    if context.is_empty:
        return "No data context selected."

    lines: list[str] = ["## Available Data Schema", ""]

    if context.tables:
        lines.extend(["### Selected Tables", ""])
        for table in context.tables:
            _render_table(lines, "####", table)

    if context.containers:
        lines.extend(["### Selected Folders/Sources", ""])
        for container in context.containers:
            lines.extend([f"#### {container.type}: `{container.path}`", ""])
            if not container.child_datasets:
                lines.extend(["(No datasets found or loading...)", ""])
                continue
            lines.extend([f"Contains {len(container.child_datasets)} dataset(s):", ""])
            for dataset in container.child_datasets:
                _render_table(lines, "#####", dataset)

    return "\n".join(lines).rstrip() + "\n"
