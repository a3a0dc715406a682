"""Core domain models for the Dremio catalog.

These models represent catalog entities in a simple, immutable form.
They are intentionally free of HTTP payload details and UI/CLI concerns;
``node_from_api`` and ``fields_from_api`` are the only places that know the
REST shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class NodeKind(str, Enum):
    """Primary kind of a catalog entity."""

    CONTAINER = "CONTAINER"
    DATASET = "DATASET"
    FILE = "FILE"
    FUNCTION = "FUNCTION"


class LoadState(str, Enum):
    """Lazy-loading state of a node's children or fields."""

    NOT_LOADED = "NOT_LOADED"
    LOADING = "LOADING"
    LOADED = "LOADED"


# Some catalog responses report the container sub-type as the entity type.
_CONTAINER_TYPES = {"SPACE", "SOURCE", "FOLDER", "HOME"}


@dataclass(frozen=True)
class FieldType:
    """Type descriptor of a dataset field."""

    name: str
    precision: int | None = None
    scale: int | None = None


@dataclass(frozen=True)
class Field:
    """A single column of a dataset."""

    name: str
    type: FieldType

    @property
    def type_display(self) -> str:
        return format_field_type(self.type)


@dataclass(frozen=True)
class CatalogNode:
    """
    One entity of the lazily-materialized catalog tree.

    Attributes:
        id: Opaque identifier used by the service for fetch-by-id.
        path: Ordered path segments; joined with "." this is the node's
              stable external identity.
        kind: Primary entity kind.
        container_kind: SPACE, SOURCE, FOLDER or HOME for containers.
        dataset_kind: VIRTUAL, PHYSICAL_DATASET, ... for datasets.
        children: Child nodes once fetched (containers only).
        fields: Columns once fetched (datasets only).
        load_state: Whether children/fields have been fetched.
    """

    id: str
    path: tuple[str, ...]
    kind: NodeKind
    container_kind: str | None = None
    dataset_kind: str | None = None
    children: tuple["CatalogNode", ...] | None = None
    fields: tuple[Field, ...] | None = None
    load_state: LoadState = LoadState.NOT_LOADED

    @property
    def full_path(self) -> str:
        return ".".join(self.path)

    @property
    def name(self) -> str:
        return self.path[-1] if self.path else ""

    @property
    def is_container(self) -> bool:
        return self.kind == NodeKind.CONTAINER

    @property
    def is_dataset(self) -> bool:
        return self.kind == NodeKind.DATASET


def format_field_type(field_type: FieldType) -> str:
    """Render `name(precision,scale)`, `name(precision)` or `name`."""
    if field_type.precision is None:
        return field_type.name
    if field_type.scale is None:
        return f"{field_type.name}({field_type.precision})"
    return f"{field_type.name}({field_type.precision},{field_type.scale})"


def _kind_from_api(raw_type: str | None, container_type: str | None) -> tuple[NodeKind, str | None]:
    raw = (raw_type or "").upper()
    if raw in _CONTAINER_TYPES:
        return NodeKind.CONTAINER, container_type or raw
    try:
        return NodeKind(raw), container_type
    except ValueError:
        return NodeKind.FILE, container_type


def node_from_api(item: Mapping[str, Any]) -> CatalogNode:
    """Build an unloaded CatalogNode from a catalog listing entry."""
    kind, container_kind = _kind_from_api(item.get("type"), item.get("containerType"))
    return CatalogNode(
        id=str(item.get("id", "")),
        path=tuple(str(p) for p in item.get("path") or ()),
        kind=kind,
        container_kind=container_kind if kind == NodeKind.CONTAINER else None,
        dataset_kind=item.get("datasetType"),
    )


def _entries(items: Any) -> list[Mapping[str, Any]]:
    """Keep the object entries of a payload array; anything else is dropped."""
    if not isinstance(items, (list, tuple)):
        return []
    return [i for i in items if isinstance(i, Mapping)]


def nodes_from_api(items: Any) -> tuple[CatalogNode, ...]:
    """Build nodes for every object entry that carries an id."""
    return tuple(node_from_api(i) for i in _entries(items) if i.get("id"))


def fields_from_api(items: Any) -> tuple[Field, ...]:
    """Build Field values from a dataset entity's `fields` array."""
    out: list[Field] = []
    for f in _entries(items):
        name = f.get("name")
        if not name:
            continue
        t = f.get("type")
        if not isinstance(t, Mapping):
            t = {}
        out.append(
            Field(
                name=str(name),
                type=FieldType(
                    name=str(t.get("name", "")),
                    precision=t.get("precision"),
                    scale=t.get("scale"),
                ),
            )
        )
    return tuple(out)
