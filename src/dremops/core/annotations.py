"""Descriptive notes attached to tables and columns.

Notes are owned by an external note-taking store. This module only defines
the shape the context assembler consumes and a read-only loader for a JSON
export of that store.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping


@dataclass(frozen=True)
class TableAnnotation:
    """Notes for one table, keyed by table path in an annotation mapping."""

    description: str = ""
    tags: tuple[str, ...] = ()
    column_notes: Mapping[str, str] = field(default_factory=dict)


def _tags(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        return (raw,) if raw else ()
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(str(t) for t in raw if t)


def annotations_from_dict(payload: Mapping[str, Any]) -> dict[str, TableAnnotation]:
    """
    Parse `{"tables": {path: {"description", "tags", "columns": {name: note}}}}`.

    Malformed entries are skipped.
    """
    out: dict[str, TableAnnotation] = {}
    tables = payload.get("tables") or {}
    if not isinstance(tables, Mapping):
        raise ValueError("Annotations must contain a `tables` object keyed by table path.")

    for path, raw in tables.items():
        if not isinstance(raw, Mapping):
            continue
        columns = raw.get("columns") or {}
        if not isinstance(columns, Mapping):
            columns = {}
        out[str(path)] = TableAnnotation(
            description=str(raw.get("description") or ""),
            tags=_tags(raw.get("tags")),
            column_notes={str(k): str(v) for k, v in columns.items() if v},
        )
    return out


def load_annotations(path: Path) -> dict[str, TableAnnotation]:
    """Load an annotation export from disk."""
    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid annotations file {path}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ValueError(f"Invalid annotations file {path}: expected a JSON object")
    return annotations_from_dict(payload)
