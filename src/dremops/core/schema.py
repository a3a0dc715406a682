"""Field metadata lookup for a single dataset."""

from __future__ import annotations

from typing import Any, Protocol

from dremops.core.nodes import Field, fields_from_api
from dremops.core.result import Err, Ok, Result


class EntityAdapter(Protocol):
    """Interface for fetching a catalog entity by id."""

    async def get_by_id(self, node_id: str) -> Result[dict[str, Any]]:
        """Return the entity document, including `children` or `fields`."""
        ...


class SchemaLoader:
    """
    Fetch the fields of one dataset.

    Errors are returned, not handled: the tree cache and the selection
    aggregator each decide how to fail soft.
    """

    def __init__(self, adapter: EntityAdapter) -> None:
        self.adapter = adapter

    async def get_fields(self, dataset_id: str) -> Result[tuple[Field, ...]]:
        result = await self.adapter.get_by_id(dataset_id)
        if isinstance(result, Err):
            return result
        return Ok(fields_from_api(result.value.get("fields")))
