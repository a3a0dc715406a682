"""Dremio v3 catalog API adapter (top-level listing, entity by id or path)."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from dremops.core.adapters.rest import DremioRestAdapter
from dremops.core.result import Err, ErrorKind, Ok, RemoteError, Result


class DremioCatalogAdapter(DremioRestAdapter):
    """Adapter around the Dremio v3 catalog API (listing, by-id, by-path)."""

    async def list_top(self) -> Result[list[dict[str, Any]]]:
        """List top-level containers (spaces, sources, home)."""
        result = await self._get_json("/api/v3/catalog")
        if isinstance(result, Err):
            return result
        data = result.value.get("data") if isinstance(result.value, dict) else None
        return Ok(list(data) if isinstance(data, list) else [])

    async def get_by_id(self, node_id: str) -> Result[dict[str, Any]]:
        """Fetch one entity with its `children` (containers) or `fields` (datasets)."""
        result = await self._get_json(f"/api/v3/catalog/{quote(node_id, safe='')}")
        return _expect_entity(result)

    async def get_by_path(self, path: list[str] | tuple[str, ...]) -> Result[dict[str, Any]]:
        """Fetch one entity by its path segments."""
        segments = "/".join(quote(p, safe="") for p in path)
        result = await self._get_json(f"/api/v3/catalog/by-path/{segments}")
        return _expect_entity(result)


def _expect_entity(result: Result[Any]) -> Result[dict[str, Any]]:
    if isinstance(result, Err):
        return result
    if not isinstance(result.value, dict):
        return Err(
            RemoteError(
                kind=ErrorKind.PROTOCOL,
                message="Unexpected catalog entity payload",
                details=type(result.value).__name__,
            )
        )
    return result
