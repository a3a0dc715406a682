"""Shared HTTP plumbing for the Dremio REST adapters.

Calls never raise for transport or HTTP failures; they return ``Err`` values
classified by ``ErrorKind`` and log a warning.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dremops.core.result import Err, ErrorKind, Ok, RemoteError, Result

logger = logging.getLogger(__name__)

_MAX_DETAIL_CHARS = 500


class DremioRestAdapter:
    """Base adapter turning Dremio REST calls into Result values."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Result[Any]:
        """Send one request; never raises for transport or HTTP failures."""
        try:
            response = await self.client.request(method, url, params=params, json=json)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            return Err(
                RemoteError(
                    kind=ErrorKind.TRANSPORT,
                    message=f"Request to Dremio failed ({type(exc).__name__})",
                    details=str(exc) or None,
                )
            )

        if response.is_error:
            body = response.text[:_MAX_DETAIL_CHARS]
            logger.warning("%s %s -> %s: %s", method, url, response.status_code, body)
            return Err(
                RemoteError(
                    kind=ErrorKind.PROTOCOL,
                    message=f"Dremio API error: {response.status_code} {response.reason_phrase}",
                    status_code=response.status_code,
                    details=body or None,
                )
            )

        try:
            return Ok(response.json())
        except ValueError as exc:
            logger.warning("%s %s returned a non-JSON body", method, url)
            return Err(
                RemoteError(
                    kind=ErrorKind.PROTOCOL,
                    message="Dremio returned an unreadable response",
                    status_code=response.status_code,
                    details=str(exc),
                )
            )

    async def _get_json(self, url: str, **params: Any) -> Result[Any]:
        return await self._request_json("GET", url, params=params or None)

    async def _post_json(self, url: str, payload: Any) -> Result[Any]:
        return await self._request_json("POST", url, json=payload)
