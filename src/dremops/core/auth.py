"""Authentication helpers for Dremio.

This module centralizes creation of the HTTP client used by all adapters and
applies small but important normalization rules (such as sanitizing the
endpoint URL) to avoid malformed API URLs.
"""

from __future__ import annotations

import httpx

from dremops.core.config import Settings


class AuthError(RuntimeError):
    """Raised when the Dremio connection is not configured."""


def _sanitize_endpoint(endpoint: str | None) -> str | None:
    """
    Normalize a Dremio endpoint URL.

    - Strips surrounding whitespace
    - Removes query strings (e.g. '?redirect=...')
    - Removes trailing slashes
    - Adds https:// when no scheme is given
    """
    if not endpoint:
        return endpoint
    endpoint = endpoint.strip().split("?", 1)[0].rstrip("/")
    if endpoint and not endpoint.startswith(("http://", "https://")):
        endpoint = f"https://{endpoint}"
    return endpoint


def get_client(settings: Settings) -> httpx.AsyncClient:
    """
    Create and return an AsyncClient bound to the configured Dremio endpoint.

    The client carries the bearer token on every request. Callers own the
    client and must close it (`await client.aclose()`).
    """
    endpoint = _sanitize_endpoint(settings.endpoint)
    if not endpoint or not settings.pat:
        raise AuthError(
            "Dremio endpoint and PAT are required. "
            "Set DREMIO_ENDPOINT and DREMIO_PAT or pass --endpoint/--pat."
        )
    return httpx.AsyncClient(
        base_url=endpoint,
        headers={
            "Authorization": f"Bearer {settings.pat}",
            "Content-Type": "application/json",
        },
        verify=settings.ssl_verify,
        timeout=httpx.Timeout(settings.request_timeout),
        follow_redirects=True,
    )
