"""Explicit success/failure values for remote calls.

Every adapter call against the Dremio REST API returns either ``Ok(value)``
or ``Err(RemoteError)`` instead of raising. Call sites decide per component
whether a failure is soft (log and fall back to an empty value) or hard
(surface it to the user as a failed job).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """
    Classification of remote-call failures.

    Values:
        TRANSPORT: Network, DNS or connection failure; no response received.
        PROTOCOL: The service answered with a non-success status or an
                  unreadable body.
        TIMEOUT: A query job did not reach a terminal state in time.
    """

    TRANSPORT = "TRANSPORT"
    PROTOCOL = "PROTOCOL"
    TIMEOUT = "TIMEOUT"


@dataclass(frozen=True)
class RemoteError:
    """A failed remote call, ready to be shown to a user."""

    kind: ErrorKind
    message: str
    status_code: int | None = None
    details: str | None = None

    def describe(self) -> str:
        """Return a single human-readable line."""
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: RemoteError


Result = Union[Ok[T], Err]
