"""
Error taxonomy for the sync core.

Every failure the core can observe is a SyncError. None of them are fatal:
callers receive them as Failure results and the error sink gets a copy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class GraphQLErrorDetail:
    """One entry of a GraphQL response's ``errors`` list."""
    message: str
    path: tuple[str | int, ...] = ()
    extensions: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GraphQLErrorDetail:
        return cls(
            message=str(data.get("message", "Unknown GraphQL error")),
            path=tuple(data.get("path") or ()),
            extensions=dict(data.get("extensions") or {}),
        )

    @property
    def code(self) -> str | None:
        code = self.extensions.get("code")
        return str(code) if code is not None else None


class SyncError(Exception):
    """Base class for all collabsync errors."""


class RemoteTransportError(SyncError):
    """Network failure, timeout, bad HTTP status or malformed response."""


class RemoteApplicationError(SyncError):
    """The remote store answered with one or more GraphQL errors."""

    def __init__(self, details: list[GraphQLErrorDetail], operation: str = ""):
        self.details = list(details)
        self.operation = operation
        messages = "; ".join(d.message for d in self.details) or "unknown error"
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}{messages}")


class IndexPersistenceError(SyncError):
    """The local annotation index could not be read or written."""


class AuthError(SyncError):
    """Login failed or returned no usable token/user."""


class NotLoggedInError(SyncError):
    """An operation needed a logged in user."""


class NoDocumentError(SyncError):
    """An operation needed an open document."""


class PayloadDecodeError(SyncError):
    """A change feed payload lacked the fields needed to apply it."""
