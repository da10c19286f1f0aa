"""
Change Types and Enums for the Sync Engine.

This module defines the core enums and dataclasses used by the sync
engine, the change feed decoder and the annotation state machine. It is the
single source of truth for all change-related type definitions.

Architecture Note:
    This is a pure domain module with NO external dependencies.
    It should only contain enums, dataclasses, and type definitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from collabsync.domain.models import Annotation


class EventOrigin(str, Enum):
    """
    Where a change event came from.

    LOCAL events are sent to the remote store and never re-emitted to the
    viewer. REMOTE events are applied locally and never sent back.
    """

    LOCAL = "local"
    REMOTE = "remote"


class ChangeKind(str, Enum):
    """Kind of annotation change carried by a SyncEvent."""

    ADDED = "Added"
    MODIFIED = "Modified"
    REMOVED = "Removed"


class RemoteChangeAction(str, Enum):
    """Action tag of an ``annotationChanged`` change feed event."""

    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"
    INVITE = "invite"
    MARK_AS_READ = "markAsRead"

    @classmethod
    def from_string(cls, value: str | None) -> RemoteChangeAction | None:
        """Parse the server's action enum, tolerating case and separators."""
        if value is None:
            return None
        normalized = str(value).replace("_", "").replace("-", "").lower().strip()
        for action in cls:
            if action.value.lower() == normalized:
                return action
        return None

    @property
    def change_kind(self) -> ChangeKind | None:
        """Map to the annotation change it represents, if any."""
        mapping = {
            self.ADD: ChangeKind.ADDED,
            self.EDIT: ChangeKind.MODIFIED,
            self.DELETE: ChangeKind.REMOVED,
        }
        return mapping.get(self)


class SyncOutcome(str, Enum):
    """What a successful sync operation actually did."""

    APPLIED = "applied"  # Change sent and/or applied
    SKIPPED = "skipped"  # Precondition missing (e.g. no server ID yet)
    IGNORED = "ignored"  # Event kind with no effect on annotations


class LifecycleState(str, Enum):
    """Lifecycle of one annotation as seen by the sync engine."""

    UNSEEN = "unseen"
    PENDING = "pending"  # Local add issued, server ID not yet known
    INDEXED = "indexed"  # Server ID known and stored in the index
    DELETED = "deleted"  # Terminal

    @property
    def is_terminal(self) -> bool:
        return self == LifecycleState.DELETED


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class SyncEvent:
    """
    One annotation change flowing through the engine.

    Attributes:
        kind: Added, Modified or Removed
        origin: LOCAL (viewer) or REMOTE (change feed)
        annotation: The annotation as carried by the event
        page_known: False when a remote payload named no page; the
            annotation's page_number is then only a placeholder
    """

    kind: ChangeKind
    origin: EventOrigin
    annotation: Annotation
    page_known: bool = True

    @classmethod
    def local(cls, kind: ChangeKind, annotation: Annotation) -> SyncEvent:
        """Event for a change reported by the host viewer."""
        return cls(kind=kind, origin=EventOrigin.LOCAL, annotation=annotation)

    @property
    def annotation_id(self) -> str:
        return self.annotation.annotation_id

    @property
    def document_id(self) -> str:
        return self.annotation.document_id

    @property
    def page_number(self) -> int | None:
        """The event's page, or None when the payload did not name one."""
        return self.annotation.page_number if self.page_known else None


@dataclass(frozen=True)
class RemoteChange:
    """
    A decoded change feed payload.

    Attributes:
        action: The server's action tag
        annotation: Annotation the change applies to (server_id populated)
        document_id: Document of the change, if the feed included it
        page_known: Whether the payload carried the page explicitly
    """

    action: RemoteChangeAction
    annotation: Annotation
    document_id: str | None = None
    page_known: bool = True

    def to_event(self) -> SyncEvent | None:
        """Build the REMOTE SyncEvent for annotation actions."""
        kind = self.action.change_kind
        if kind is None:
            return None
        return SyncEvent(
            kind=kind,
            origin=EventOrigin.REMOTE,
            annotation=self.annotation,
            page_known=self.page_known,
        )


@dataclass(frozen=True)
class TransitionResult:
    """
    Result of classifying a lifecycle transition.

    Attributes:
        old_state: State before the event
        new_state: State after the event
        allowed: Whether the transition is part of the lifecycle
        description: Human-readable description
    """

    old_state: LifecycleState
    new_state: LifecycleState
    allowed: bool = True
    description: str = ""

    @property
    def changed(self) -> bool:
        return self.old_state != self.new_state


@dataclass
class SyncStats:
    """Counters kept by the engine for logging and the CLI."""

    local_sent: int = 0
    local_skipped: int = 0
    remote_applied: int = 0
    remote_ignored: int = 0
    failures: int = 0

    def summary(self) -> str:
        return (
            f"local sent={self.local_sent} skipped={self.local_skipped}, "
            f"remote applied={self.remote_applied} ignored={self.remote_ignored}, "
            f"failures={self.failures}"
        )
