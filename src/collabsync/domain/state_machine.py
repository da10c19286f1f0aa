"""
State Machine for annotation lifecycles.

This module provides THE authoritative logic for how one annotation moves
through the sync engine:

    UNSEEN -> PENDING (local add issued)
           -> INDEXED (server ID known)
           -> INDEXED* (modified, page possibly moved)
           -> DELETED (terminal)

A DELETED annotation that is added again starts a fresh lifecycle, so the
tracker forgets it as soon as it is deleted.

Architecture Note:
    - Pure domain logic - no I/O, no database calls
    - The tracker is in-memory bookkeeping only; the durable truth is the
      local annotation index
"""

from __future__ import annotations

import logging

from collabsync.domain.change_types import (
    ChangeKind,
    EventOrigin,
    LifecycleState,
    TransitionResult,
)

logger = logging.getLogger(__name__)


# =============================================================================
# State Machine Core
# =============================================================================

def classify_lifecycle_transition(
    old_state: LifecycleState,
    kind: ChangeKind,
    origin: EventOrigin,
    server_id_known: bool = False,
) -> TransitionResult:
    """
    Classify what an event does to an annotation's lifecycle.

    Args:
        old_state: Current lifecycle state
        kind: Added, Modified or Removed
        origin: Whether the event came from the viewer or the change feed
        server_id_known: For local adds, whether the create response already
            returned the server ID

    Returns:
        TransitionResult with the new state
    """
    # === Removal always ends the lifecycle ===
    if kind == ChangeKind.REMOVED:
        return TransitionResult(
            old_state=old_state,
            new_state=LifecycleState.DELETED,
            description="Annotation deleted",
        )

    # === Additions ===
    if kind == ChangeKind.ADDED:
        # The change feed is the server's confirmation
        if origin == EventOrigin.REMOTE or server_id_known:
            return TransitionResult(
                old_state=old_state,
                new_state=LifecycleState.INDEXED,
                description="Server ID confirmed",
            )
        if old_state == LifecycleState.INDEXED:
            # Replayed local add for an annotation the server already knows
            return TransitionResult(
                old_state=old_state,
                new_state=LifecycleState.INDEXED,
                description="Already indexed",
            )
        return TransitionResult(
            old_state=old_state,
            new_state=LifecycleState.PENDING,
            description="Local add issued",
        )

    # === Modifications only make sense once indexed ===
    if old_state == LifecycleState.INDEXED:
        return TransitionResult(
            old_state=old_state,
            new_state=LifecycleState.INDEXED,
            description="Annotation modified",
        )
    return TransitionResult(
        old_state=old_state,
        new_state=old_state,
        allowed=False,
        description=f"Modify while {old_state.value}",
    )


class LifecycleTracker:
    """
    In-memory lifecycle state per (document_id, annotation_id).

    Unknown annotations report UNSEEN. Deleted annotations are evicted and
    report UNSEEN again.
    """

    def __init__(self) -> None:
        self._states: dict[tuple[str, str], LifecycleState] = {}

    def state_of(self, document_id: str, annotation_id: str) -> LifecycleState:
        return self._states.get((document_id, annotation_id), LifecycleState.UNSEEN)

    def apply(
        self,
        document_id: str,
        annotation_id: str,
        kind: ChangeKind,
        origin: EventOrigin,
        server_id_known: bool = False,
    ) -> TransitionResult:
        """Classify the event and record the resulting state (or evict on delete)."""
        old_state = self.state_of(document_id, annotation_id)
        result = classify_lifecycle_transition(old_state, kind, origin, server_id_known)
        if not result.allowed:
            logger.debug(
                "Lifecycle %s/%s: %s", document_id, annotation_id, result.description
            )
            return result
        key = (document_id, annotation_id)
        if result.new_state.is_terminal:
            self._states.pop(key, None)
        else:
            self._states[key] = result.new_state
        return result

    def reset(self) -> None:
        self._states.clear()

    def __len__(self) -> int:
        return len(self._states)
