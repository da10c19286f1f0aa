"""
Unit tests for the annotation lifecycle state machine and change types.
"""

import unittest

from collabsync.domain.change_types import (
    ChangeKind,
    EventOrigin,
    LifecycleState,
    RemoteChange,
    RemoteChangeAction,
    SyncEvent,
)
from collabsync.domain.models import Annotation
from collabsync.domain.state_machine import (
    LifecycleTracker,
    classify_lifecycle_transition,
)


class TestRemoteChangeAction(unittest.TestCase):
    """Test RemoteChangeAction parsing."""

    def test_from_string(self):
        self.assertEqual(RemoteChangeAction.from_string("add"), RemoteChangeAction.ADD)
        self.assertEqual(RemoteChangeAction.from_string("EDIT"), RemoteChangeAction.EDIT)
        self.assertEqual(RemoteChangeAction.from_string("delete"), RemoteChangeAction.DELETE)
        self.assertEqual(RemoteChangeAction.from_string("markAsRead"), RemoteChangeAction.MARK_AS_READ)
        self.assertEqual(RemoteChangeAction.from_string("mark_as_read"), RemoteChangeAction.MARK_AS_READ)
        self.assertIsNone(RemoteChangeAction.from_string("rename"))
        self.assertIsNone(RemoteChangeAction.from_string(None))

    def test_change_kind(self):
        self.assertEqual(RemoteChangeAction.ADD.change_kind, ChangeKind.ADDED)
        self.assertEqual(RemoteChangeAction.EDIT.change_kind, ChangeKind.MODIFIED)
        self.assertEqual(RemoteChangeAction.DELETE.change_kind, ChangeKind.REMOVED)
        self.assertIsNone(RemoteChangeAction.INVITE.change_kind)
        self.assertIsNone(RemoteChangeAction.MARK_AS_READ.change_kind)

    def test_to_event(self):
        annotation = Annotation("a1", "d1", page_number=3, server_id="s1")
        event = RemoteChange(RemoteChangeAction.DELETE, annotation).to_event()

        self.assertEqual(event.kind, ChangeKind.REMOVED)
        self.assertEqual(event.origin, EventOrigin.REMOTE)
        self.assertEqual(event.annotation.server_id, "s1")
        self.assertEqual(event.page_number, 3)

        self.assertIsNone(RemoteChange(RemoteChangeAction.INVITE, annotation).to_event())

    def test_to_event_without_page(self):
        annotation = Annotation("a1", "d1", page_number=0, server_id="s1")
        event = RemoteChange(RemoteChangeAction.EDIT, annotation, page_known=False).to_event()

        self.assertFalse(event.page_known)
        self.assertIsNone(event.page_number)
        self.assertEqual(event.annotation_id, "a1")
        self.assertEqual(event.document_id, "d1")

    def test_local_event(self):
        event = SyncEvent.local(ChangeKind.ADDED, Annotation("a1", "d1", page_number=2))

        self.assertEqual(event.origin, EventOrigin.LOCAL)
        self.assertEqual(event.page_number, 2)


class TestClassifyLifecycleTransition(unittest.TestCase):
    """Test the transition classification function."""

    def test_local_add_is_pending(self):
        result = classify_lifecycle_transition(
            LifecycleState.UNSEEN, ChangeKind.ADDED, EventOrigin.LOCAL
        )
        self.assertEqual(result.new_state, LifecycleState.PENDING)
        self.assertTrue(result.changed)

    def test_local_add_with_server_id_is_indexed(self):
        result = classify_lifecycle_transition(
            LifecycleState.UNSEEN, ChangeKind.ADDED, EventOrigin.LOCAL, server_id_known=True
        )
        self.assertEqual(result.new_state, LifecycleState.INDEXED)

    def test_remote_add_confirms(self):
        result = classify_lifecycle_transition(
            LifecycleState.PENDING, ChangeKind.ADDED, EventOrigin.REMOTE
        )
        self.assertEqual(result.new_state, LifecycleState.INDEXED)

    def test_replayed_local_add_stays_indexed(self):
        result = classify_lifecycle_transition(
            LifecycleState.INDEXED, ChangeKind.ADDED, EventOrigin.LOCAL
        )
        self.assertEqual(result.new_state, LifecycleState.INDEXED)
        self.assertFalse(result.changed)

    def test_modify_self_loop(self):
        for origin in EventOrigin:
            result = classify_lifecycle_transition(LifecycleState.INDEXED, ChangeKind.MODIFIED, origin)
            self.assertTrue(result.allowed)
            self.assertEqual(result.new_state, LifecycleState.INDEXED)

    def test_modify_before_indexed_not_allowed(self):
        result = classify_lifecycle_transition(
            LifecycleState.PENDING, ChangeKind.MODIFIED, EventOrigin.LOCAL
        )
        self.assertFalse(result.allowed)
        self.assertEqual(result.new_state, LifecycleState.PENDING)

    def test_remove_is_terminal(self):
        for state in LifecycleState:
            result = classify_lifecycle_transition(state, ChangeKind.REMOVED, EventOrigin.REMOTE)
            self.assertEqual(result.new_state, LifecycleState.DELETED)
        self.assertTrue(LifecycleState.DELETED.is_terminal)

    def test_add_after_delete_starts_over(self):
        result = classify_lifecycle_transition(
            LifecycleState.DELETED, ChangeKind.ADDED, EventOrigin.LOCAL
        )
        self.assertEqual(result.new_state, LifecycleState.PENDING)


class TestLifecycleTracker(unittest.TestCase):

    def test_full_lifecycle(self):
        tracker = LifecycleTracker()
        self.assertEqual(tracker.state_of("d1", "a1"), LifecycleState.UNSEEN)

        tracker.apply("d1", "a1", ChangeKind.ADDED, EventOrigin.LOCAL)
        self.assertEqual(tracker.state_of("d1", "a1"), LifecycleState.PENDING)

        tracker.apply("d1", "a1", ChangeKind.ADDED, EventOrigin.REMOTE)
        tracker.apply("d1", "a1", ChangeKind.MODIFIED, EventOrigin.LOCAL)
        self.assertEqual(tracker.state_of("d1", "a1"), LifecycleState.INDEXED)

        result = tracker.apply("d1", "a1", ChangeKind.REMOVED, EventOrigin.REMOTE)
        self.assertEqual(result.new_state, LifecycleState.DELETED)
        self.assertEqual(tracker.state_of("d1", "a1"), LifecycleState.UNSEEN)

    def test_deleted_annotations_are_evicted(self):
        tracker = LifecycleTracker()
        for n in range(50):
            tracker.apply("d1", f"a{n}", ChangeKind.ADDED, EventOrigin.REMOTE)
            tracker.apply("d1", f"a{n}", ChangeKind.REMOVED, EventOrigin.LOCAL)
        self.assertEqual(len(tracker), 0)

        # Removing something never seen leaves nothing behind either
        tracker.apply("d1", "ghost", ChangeKind.REMOVED, EventOrigin.REMOTE)
        self.assertEqual(len(tracker), 0)

    def test_disallowed_transition_not_recorded(self):
        tracker = LifecycleTracker()
        result = tracker.apply("d1", "a1", ChangeKind.MODIFIED, EventOrigin.REMOTE)

        self.assertFalse(result.allowed)
        self.assertEqual(len(tracker), 0)

    def test_keyed_by_document(self):
        tracker = LifecycleTracker()
        tracker.apply("d1", "a1", ChangeKind.ADDED, EventOrigin.REMOTE)
        self.assertEqual(tracker.state_of("d2", "a1"), LifecycleState.UNSEEN)


if __name__ == "__main__":
    unittest.main()
