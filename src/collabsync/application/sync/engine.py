"""
Sync Engine - Local/Remote Annotation Synchronization.

Single owner of outbound annotation calls and inbound change feed handling:

    viewer event  -> index lookups -> remote store -> index update
    feed payload  -> decode -> index update -> viewer notification

Every operation returns a Result and hands failures to the error sink.
Nothing is retried; a failed event is dropped.

Architecture Note:
    - Index writes are idempotent, so a local add and its echoed remote add
      may arrive in either order and still converge on one record
    - Local events are never re-emitted to the viewer
    - Remote events are never sent back to the remote store
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from collabsync.domain.change_types import (
    ChangeKind,
    EventOrigin,
    SyncEvent,
    SyncOutcome,
    SyncStats,
)
from collabsync.domain.errors import SyncError
from collabsync.domain.models import Annotation, SyncContext
from collabsync.domain.ports import AnnotationIndex, ErrorSink, HostViewer, RemoteStore
from collabsync.domain.results import Failure, Result, failure, success
from collabsync.domain.state_machine import LifecycleTracker
from collabsync.application.error_sink import LoggingErrorSink
from collabsync.infrastructure.graphql.mapper import decode_annotation_changed

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Translates annotation changes between the host viewer and the remote store.

    Usage:
        engine = SyncEngine(index, remote, context, viewer)
        await engine.local_add(annotation)
        await engine.handle_push(payload)
    """

    def __init__(
        self,
        index: AnnotationIndex,
        remote: RemoteStore,
        context: SyncContext,
        viewer: HostViewer | None = None,
        error_sink: ErrorSink | None = None,
    ) -> None:
        self.index = index
        self.remote = remote
        self.context = context
        self.viewer = viewer
        self.error_sink = error_sink or LoggingErrorSink()
        self.tracker = LifecycleTracker()
        self.stats = SyncStats()
        self._initial_batch: list[Annotation] | None = None

    def _fail(self, error: SyncError) -> Failure[SyncError]:
        self.stats.failures += 1
        self.error_sink.report(error)
        return failure(error)

    def _skip(self, reason: str, annotation_id: str) -> Result:
        self.stats.local_skipped += 1
        logger.debug("Skipped %s for %s", reason, annotation_id)
        return success(SyncOutcome.SKIPPED)

    # ========================================================================
    # Local events (viewer -> remote store)
    # ========================================================================

    async def local_add(self, annotation: Annotation) -> Result:
        """
        Create a viewer-originated annotation on the remote store.

        The index is only written when the create response carries the
        server-assigned ID; otherwise the remote add push fills it in.
        """
        try:
            user = self.context.require_user()
            document_id = self.context.require_document()
            created = await self.remote.add_annotation(
                _in_document(annotation, document_id), user.id
            )
        except SyncError as e:
            return self._fail(e)

        self.stats.local_sent += 1
        server_id_known = bool(created.server_id)
        self.tracker.apply(
            document_id,
            annotation.annotation_id,
            ChangeKind.ADDED,
            EventOrigin.LOCAL,
            server_id_known=server_id_known,
        )

        if server_id_known:
            try:
                self.index.put(
                    annotation.annotation_id, created.server_id, document_id, annotation.page_number
                )
            except SyncError as e:
                return self._fail(e)

        logger.info(
            "Annotation %s sent (page %d, server ID %s)",
            annotation.annotation_id,
            annotation.page_number,
            created.server_id or "pending",
        )
        return success(SyncOutcome.APPLIED)

    async def local_modify(self, annotation: Annotation) -> Result:
        """
        Send an edit for an annotation the index already maps.

        Unmapped annotations are skipped without a remote call.
        """
        try:
            document_id = self.context.require_document()
            page_number = self.index.lookup_page_number(annotation.annotation_id, document_id)
            if page_number is None:
                return self._skip("modify (no page)", annotation.annotation_id)

            server_id = self.index.lookup_server_id(
                annotation.annotation_id, document_id, page_number
            )
            if server_id is None:
                return self._skip("modify (no server ID)", annotation.annotation_id)

            await self.remote.edit_annotation(server_id, annotation.xfdf, annotation.page_number)
            self.stats.local_sent += 1

            # The record follows the annotation if it moved page
            self.index.update_page_number(
                annotation.annotation_id, server_id, document_id, annotation.page_number
            )
        except SyncError as e:
            return self._fail(e)

        self.tracker.apply(
            document_id, annotation.annotation_id, ChangeKind.MODIFIED, EventOrigin.LOCAL
        )
        logger.info("Successfully modified annotation %s", annotation.annotation_id)
        return success(SyncOutcome.APPLIED)

    async def local_remove(self, annotation: Annotation) -> Result:
        """
        Delete a mapped annotation on the remote store and drop its record.

        A later remote echo of the delete finds nothing to remove and only
        notifies the viewer.
        """
        try:
            document_id = self.context.require_document()
            page_number = self.index.lookup_page_number(annotation.annotation_id, document_id)
            if page_number is None:
                return self._skip("remove (no page)", annotation.annotation_id)

            server_id = self.index.lookup_server_id(
                annotation.annotation_id, document_id, page_number
            )
            if server_id is None:
                return self._skip("remove (no server ID)", annotation.annotation_id)

            await self.remote.delete_annotation(server_id)
            self.stats.local_sent += 1
            self.index.remove(annotation.annotation_id, document_id, page_number)
        except SyncError as e:
            return self._fail(e)

        self.tracker.apply(
            document_id, annotation.annotation_id, ChangeKind.REMOVED, EventOrigin.LOCAL
        )
        logger.info("Successfully removed annotation %s", annotation.annotation_id)
        return success(SyncOutcome.APPLIED)

    # ========================================================================
    # Remote events (change feed -> index + viewer)
    # ========================================================================

    async def remote_add(self, annotation: Annotation) -> Result:
        """Index a server-confirmed annotation and show it in the viewer."""
        error = None
        try:
            self.index.put(
                annotation.annotation_id,
                annotation.server_id,
                annotation.document_id,
                annotation.page_number,
            )
        except SyncError as e:
            error = e

        self.tracker.apply(
            annotation.document_id, annotation.annotation_id, ChangeKind.ADDED, EventOrigin.REMOTE
        )
        return self._forward(ChangeKind.ADDED, annotation, error)

    async def remote_modify(self, annotation: Annotation, page_known: bool = True) -> Result:
        """
        Move the record to the annotation's current page and notify the viewer.

        An annotation the index has never seen is indexed here instead. When
        the payload named no page, an indexed record stays where it is.
        """
        error = None
        kind = ChangeKind.MODIFIED
        try:
            known_page = self.index.lookup_page_number(
                annotation.annotation_id, annotation.document_id
            )
            if known_page is None:
                self.index.put(
                    annotation.annotation_id,
                    annotation.server_id,
                    annotation.document_id,
                    annotation.page_number,
                )
                kind = ChangeKind.ADDED
            elif page_known:
                self.index.update_page_number(
                    annotation.annotation_id,
                    annotation.server_id,
                    annotation.document_id,
                    annotation.page_number,
                )
        except SyncError as e:
            error = e

        self.tracker.apply(
            annotation.document_id, annotation.annotation_id, kind, EventOrigin.REMOTE
        )
        return self._forward(ChangeKind.MODIFIED, annotation, error)

    async def remote_remove(self, annotation: Annotation) -> Result:
        """Drop the record (wherever it lives) and notify the viewer."""
        error = None
        try:
            page_number = self.index.lookup_page_number(
                annotation.annotation_id, annotation.document_id
            )
            if page_number is not None:
                self.index.remove(annotation.annotation_id, annotation.document_id, page_number)
            else:
                logger.debug("Remote delete of unindexed annotation %s", annotation.annotation_id)
        except SyncError as e:
            error = e

        self.tracker.apply(
            annotation.document_id,
            annotation.annotation_id,
            ChangeKind.REMOVED,
            EventOrigin.REMOTE,
        )
        return self._forward(ChangeKind.REMOVED, annotation, error)

    def _forward(self, kind: ChangeKind, annotation: Annotation, error: SyncError | None) -> Result:
        """Notify the viewer; the remote change happened whatever the index did."""
        if self.viewer is not None:
            if kind == ChangeKind.ADDED:
                self.viewer.remote_annotation_added(annotation)
            elif kind == ChangeKind.MODIFIED:
                self.viewer.remote_annotation_modified(annotation)
            else:
                self.viewer.remote_annotation_removed(annotation)

        if error is not None:
            return self._fail(error)

        self.stats.remote_applied += 1
        logger.debug("Remote %s applied for %s", kind.value, annotation.annotation_id)
        return success(SyncOutcome.APPLIED)

    async def handle_push(self, payload: dict[str, Any]) -> Result:
        """
        Decode one change feed payload and apply it.

        invite and markAsRead changes are acknowledged as IGNORED.
        """
        try:
            change = decode_annotation_changed(payload)
        except SyncError as e:
            return self._fail(e)

        event = change.to_event()
        if event is None:
            self.stats.remote_ignored += 1
            logger.info("Change feed: %s (no annotation change)", change.action.value)
            return success(SyncOutcome.IGNORED)
        return await self.apply(event)

    async def apply(self, event: SyncEvent) -> Result:
        """Route one event to the operation for its origin and kind."""
        if event.origin == EventOrigin.LOCAL:
            if event.kind == ChangeKind.ADDED:
                return await self.local_add(event.annotation)
            if event.kind == ChangeKind.MODIFIED:
                return await self.local_modify(event.annotation)
            return await self.local_remove(event.annotation)

        if event.kind == ChangeKind.ADDED:
            return await self.remote_add(event.annotation)
        if event.kind == ChangeKind.MODIFIED:
            return await self.remote_modify(event.annotation, page_known=event.page_known)
        return await self.remote_remove(event.annotation)

    # ========================================================================
    # Initial load
    # ========================================================================

    def initial_load(self, annotations: Sequence[Annotation]) -> Result:
        """
        Index the annotations known when a document opens.

        Entries without an annotation ID are dropped. The valid ones become
        the batch handed to the viewer by ``document_loaded``.
        """
        valid = [a for a in annotations if a.is_valid_for_add]
        dropped = len(annotations) - len(valid)
        if dropped:
            logger.debug("Initial load dropped %d invalid annotation(s)", dropped)

        for annotation in valid:
            try:
                self.index.put(
                    annotation.annotation_id,
                    annotation.server_id,
                    annotation.document_id,
                    annotation.page_number,
                )
            except SyncError as e:
                self._fail(e)
                continue
            self.tracker.apply(
                annotation.document_id,
                annotation.annotation_id,
                ChangeKind.ADDED,
                EventOrigin.REMOTE,
            )

        self._initial_batch = valid
        logger.info("Initial load: %d annotation(s) ready", len(valid))
        return success(SyncOutcome.APPLIED)

    @property
    def initial_batch(self) -> list[Annotation] | None:
        return self._initial_batch

    def document_loaded(self) -> int:
        """
        Hand the initial batch to the viewer once it is ready for it.

        Returns:
            Number of annotations handed over (0 if no batch is pending)
        """
        if self._initial_batch is None or self.viewer is None:
            return 0
        self.viewer.load_initial_remote_annotations(list(self._initial_batch))
        return len(self._initial_batch)

    def reset(self) -> None:
        """Forget per-session state (logout)."""
        self._initial_batch = None
        self.tracker.reset()


def _in_document(annotation: Annotation, document_id: str) -> Annotation:
    if annotation.document_id == document_id:
        return annotation
    return Annotation(
        annotation_id=annotation.annotation_id,
        document_id=document_id,
        xfdf=annotation.xfdf,
        page_number=annotation.page_number,
        server_id=annotation.server_id,
        author_id=annotation.author_id,
    )
