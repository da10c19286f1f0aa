"""
CollabClient - the object a host application instantiates.

Wires settings, the local annotation index, the remote store, the sync
engine and the services together, and exposes the entry points the host
viewer calls:

    async with CollabClient(settings, viewer=my_viewer) as client:
        await client.login_with_password(email, password)
        await client.open_document("doc-1")
        task = client.local_annotation_added(annotation)
"""

from __future__ import annotations

import asyncio
import logging

from collabsync.domain.change_types import ChangeKind, SyncEvent
from collabsync.domain.config import ClientSettings
from collabsync.domain.models import Annotation, SyncContext, User
from collabsync.domain.ports import AnnotationIndex, ErrorSink, HostViewer, RemoteStore
from collabsync.domain.results import Result
from collabsync.application.document_service import DocumentService
from collabsync.application.error_sink import LoggingErrorSink
from collabsync.application.in_flight import InFlightOperations
from collabsync.application.session_service import SessionService
from collabsync.application.sync.engine import SyncEngine
from collabsync.infrastructure.graphql import GraphQLRemoteStore
from collabsync.infrastructure.sqlite import AnnotationIndexStore

logger = logging.getLogger(__name__)


class CollabClient:
    """
    Facade over one collaboration session.

    ``index`` and ``remote`` default to the SQLite index at
    ``settings.index_path`` and the GraphQL remote store; tests inject fakes.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        viewer: HostViewer | None = None,
        error_sink: ErrorSink | None = None,
        index: AnnotationIndex | None = None,
        remote: RemoteStore | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()

        if index is None:
            store = AnnotationIndexStore(self.settings.index_path)
            store.initialize_schema()
            index = store
        self.index = index
        self.remote = remote or GraphQLRemoteStore(self.settings)

        self.context = SyncContext()
        self.error_sink = error_sink or LoggingErrorSink()
        self.in_flight = InFlightOperations()

        self.engine = SyncEngine(self.index, self.remote, self.context, viewer, self.error_sink)
        self.session = SessionService(
            self.remote,
            self.context,
            self.engine,
            self.index,
            error_sink=self.error_sink,
            in_flight=self.in_flight,
            clear_index_on_logout=self.settings.clear_index_on_logout,
        )
        self.documents = DocumentService(self.remote, self.context, self.error_sink)
        logger.info("CollabClient initialized (endpoint=%s)", self.settings.endpoint_url)

    async def __aenter__(self) -> CollabClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ========================================================================
    # Identity
    # ========================================================================

    @property
    def user(self) -> User | None:
        return self.context.user

    @property
    def viewer(self) -> HostViewer | None:
        return self.engine.viewer

    @viewer.setter
    def viewer(self, viewer: HostViewer | None) -> None:
        self.engine.viewer = viewer

    async def login_with_password(self, email: str, password: str) -> Result:
        return await self.session.login_with_password(email, password)

    async def login_anonymously(self, user_name: str) -> Result:
        return await self.session.login_anonymously(user_name)

    async def login_with_token(self, token: str) -> Result:
        return await self.session.login_with_token(token)

    async def resume_session(self) -> Result:
        return await self.session.resume_session()

    async def logout(self) -> Result:
        return await self.session.logout()

    async def open_document(self, document_id: str) -> Result:
        return await self.session.open_document(document_id)

    # ========================================================================
    # Host viewer entry points
    # ========================================================================

    def _spawn(self, kind: ChangeKind, annotation: Annotation) -> asyncio.Task:
        event = SyncEvent.local(kind, annotation)
        return self.in_flight.spawn(
            self.engine.apply(event), name=f"{kind.value.lower()}-{annotation.annotation_id}"
        )

    def local_annotation_added(self, annotation: Annotation) -> asyncio.Task:
        """Send a viewer-created annotation; returns the tracked task."""
        return self._spawn(ChangeKind.ADDED, annotation)

    def local_annotation_modified(self, annotation: Annotation) -> asyncio.Task:
        return self._spawn(ChangeKind.MODIFIED, annotation)

    def local_annotation_removed(self, annotation: Annotation) -> asyncio.Task:
        return self._spawn(ChangeKind.REMOVED, annotation)

    def document_loaded(self) -> int:
        """The viewer is ready: hand it the initial annotation batch."""
        return self.engine.document_loaded()

    def cancel(self, task: asyncio.Task) -> bool:
        """Cancel one in-flight operation returned by a ``local_annotation_*`` call."""
        return self.in_flight.cancel(task)

    # ========================================================================
    # Teardown
    # ========================================================================

    async def aclose(self) -> None:
        """Stop the change feed, cancel pending operations and release resources."""
        await self.session.stop_subscription()
        await self.in_flight.cancel_all()
        await self.remote.aclose()
        close = getattr(self.index, "close", None)
        if close is not None:
            close()
        logger.info("CollabClient closed (%s)", self.engine.stats.summary())
