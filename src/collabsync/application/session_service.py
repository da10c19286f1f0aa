"""
Session Service - login, logout and the open document.

Owns the identity half of a collaboration session:
- the login variants (password, anonymous, token, resumed session)
- the single change feed subscription of the logged in user
- opening a document and feeding its annotations to the initial load
- logout teardown

All public methods return a Result; failures also reach the error sink.
"""

from __future__ import annotations

import asyncio
import logging

from collabsync.domain.errors import AuthError, NoDocumentError, SyncError
from collabsync.domain.models import Document, LoginResult, SyncContext, User
from collabsync.domain.ports import AnnotationIndex, ErrorSink, RemoteStore
from collabsync.domain.results import Failure, Result, failure, success
from collabsync.application.in_flight import InFlightOperations
from collabsync.application.sync.engine import SyncEngine

logger = logging.getLogger(__name__)


class SessionService:
    """
    Login state, change feed subscription and document opening.

    Usage:
        session = SessionService(remote, context, engine, index)
        result = await session.login_with_password("me@example.com", "secret")
        await session.open_document("doc-1")
        ...
        await session.logout()
    """

    def __init__(
        self,
        remote: RemoteStore,
        context: SyncContext,
        engine: SyncEngine,
        index: AnnotationIndex,
        error_sink: ErrorSink | None = None,
        in_flight: InFlightOperations | None = None,
        clear_index_on_logout: bool = True,
    ) -> None:
        self.remote = remote
        self.context = context
        self.engine = engine
        self.index = index
        self.error_sink = error_sink or engine.error_sink
        self.in_flight = in_flight or InFlightOperations()
        self.clear_index_on_logout = clear_index_on_logout
        self._subscription: asyncio.Task | None = None

    def _fail(self, error: SyncError) -> Failure[SyncError]:
        self.error_sink.report(error)
        return failure(error)

    # ========================================================================
    # Login
    # ========================================================================

    async def login_with_password(self, email: str, password: str) -> Result:
        return await self._login("password", self.remote.login(email=email, password=password))

    async def login_anonymously(self, user_name: str) -> Result:
        return await self._login("anonymous", self.remote.login_anonymous(user_name))

    async def login_with_token(self, token: str) -> Result:
        return await self._login("token", self.remote.login(token=token))

    async def resume_session(self) -> Result:
        """Log in again with the server's session token, if it has one."""
        try:
            session = await self.remote.get_session()
        except SyncError as e:
            return self._fail(AuthError(f"Session lookup failed: {e}"))
        if session is None:
            return self._fail(AuthError("No session to resume"))
        return await self.login_with_token(session.token)

    async def _login(self, method: str, attempt) -> Result:
        try:
            login: LoginResult = await attempt
        except AuthError as e:
            return self._fail(e)
        except SyncError as e:
            return self._fail(AuthError(f"Login ({method}) failed: {e}"))

        self.context.user = login.user
        self.context.auth_token = login.token
        self.remote.set_auth_token(login.token)
        logger.info("Logged in as %s (%s)", login.user.user_name or login.user.id, method)

        self.start_subscription()
        return success(login.user)

    # ========================================================================
    # Change feed
    # ========================================================================

    @property
    def subscription_active(self) -> bool:
        return self._subscription is not None and not self._subscription.done()

    def start_subscription(self) -> asyncio.Task:
        """
        Subscribe to the logged in user's change feed.

        Replaces any previous subscription; there is at most one per session.
        """
        user = self.context.require_user()
        if self._subscription is not None:
            self._subscription.cancel()
        self._subscription = asyncio.get_running_loop().create_task(
            self._consume(user.id), name=f"annotation-feed-{user.id}"
        )
        return self._subscription

    async def _consume(self, user_id: str) -> None:
        logger.info("Listening for annotation changes of user %s", user_id)
        try:
            async for payload in self.remote.annotation_changes(user_id):
                await self.engine.handle_push(payload)
        except SyncError as e:
            self.error_sink.report(e)
        logger.info("Annotation change feed ended")

    async def stop_subscription(self) -> None:
        task, self._subscription = self._subscription, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.debug("Change feed subscription stopped")

    async def wait_for_subscription(self) -> None:
        """Block until the change feed ends (used by the watch command)."""
        if self._subscription is not None:
            await asyncio.shield(self._subscription)

    # ========================================================================
    # Documents
    # ========================================================================

    async def open_document(self, document_id: str) -> Result:
        """
        Connect to a document and load its annotations.

        A different document that is still open is closed first; a failed
        disconnect from it is reported but does not block the switch.

        Returns:
            Success(Document) once the initial batch has been handed over
        """
        try:
            user = self.context.require_user()
        except SyncError as e:
            return self._fail(e)

        previous = self.context.document_id
        if previous and previous != document_id:
            logger.info("Leaving document %s for %s", previous, document_id)
            await self.close_document()

        try:
            await self.remote.connect_user_to_document(document_id, user.id)
            document = await self.remote.get_document(document_id)
        except SyncError as e:
            return self._fail(e)

        if document is None:
            return self._fail(NoDocumentError(f"Document {document_id} not found"))

        self.context.document_id = document.id
        self.engine.initial_load(document.annotations)
        handed_over = self.engine.document_loaded()
        logger.info(
            "Opened document %s (%d annotation(s) loaded)", document.id, handed_over
        )
        return success(document)

    async def close_document(self) -> Result:
        """Disconnect from the open document; the session stays logged in."""
        document_id = self.context.document_id
        if not document_id:
            return success(None)
        self.context.document_id = None
        error = await self._disconnect(document_id)
        if error is not None:
            return failure(error)
        return success(document_id)

    async def _disconnect(self, document_id: str) -> SyncError | None:
        user: User | None = self.context.user
        if user is None or user.id is None:
            return None
        try:
            await self.remote.disconnect_user_from_document(document_id, user.id)
        except SyncError as e:
            self.error_sink.report(e)
            return e
        return None

    # ========================================================================
    # Logout
    # ========================================================================

    async def logout(self) -> Result:
        """
        End the session.

        The disconnect call is best effort; local teardown always happens.
        """
        if self.context.document_id:
            await self._disconnect(self.context.document_id)

        await self.stop_subscription()
        await self.in_flight.cancel_all()

        self.context.clear()
        self.remote.set_auth_token(None)
        self.engine.reset()

        if self.clear_index_on_logout:
            try:
                self.index.clear()
            except SyncError as e:
                return self._fail(e)

        logger.info("Logged out")
        return success(None)
