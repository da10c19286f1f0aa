"""
Document Service - document and membership operations.

Everything a logged in user does with documents besides viewing one:
listing, fetching, creating, inviting, joining and leaving.
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import Sequence

from collabsync.domain.errors import SyncError
from collabsync.domain.models import Annotation, Document, SyncContext, User
from collabsync.domain.ports import ErrorSink, RemoteStore
from collabsync.domain.results import Failure, Result, failure, success
from collabsync.application.error_sink import LoggingErrorSink

logger = logging.getLogger(__name__)

DOCUMENT_ID_LENGTH = 10
_DOCUMENT_ID_ALPHABET = string.ascii_letters + string.digits


def generate_document_id(length: int = DOCUMENT_ID_LENGTH) -> str:
    """Random alphanumeric ID for documents created without one."""
    return "".join(secrets.choice(_DOCUMENT_ID_ALPHABET) for _ in range(length))


class DocumentService:
    """Document operations on behalf of the logged in user."""

    def __init__(
        self,
        remote: RemoteStore,
        context: SyncContext,
        error_sink: ErrorSink | None = None,
    ) -> None:
        self.remote = remote
        self.context = context
        self.error_sink = error_sink or LoggingErrorSink()

    def _fail(self, error: SyncError) -> Failure[SyncError]:
        self.error_sink.report(error)
        return failure(error)

    async def list_documents(self) -> Result:
        """Documents visible to the current user."""
        try:
            user = self.context.require_user()
            documents = await self.remote.list_documents(user.id)
        except SyncError as e:
            return self._fail(e)
        logger.debug("Fetched %d document(s)", len(documents))
        return success(documents)

    async def get_document(self, document_id: str) -> Result:
        """Success(Document) or Success(None) if the server does not know it."""
        try:
            document = await self.remote.get_document(document_id)
        except SyncError as e:
            return self._fail(e)
        return success(document)

    async def create_document(
        self,
        name: str,
        document_id: str | None = None,
        is_public: bool = True,
        annotations: Sequence[Annotation] = (),
    ) -> Result:
        """
        Create a document authored by the current user.

        Args:
            name: Display name
            document_id: Explicit ID (a random 10-character ID if None)
            is_public: Whether other users may join
            annotations: Annotations to upload with the document
        """
        document_id = document_id or generate_document_id()
        try:
            user = self.context.require_user()
            document = await self.remote.create_document(
                document_id, name, user.id, is_public, list(annotations)
            )
        except SyncError as e:
            return self._fail(e)
        logger.info("Created document %s (%s)", document.id, name)
        return success(document)

    async def invite_users(self, document: Document, users: Sequence[User]) -> Result:
        """Success(True) when the server accepted the invitation."""
        try:
            invited = await self.remote.invite_users_to_document(document.id, list(users))
        except SyncError as e:
            return self._fail(e)
        return success(invited)

    async def join_document(self, document: Document) -> Result:
        """
        Add the current user to a public document.

        Returns:
            Success(False) without a remote call when the user cannot join
        """
        try:
            user = self.context.require_user()
        except SyncError as e:
            return self._fail(e)

        if not document.can_join(user):
            logger.debug("User %s cannot join document %s", user.id, document.id)
            return success(False)

        result = await self.invite_users(document, [user])
        if result.is_success() and result.value:
            document.members.append(user)
        return result

    async def leave_document(self, document: Document) -> Result:
        """Remove the current user from the document's members."""
        try:
            user = self.context.require_user()
            await self.remote.leave_document(user.id)
        except SyncError as e:
            return self._fail(e)
        if user in document.members:
            document.members.remove(user)
        logger.info("Left document %s", document.id)
        return success(None)
