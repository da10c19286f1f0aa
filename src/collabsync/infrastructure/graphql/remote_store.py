"""
GraphQL implementation of the RemoteStore protocol.

Combines the HTTP client (queries and mutations) and the WebSocket
subscription transport behind the operations the sync core calls.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Sequence

import httpx

from collabsync.domain.config import ClientSettings
from collabsync.domain.models import Annotation, Document, LoginResult, Session, User
from collabsync.infrastructure.graphql import mapper, operations
from collabsync.infrastructure.graphql.client import GraphQLHttpClient
from collabsync.infrastructure.graphql.subscription import GraphQLSubscription

logger = logging.getLogger(__name__)


def annotation_input(annotation: Annotation, author_id: str | None, document_id: str) -> dict[str, Any]:
    """NewAnnotationInput for a create; the server assigns the ID."""
    return {
        "id": None,
        "xfdf": annotation.xfdf,
        "annotContents": "",
        "mentionedUserIds": None,
        "authorId": author_id,
        "annotationId": annotation.annotation_id,
        "documentId": document_id,
        "pageNumber": annotation.page_number,
        "inReplyTo": None,
        "createdAt": "",
        "updatedAt": "",
    }


class GraphQLRemoteStore:
    """
    Remote collaboration service over GraphQL.

    All methods raise RemoteTransportError or RemoteApplicationError on
    failure; login methods additionally raise AuthError for an unusable
    payload.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            settings: Endpoints and timeouts (defaults if None)
            transport: Custom HTTP transport (tests pass httpx.MockTransport)
        """
        self.settings = settings or ClientSettings()
        self._http = GraphQLHttpClient(
            self.settings.endpoint_url,
            timeouts=self.settings.timeouts,
            transport=transport,
        )
        self._auth_token: str | None = None

    def set_auth_token(self, token: str | None) -> None:
        """Authorize HTTP requests and future subscriptions with ``token``."""
        self._auth_token = token
        self._http.set_auth_token(token)

    # ========================================================================
    # Annotations
    # ========================================================================

    async def add_annotation(self, annotation: Annotation, author_id: str | None) -> Annotation:
        data = await self._http.execute(
            operations.ADD_ANNOTATION,
            {"input": annotation_input(annotation, author_id, annotation.document_id)},
            operation_name="AddAnnotation",
        )
        created = data.get("addAnnotation")
        if not created or not created.get("id"):
            logger.debug("addAnnotation returned no server ID for %s", annotation.annotation_id)
            return annotation
        return annotation.with_server_id(str(created["id"]))

    async def edit_annotation(self, server_id: str, xfdf: str, page_number: int) -> None:
        await self._http.execute(
            operations.EDIT_ANNOTATION,
            {
                "id": server_id,
                "input": {
                    "xfdf": xfdf,
                    "annotContents": "",
                    "pageNumber": page_number,
                    "mentionedUserIds": None,
                    "updatedAt": "",
                },
            },
            operation_name="EditAnnotation",
        )

    async def delete_annotation(self, server_id: str) -> None:
        await self._http.execute(
            operations.DELETE_ANNOTATION, {"id": server_id}, operation_name="DeleteAnnotation"
        )

    # ========================================================================
    # Authentication
    # ========================================================================

    async def login(
        self, email: str | None = None, password: str | None = None, token: str | None = None
    ) -> LoginResult:
        data = await self._http.execute(
            operations.LOGIN,
            {"email": email, "password": password, "token": token},
            operation_name="Login",
        )
        return mapper.decode_login(data, "login")

    async def login_anonymous(self, user_name: str) -> LoginResult:
        data = await self._http.execute(
            operations.LOGIN_ANONYMOUS, {"userName": user_name}, operation_name="LoginAnonymous"
        )
        return mapper.decode_login(data, "loginAnonymous")

    async def get_session(self) -> Session | None:
        data = await self._http.execute(operations.GET_SESSION, operation_name="GetSession")
        return mapper.decode_session(data)

    # ========================================================================
    # Documents
    # ========================================================================

    async def connect_user_to_document(self, document_id: str, user_id: str) -> None:
        await self._http.execute(
            operations.CONNECT_USER_TO_DOCUMENT,
            {"documentId": document_id, "userId": user_id},
            operation_name="ConnectUserToDocument",
        )

    async def disconnect_user_from_document(self, document_id: str, user_id: str) -> None:
        await self._http.execute(
            operations.DELETE_CONNECTED_DOC_USER,
            {"documentId": document_id, "userId": user_id},
            operation_name="DeleteConnectedDocUser",
        )

    async def get_document(self, document_id: str) -> Document | None:
        data = await self._http.execute(
            operations.GET_DOCUMENT, {"id": document_id}, operation_name="GetDocumentById"
        )
        document = data.get("document")
        return mapper.decode_document(document) if document else None

    async def list_documents(self, user_id: str) -> list[Document]:
        data = await self._http.execute(
            operations.GET_DOCUMENTS_FILTERED,
            {"userId": user_id, "limit": -1},
            operation_name="GetDocumentsFiltered",
        )
        return [mapper.decode_document(d) for d in data.get("documents") or []]

    async def create_document(
        self,
        document_id: str,
        name: str,
        author_id: str,
        is_public: bool,
        annotations: Sequence[Annotation],
    ) -> Document:
        now = str(int(datetime.now(timezone.utc).timestamp()))
        data = await self._http.execute(
            operations.ADD_DOCUMENT,
            {
                "document": {
                    "id": document_id,
                    "name": name,
                    "authorId": author_id,
                    "isPublic": is_public,
                    "createdAt": now,
                    "updatedAt": now,
                },
                "annotations": [
                    annotation_input(a, a.author_id, document_id) for a in annotations
                ],
            },
            operation_name="AddDocument",
        )
        created = data.get("addDocument")
        if not created:
            return Document(id=document_id, name=name, is_public=is_public)
        return mapper.decode_document(created)

    async def invite_users_to_document(self, document_id: str, users: Sequence[User]) -> bool:
        data = await self._http.execute(
            operations.INVITE_USERS_TO_DOCUMENT,
            {
                "id": document_id,
                "usersInvited": [
                    {"id": u.id, "userName": u.user_name, "email": u.email} for u in users
                ],
            },
            operation_name="InviteUsersToDocument",
        )
        return data.get("inviteUsersToDocument") is not None

    async def leave_document(self, member_id: str) -> None:
        await self._http.execute(
            operations.LEAVE_DOCUMENT,
            {"input": {"memberId": member_id}},
            operation_name="LeaveDocument",
        )

    # ========================================================================
    # Change feed
    # ========================================================================

    def annotation_changes(self, user_id: str) -> AsyncIterator[dict[str, Any]]:
        """Open the ``annotationChanged`` subscription for ``user_id``."""
        subscription = GraphQLSubscription(
            self.settings.subscription_url,
            operations.ON_ANNOTATION_CHANGED,
            {"userId": user_id},
            auth_token=self._auth_token,
            timeouts=self.settings.timeouts,
            operation_name="OnAnnotationChanged",
        )
        return aiter(subscription)

    async def aclose(self) -> None:
        await self._http.aclose()
