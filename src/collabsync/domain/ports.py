"""
Protocols (interfaces) for the collaborators of the sync core.

The core never imports a concrete viewer or transport; it talks to these
protocols. GraphQLRemoteStore and AnnotationIndexStore are the production
implementations, tests use in-memory fakes.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Protocol, Sequence

from collabsync.domain.errors import SyncError
from collabsync.domain.models import (
    Annotation,
    Document,
    LocalAnnotationRecord,
    LoginResult,
    Session,
    User,
)


class HostViewer(Protocol):
    """The PDF viewer that emits local changes and renders remote ones."""

    def remote_annotation_added(self, annotation: Annotation) -> None:
        ...

    def remote_annotation_modified(self, annotation: Annotation) -> None:
        ...

    def remote_annotation_removed(self, annotation: Annotation) -> None:
        ...

    def load_initial_remote_annotations(self, annotations: Sequence[Annotation]) -> None:
        """Render the initial batch once the document is ready."""
        ...


class ErrorSink(Protocol):
    """Single seam that receives every non-fatal failure."""

    def report(self, error: SyncError) -> None:
        ...


class AnnotationIndex(Protocol):
    """Durable (annotation, document, page) -> server ID mapping."""

    def put(self, annotation_id: str, server_id: str, document_id: str, page_number: int) -> None:
        ...

    def lookup_server_id(self, annotation_id: str, document_id: str, page_number: int) -> str | None:
        ...

    def lookup_page_number(self, annotation_id: str, document_id: str) -> int | None:
        ...

    def update_page_number(
        self, annotation_id: str, server_id: str, document_id: str, new_page_number: int
    ) -> None:
        ...

    def remove(self, annotation_id: str, document_id: str, page_number: int) -> None:
        ...

    def clear(self) -> None:
        ...

    def records(self, document_id: str | None = None) -> list[LocalAnnotationRecord]:
        ...


class RemoteStore(Protocol):
    """The GraphQL collaboration service, reduced to what the core calls."""

    def set_auth_token(self, token: str | None) -> None:
        ...

    async def add_annotation(self, annotation: Annotation, author_id: str | None) -> Annotation:
        """Create the annotation; the result carries the server ID when returned."""
        ...

    async def edit_annotation(self, server_id: str, xfdf: str, page_number: int) -> None:
        ...

    async def delete_annotation(self, server_id: str) -> None:
        ...

    async def login(
        self, email: str | None = None, password: str | None = None, token: str | None = None
    ) -> LoginResult:
        ...

    async def login_anonymous(self, user_name: str) -> LoginResult:
        ...

    async def get_session(self) -> Session | None:
        ...

    async def connect_user_to_document(self, document_id: str, user_id: str) -> None:
        ...

    async def disconnect_user_from_document(self, document_id: str, user_id: str) -> None:
        ...

    async def get_document(self, document_id: str) -> Document | None:
        ...

    async def list_documents(self, user_id: str) -> list[Document]:
        ...

    async def create_document(
        self,
        document_id: str,
        name: str,
        author_id: str,
        is_public: bool,
        annotations: Sequence[Annotation],
    ) -> Document:
        ...

    async def invite_users_to_document(self, document_id: str, users: Sequence[User]) -> bool:
        ...

    async def leave_document(self, member_id: str) -> None:
        ...

    def annotation_changes(self, user_id: str) -> AsyncIterator[dict[str, Any]]:
        """Raw ``annotationChanged`` payloads for the user, until closed."""
        ...

    async def aclose(self) -> None:
        ...
