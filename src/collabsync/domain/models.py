"""
Domain models for collabsync.

This module contains the core entities exchanged between the host viewer,
the sync engine and the remote collaboration service:
- Annotations and the local index records that map them to server IDs
- Users, documents and login/session payloads
- The explicit SyncContext holding the current user and document

These models are pure data structures with no I/O dependencies.
They are serialized to/from SQLite and GraphQL by the infrastructure layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from collabsync.domain.errors import NoDocumentError, NotLoggedInError
from collabsync.utils.xfdf import page_number_from_xfdf


# ============================================================================
# Enumerations
# ============================================================================

class UserType(str, Enum):
    """Kind of account a user logged in with."""
    STANDARD = "STANDARD"
    ANONYMOUS = "ANONYMOUS"

    @classmethod
    def from_string(cls, value: str | None) -> UserType:
        """Parse the server's user type, defaulting to anonymous."""
        if value and str(value).upper().strip() == "STANDARD":
            return cls.STANDARD
        return cls.ANONYMOUS


# ============================================================================
# Annotation Models
# ============================================================================

@dataclass
class Annotation:
    """
    A single annotation belonging to a document.

    Attributes:
        annotation_id: Identifier assigned by the viewer, stable across edits
        document_id: ID of the document the annotation belongs to
        xfdf: Serialized markup of the annotation (opaque to the sync core)
        page_number: 1-based page the annotation currently lives on
        server_id: Identifier assigned by the remote store ("" until created)
        author_id: ID of the annotation's author, if known
    """
    annotation_id: str
    document_id: str
    xfdf: str = ""
    page_number: int = 0
    server_id: str = ""
    author_id: str | None = None

    @classmethod
    def from_viewer(
        cls,
        annotation_id: str | None,
        document_id: str | None,
        xfdf: str | None,
        author_id: str | None = None,
        page_number: int | None = None,
    ) -> Annotation:
        """
        Build an annotation from a host viewer event.

        Viewers that do not report the page explicitly get it derived once
        from the XFDF payload; 0 when it cannot be determined.
        """
        if page_number is None:
            page_number = page_number_from_xfdf(xfdf) or 0
        return cls(
            annotation_id=annotation_id or "",
            document_id=document_id or "",
            xfdf=xfdf or "",
            page_number=page_number,
            author_id=author_id,
        )

    @property
    def is_valid_for_add(self) -> bool:
        """Whether the annotation carries enough identity to be created."""
        return bool(self.annotation_id and self.annotation_id.strip())

    def with_server_id(self, server_id: str) -> Annotation:
        """Copy of this annotation bound to a server-assigned ID."""
        return Annotation(
            annotation_id=self.annotation_id,
            document_id=self.document_id,
            xfdf=self.xfdf,
            page_number=self.page_number,
            server_id=server_id,
            author_id=self.author_id,
        )


@dataclass(frozen=True)
class LocalAnnotationRecord:
    """
    One row of the local annotation index.

    At most one record exists per (annotation_id, document_id) pair.
    """
    annotation_id: str
    server_id: str
    document_id: str
    page_number: int
    updated_at: datetime | None = None


# ============================================================================
# Users and Documents
# ============================================================================

@dataclass
class User:
    """A collaboration user. Equality ignores the account type."""
    id: str | None = None
    user_name: str | None = None
    email: str | None = None
    type: UserType = UserType.ANONYMOUS

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return (
            self.id == other.id
            and self.user_name == other.user_name
            and self.email == other.email
        )

    def __hash__(self) -> int:
        return hash((self.id, self.user_name, self.email))


@dataclass
class Document:
    """
    A collaboration document and its members.

    Attributes:
        id: Document ID on the server
        name: Display name
        author: User who created the document
        created_at: Creation time
        updated_at: Last update time
        is_public: Whether non-members may join
        members: Users connected to the document
        annotations: Annotations known to the server
    """
    id: str
    name: str | None = None
    author: User = field(default_factory=User)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_public: bool = True
    members: list[User] = field(default_factory=list)
    annotations: list[Annotation] = field(default_factory=list)

    def is_member(self, user: User | None) -> bool:
        """Check if the user is a member of the document."""
        if user is None:
            return False
        return user in self.members

    def is_author(self, user: User | None) -> bool:
        """Check if the user authored the document."""
        if user is None:
            return False
        return self.author == user

    def can_join(self, user: User | None) -> bool:
        """A user can join a public document they are not yet a member of."""
        return not self.is_member(user) and self.is_public


@dataclass(frozen=True)
class LoginResult:
    """Token and user returned by a successful login."""
    token: str
    user: User


@dataclass(frozen=True)
class Session:
    """Server-side session of a previously logged in user."""
    token: str


# ============================================================================
# Sync Context
# ============================================================================

@dataclass
class SyncContext:
    """
    Current identity and document for one collaboration session.

    Passed explicitly into the engine and services; nothing in collabsync
    keeps a process-wide client.
    """
    user: User | None = None
    document_id: str | None = None
    auth_token: str | None = None

    @property
    def current_user_id(self) -> str | None:
        return self.user.id if self.user else None

    @property
    def is_logged_in(self) -> bool:
        return self.current_user_id is not None

    def require_user(self) -> User:
        """Return the logged in user or raise NotLoggedInError."""
        if self.user is None or self.user.id is None:
            raise NotLoggedInError("No user is logged in")
        return self.user

    def require_document(self) -> str:
        """Return the open document ID or raise NoDocumentError."""
        if not self.document_id:
            raise NoDocumentError("No document is open")
        return self.document_id

    def clear(self) -> None:
        self.user = None
        self.document_id = None
        self.auth_token = None
