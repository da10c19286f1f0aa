"""
Domain layer package.

Contains pure data models, result types, the error taxonomy and the
annotation lifecycle state machine. No I/O dependencies.
"""

from collabsync.domain.errors import (
    SyncError,
    RemoteTransportError,
    RemoteApplicationError,
    IndexPersistenceError,
    AuthError,
    NotLoggedInError,
    NoDocumentError,
    PayloadDecodeError,
    GraphQLErrorDetail,
)

from collabsync.domain.models import (
    UserType,
    Annotation,
    LocalAnnotationRecord,
    User,
    Document,
    LoginResult,
    Session,
    SyncContext,
)

from collabsync.domain.change_types import (
    EventOrigin,
    ChangeKind,
    RemoteChangeAction,
    SyncOutcome,
    LifecycleState,
    SyncEvent,
    RemoteChange,
    TransitionResult,
    SyncStats,
)

from collabsync.domain.results import Success, Failure, Result, success, failure

from collabsync.domain.state_machine import (
    classify_lifecycle_transition,
    LifecycleTracker,
)

__all__ = [
    # Errors
    "SyncError",
    "RemoteTransportError",
    "RemoteApplicationError",
    "IndexPersistenceError",
    "AuthError",
    "NotLoggedInError",
    "NoDocumentError",
    "PayloadDecodeError",
    "GraphQLErrorDetail",
    # Models
    "UserType",
    "Annotation",
    "LocalAnnotationRecord",
    "User",
    "Document",
    "LoginResult",
    "Session",
    "SyncContext",
    # Change types
    "EventOrigin",
    "ChangeKind",
    "RemoteChangeAction",
    "SyncOutcome",
    "LifecycleState",
    "SyncEvent",
    "RemoteChange",
    "TransitionResult",
    "SyncStats",
    # Results
    "Success",
    "Failure",
    "Result",
    "success",
    "failure",
    # State machine
    "classify_lifecycle_transition",
    "LifecycleTracker",
]
