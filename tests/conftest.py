"""
Shared fixtures for the collabsync test suite.
"""

import pytest

from collabsync.application.error_sink import LoggingErrorSink
from collabsync.application.sync.engine import SyncEngine
from collabsync.domain.models import SyncContext, User, UserType
from collabsync.infrastructure.sqlite import AnnotationIndexStore
from tests.shared.helpers import FakeRemoteStore, RecordingViewer


@pytest.fixture
def index():
    store = AnnotationIndexStore(":memory:")
    store.initialize_schema()
    yield store
    store.close()


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def viewer():
    return RecordingViewer()


@pytest.fixture
def sink():
    return LoggingErrorSink()


@pytest.fixture
def user():
    return User(id="u1", user_name="alice", email="alice@example.com", type=UserType.STANDARD)


@pytest.fixture
def context(user):
    """Logged in as u1 with document d1 open."""
    return SyncContext(user=user, document_id="d1", auth_token="token-1")


@pytest.fixture
def engine(index, remote, context, viewer, sink):
    return SyncEngine(index, remote, context, viewer, sink)
