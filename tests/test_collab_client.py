"""
Tests for the CollabClient facade, the in-flight registry and the error sink.
"""

import asyncio

import pytest

from collabsync.application.collab_client import CollabClient
from collabsync.application.error_sink import LoggingErrorSink
from collabsync.application.in_flight import InFlightOperations
from collabsync.domain.change_types import SyncOutcome
from collabsync.domain.config import ClientSettings
from collabsync.domain.errors import NoDocumentError, RemoteTransportError
from collabsync.domain.models import Annotation, Document, User
from tests.shared.helpers import FakeRemoteStore, RecordingViewer, change_payload

ALICE = User(id="u1", user_name="alice", email="alice@example.com")


@pytest.fixture
def client_remote():
    remote = FakeRemoteStore(assign_server_ids=True)
    remote.add_account("alice@example.com", "secret", ALICE)
    remote.documents["d1"] = Document(
        id="d1", annotations=[Annotation("a0", "d1", page_number=1, server_id="s0")]
    )
    return remote


@pytest.fixture
def client(client_remote, index, viewer):
    return CollabClient(
        ClientSettings(index_path=":memory:"),
        viewer=viewer,
        index=index,
        remote=client_remote,
    )


class TestCollabClient:

    @pytest.mark.asyncio
    async def test_session_round_trip(self, client, client_remote, index, viewer):
        await client.login_with_password("alice@example.com", "secret")
        opened = await client.open_document("d1")
        assert opened.is_success()
        assert client.user == ALICE

        added = await client.local_annotation_added(Annotation("a1", "", page_number=2))
        assert added.value == SyncOutcome.APPLIED
        assert index.lookup_server_id("a1", "d1", 2) == "s1"

        moved = await client.local_annotation_modified(Annotation("a1", "d1", "<x/>", page_number=4))
        assert moved.value == SyncOutcome.APPLIED
        assert client_remote.calls_to("edit_annotation") == [("s1", "<x/>", 4)]
        assert index.lookup_page_number("a1", "d1") == 4

        removed = await client.local_annotation_removed(Annotation("a1", "d1"))
        assert removed.value == SyncOutcome.APPLIED
        assert client_remote.calls_to("delete_annotation") == [("s1",)]
        assert index.lookup_page_number("a1", "d1") is None

        assert [[a.annotation_id for a in b] for b in viewer.initial_batches] == [["a0"]]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_local_add_without_document(self, client):
        await client.login_with_password("alice@example.com", "secret")

        result = await client.local_annotation_added(Annotation("a1", "", page_number=1))

        assert isinstance(result.error, NoDocumentError)
        assert isinstance(client.error_sink.last_error, NoDocumentError)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_document_loaded_can_be_repeated(self, client, viewer):
        await client.login_with_password("alice@example.com", "secret")
        await client.open_document("d1")

        assert client.document_loaded() == 1
        assert len(viewer.initial_batches) == 2
        await client.aclose()

    @pytest.mark.asyncio
    async def test_viewer_can_be_attached_later(self, client_remote, index):
        client = CollabClient(ClientSettings(), index=index, remote=client_remote)
        await client.login_with_password("alice@example.com", "secret")
        viewer = RecordingViewer()
        client.viewer = viewer

        client_remote.push(change_payload("add", "a5", "s5", "d1", page_number=1))
        client_remote.end_feed()
        await client.session.wait_for_subscription()

        assert client.viewer is viewer
        assert [a.annotation_id for a in viewer.added] == ["a5"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_cancel_pending_operation(self, client, client_remote):
        await client.login_with_password("alice@example.com", "secret")
        await client.open_document("d1")
        gate = asyncio.Event()
        original = client_remote.add_annotation

        async def slow_add(annotation, author_id):
            await gate.wait()
            return await original(annotation, author_id)

        client_remote.add_annotation = slow_add
        task = client.local_annotation_added(Annotation("a1", "", page_number=1))
        await asyncio.sleep(0)

        assert client.cancel(task)
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not client.cancel(task)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_aclose(self, client, client_remote):
        await client.login_with_password("alice@example.com", "secret")

        await client.aclose()

        assert client_remote.closed
        assert not client.session.subscription_active

    @pytest.mark.asyncio
    async def test_async_context_manager(self, client_remote, index):
        async with CollabClient(index=index, remote=client_remote) as client:
            await client.login_anonymously("guest")
            assert client.user.id == "anon-guest"
        assert client_remote.closed

    @pytest.mark.asyncio
    async def test_logout_clears_identity(self, client, index):
        await client.login_with_password("alice@example.com", "secret")
        await client.open_document("d1")

        await client.logout()

        assert client.user is None
        assert index.count() == 0
        await client.aclose()


class TestInFlightOperations:

    @pytest.mark.asyncio
    async def test_finished_tasks_drop_out(self):
        in_flight = InFlightOperations()

        async def quick():
            return 42

        task = in_flight.spawn(quick(), name="quick")
        assert len(in_flight) == 1
        assert await task == 42
        await asyncio.sleep(0)
        assert len(in_flight) == 0

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        in_flight = InFlightOperations()
        tasks = [in_flight.spawn(asyncio.sleep(3600)) for _ in range(3)]

        cancelled = await in_flight.cancel_all()

        assert cancelled == 3
        assert all(t.cancelled() for t in tasks)
        assert await in_flight.cancel_all() == 0

    @pytest.mark.asyncio
    async def test_drain(self):
        in_flight = InFlightOperations()
        done = []

        async def work(n):
            await asyncio.sleep(0)
            done.append(n)

        for n in range(3):
            in_flight.spawn(work(n))
        await in_flight.drain()

        assert sorted(done) == [0, 1, 2]


class TestLoggingErrorSink:

    def test_keeps_most_recent(self):
        sink = LoggingErrorSink(capacity=2)
        errors = [RemoteTransportError(f"e{n}") for n in range(3)]
        for error in errors:
            sink.report(error)

        assert sink.errors == errors[1:]
        assert sink.last_error is errors[2]
        assert sink.total == 3

    def test_clear(self):
        sink = LoggingErrorSink()
        sink.report(NoDocumentError("No document is open"))
        sink.clear()

        assert len(sink) == 0
        assert sink.last_error is None
