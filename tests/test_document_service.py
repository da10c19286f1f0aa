"""
Tests for DocumentService.
"""

import string

import pytest

from collabsync.application.document_service import (
    DOCUMENT_ID_LENGTH,
    DocumentService,
    generate_document_id,
)
from collabsync.domain.errors import NotLoggedInError, RemoteApplicationError
from collabsync.domain.models import Annotation, Document, SyncContext, User


BOB = User(id="u2", user_name="bob", email="bob@example.com")


@pytest.fixture
def documents(remote, context, sink):
    return DocumentService(remote, context, sink)


class TestGenerateDocumentId:

    def test_length_and_alphabet(self):
        document_id = generate_document_id()
        assert len(document_id) == DOCUMENT_ID_LENGTH == 10
        assert set(document_id) <= set(string.ascii_letters + string.digits)

    def test_ids_differ(self):
        assert len({generate_document_id() for _ in range(50)}) == 50


class TestDocumentService:

    @pytest.mark.asyncio
    async def test_create_with_generated_id(self, documents, remote):
        annotation = Annotation("a1", "", page_number=1)

        result = await documents.create_document("Plan", annotations=[annotation])

        assert result.is_success()
        document = result.value
        assert len(document.id) == 10
        assert document.author.id == "u1"
        args = remote.calls_to("create_document")[0]
        assert args[1:] == ("Plan", "u1", True, [annotation])

    @pytest.mark.asyncio
    async def test_create_with_explicit_id(self, documents):
        result = await documents.create_document("Plan", document_id="doc-7", is_public=False)

        assert result.value.id == "doc-7"
        assert result.value.is_public is False

    @pytest.mark.asyncio
    async def test_create_requires_login(self, remote, sink):
        service = DocumentService(remote, SyncContext(), sink)

        result = await service.create_document("Plan")

        assert isinstance(result.error, NotLoggedInError)
        assert remote.calls_to("create_document") == []
        assert sink.last_error is result.error

    @pytest.mark.asyncio
    async def test_list_documents(self, documents, remote):
        remote.documents["d1"] = Document(id="d1")
        remote.documents["d2"] = Document(id="d2")

        result = await documents.list_documents()

        assert [d.id for d in result.value] == ["d1", "d2"]
        assert remote.calls_to("list_documents") == [("u1",)]

    @pytest.mark.asyncio
    async def test_get_unknown_document(self, documents):
        result = await documents.get_document("nope")
        assert result.is_success()
        assert result.value is None

    @pytest.mark.asyncio
    async def test_invite_users(self, documents, remote):
        document = Document(id="d1")

        result = await documents.invite_users(document, [BOB])

        assert result.value is True
        assert remote.calls_to("invite_users_to_document") == [("d1", [BOB])]

    @pytest.mark.asyncio
    async def test_join_public_document(self, documents, remote, user):
        document = Document(id="d1", author=BOB, is_public=True)

        result = await documents.join_document(document)

        assert result.value is True
        assert document.is_member(user)
        assert remote.calls_to("invite_users_to_document") == [("d1", [user])]

    @pytest.mark.asyncio
    async def test_join_private_document(self, documents, remote):
        document = Document(id="d1", author=BOB, is_public=False)

        result = await documents.join_document(document)

        assert result.value is False
        assert remote.calls_to("invite_users_to_document") == []

    @pytest.mark.asyncio
    async def test_join_when_already_member(self, documents, remote, user):
        document = Document(id="d1", members=[user])

        result = await documents.join_document(document)

        assert result.value is False
        assert remote.calls_to("invite_users_to_document") == []

    @pytest.mark.asyncio
    async def test_leave_document(self, documents, remote, user):
        document = Document(id="d1", members=[user, BOB])

        result = await documents.leave_document(document)

        assert result.is_success()
        assert document.members == [BOB]
        assert remote.calls_to("leave_document") == [("u1",)]

    @pytest.mark.asyncio
    async def test_remote_error_is_reported(self, documents, remote, sink):
        remote.failures["leave_document"] = RemoteApplicationError([], operation="LeaveDocument")

        result = await documents.leave_document(Document(id="d1"))

        assert result.is_failure()
        assert sink.last_error is result.error
