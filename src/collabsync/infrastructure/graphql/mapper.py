"""
Decoders from GraphQL response objects to domain models.

Field names follow the selection sets in ``operations``. Missing optional
fields fall back to defaults; missing identity fields raise
PayloadDecodeError (change feed) or AuthError (login).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from collabsync.domain.change_types import RemoteChange, RemoteChangeAction
from collabsync.domain.errors import AuthError, PayloadDecodeError, RemoteApplicationError
from collabsync.domain.models import (
    Annotation,
    Document,
    LoginResult,
    Session,
    User,
    UserType,
)
from collabsync.infrastructure.graphql.client import parse_graphql_errors
from collabsync.utils.xfdf import page_number_from_xfdf

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a server timestamp.

    Accepts epoch seconds/milliseconds (number or numeric string) and ISO
    8601 strings. Unparseable values map to the current time.
    """
    if value is None or value == "":
        return datetime.now(timezone.utc)

    text = str(value).strip()
    if text.lstrip("-").isdigit():
        seconds = int(text)
        if abs(seconds) > 10**11:  # milliseconds
            seconds = seconds // 1000
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug("Out of range timestamp %r", value)
            return datetime.now(timezone.utc)

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_user(data: dict[str, Any] | None) -> User:
    if not data:
        return User()
    if not isinstance(data, dict):
        raise PayloadDecodeError(f"User payload is not an object: {data!r}")
    return User(
        id=_optional_str(data.get("id")),
        user_name=data.get("userName"),
        email=data.get("email"),
        type=UserType.from_string(data.get("type")),
    )


def decode_annotation(data: dict[str, Any], document_id: str | None = None) -> Annotation:
    """
    Decode a server annotation.

    The page comes from ``pageNumber`` when present, otherwise from the XFDF.

    Raises:
        PayloadDecodeError: A field has the wrong shape
    """
    if not isinstance(data, dict):
        raise PayloadDecodeError(f"Annotation payload is not an object: {data!r}")

    xfdf = data.get("xfdf") or ""
    if not isinstance(xfdf, str):
        raise PayloadDecodeError(f"Annotation xfdf is not a string: {xfdf!r}")

    author = data.get("author") or {}
    if not isinstance(author, dict):
        raise PayloadDecodeError(f"Annotation author is not an object: {author!r}")

    page = data.get("pageNumber")
    if page is None:
        page = page_number_from_xfdf(xfdf) or 0
    try:
        page_number = int(page)
    except (TypeError, ValueError) as e:
        raise PayloadDecodeError(f"Invalid pageNumber: {page!r}") from e

    return Annotation(
        annotation_id=_optional_str(data.get("annotationId")) or "",
        document_id=_optional_str(data.get("documentId")) or document_id or "",
        xfdf=xfdf,
        page_number=page_number,
        server_id=_optional_str(data.get("id")) or "",
        author_id=_optional_str(author.get("id")),
    )


def decode_document(data: dict[str, Any]) -> Document:
    if not isinstance(data, dict):
        raise PayloadDecodeError(f"Document payload is not an object: {data!r}")
    document_id = _optional_str(data.get("id"))
    if not document_id:
        raise PayloadDecodeError("Document payload has no id")

    members = []
    for member in data.get("members") or []:
        if not isinstance(member, dict):
            raise PayloadDecodeError(f"Document member is not an object: {member!r}")
        # Members are either membership objects wrapping a user or bare users
        user_data = member.get("user") if isinstance(member.get("user"), dict) else member
        members.append(decode_user(user_data))

    return Document(
        id=document_id,
        name=data.get("name"),
        author=decode_user(data.get("author")),
        created_at=parse_timestamp(data.get("createdAt")),
        updated_at=parse_timestamp(data.get("updatedAt")),
        is_public=bool(data.get("isPublic", True)),
        members=members,
        annotations=[
            decode_annotation(a, document_id=document_id) for a in data.get("annotations") or []
        ],
    )


def decode_login(data: dict[str, Any], field: str) -> LoginResult:
    """
    Decode a login mutation result.

    Raises:
        AuthError: The payload has no token or no user ID
    """
    login = data.get(field)
    if not isinstance(login, dict):
        raise AuthError(f"{field} returned no result")
    token = login.get("token")
    user = decode_user(login.get("user"))
    if not token or not user.id:
        raise AuthError(f"{field} returned no token or user")
    return LoginResult(token=token, user=user)


def decode_session(data: dict[str, Any]) -> Session | None:
    session = data.get("session")
    if not isinstance(session, dict) or not session.get("token"):
        return None
    return Session(token=session["token"])


def decode_annotation_changed(payload: dict[str, Any]) -> RemoteChange:
    """
    Decode one change feed message.

    Args:
        payload: Either the subscription envelope ``{"data": ..., "errors": ...}``
            or its ``data`` object

    Raises:
        RemoteApplicationError: The message carries GraphQL errors
        PayloadDecodeError: Required fields are missing or the action is unknown
    """
    if not isinstance(payload, dict):
        raise PayloadDecodeError("Change payload is not an object")

    errors = payload.get("errors")
    if errors:
        raise RemoteApplicationError(parse_graphql_errors(errors), operation="OnAnnotationChanged")

    data = payload.get("data", payload) or {}
    changed = data.get("annotationChanged") if isinstance(data, dict) else None
    if not isinstance(changed, dict):
        raise PayloadDecodeError("Change payload has no annotationChanged object")

    action = RemoteChangeAction.from_string(changed.get("action"))
    if action is None:
        raise PayloadDecodeError(f"Unknown change action: {changed.get('action')!r}")

    annotation_data = changed.get("annotation")
    if action.change_kind is None:
        # invite / markAsRead: nothing to apply, keep whatever identity is there
        if isinstance(annotation_data, dict):
            annotation = decode_annotation(annotation_data)
        else:
            annotation = Annotation(annotation_id="", document_id="")
        return RemoteChange(
            action=action,
            annotation=annotation,
            document_id=annotation.document_id or None,
            page_known=False,
        )

    if not isinstance(annotation_data, dict):
        raise PayloadDecodeError(f"{action.value} change has no annotation")

    missing = [
        name
        for name in ("id", "annotationId", "documentId")
        if not _optional_str(annotation_data.get(name))
    ]
    if missing:
        raise PayloadDecodeError(f"{action.value} change missing {', '.join(missing)}")

    annotation = decode_annotation(annotation_data)
    page_known = (
        annotation_data.get("pageNumber") is not None
        or page_number_from_xfdf(annotation.xfdf) is not None
    )
    return RemoteChange(
        action=action,
        annotation=annotation,
        document_id=annotation.document_id,
        page_known=page_known,
    )


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
