"""
HTTP GraphQL client.

Posts queries and mutations to the collaboration endpoint with httpx and
turns every failure into the collabsync error taxonomy:

- network errors, timeouts, non-2xx responses, malformed JSON
  -> RemoteTransportError
- a non-empty ``errors`` list -> RemoteApplicationError

Requests are attempted exactly once.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from collabsync.domain.config import ClientTimeouts
from collabsync.domain.errors import (
    GraphQLErrorDetail,
    RemoteApplicationError,
    RemoteTransportError,
)

logger = logging.getLogger(__name__)


def parse_graphql_errors(errors: Any) -> list[GraphQLErrorDetail]:
    """Convert a response's ``errors`` member into structured details."""
    details = []
    for error in errors or []:
        if isinstance(error, dict):
            details.append(GraphQLErrorDetail.from_dict(error))
        else:
            details.append(GraphQLErrorDetail(message=str(error)))
    return details


class GraphQLHttpClient:
    """
    Thin async GraphQL-over-HTTP client.

    Usage:
        client = GraphQLHttpClient("http://localhost:3000/graphql")
        client.set_auth_token(token)
        data = await client.execute(GET_SESSION, operation_name="GetSession")
        await client.aclose()
    """

    def __init__(
        self,
        endpoint_url: str,
        timeouts: ClientTimeouts | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            endpoint_url: GraphQL HTTP endpoint
            timeouts: Request/connect timeouts (defaults if None)
            transport: Custom transport (tests pass httpx.MockTransport)
        """
        self.endpoint_url = endpoint_url
        timeouts = timeouts or ClientTimeouts()
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeouts.request_timeout, connect=timeouts.connect_timeout),
            transport=transport or httpx.AsyncHTTPTransport(retries=0),
            headers={"Accept": "application/json"},
        )

    @property
    def auth_token(self) -> str | None:
        header = self._client.headers.get("Authorization")
        if header and header.startswith("Bearer "):
            return header[len("Bearer "):]
        return None

    def set_auth_token(self, token: str | None) -> None:
        """Send ``Authorization: Bearer <token>`` on every following request."""
        if token:
            self._client.headers["Authorization"] = f"Bearer {token}"
        else:
            self._client.headers.pop("Authorization", None)

    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation_name: str = "",
    ) -> dict[str, Any]:
        """
        Run one GraphQL operation.

        Args:
            query: Operation document
            variables: Operation variables
            operation_name: Name used in logs and error messages

        Returns:
            The response's ``data`` object

        Raises:
            RemoteTransportError: The request did not produce a usable response
            RemoteApplicationError: The server reported GraphQL errors
        """
        body: dict[str, Any] = {"query": query, "variables": variables or {}}
        if operation_name:
            body["operationName"] = operation_name

        logger.debug("GraphQL %s -> %s", operation_name or "operation", self.endpoint_url)
        try:
            response = await self._client.post(self.endpoint_url, json=body)
        except httpx.TimeoutException as e:
            raise RemoteTransportError(f"{operation_name}: request timed out") from e
        except httpx.HTTPError as e:
            raise RemoteTransportError(f"{operation_name}: {e}") from e

        if not response.is_success:
            raise RemoteTransportError(
                f"{operation_name}: HTTP {response.status_code} from {self.endpoint_url}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteTransportError(f"{operation_name}: malformed JSON response") from e

        if not isinstance(payload, dict):
            raise RemoteTransportError(f"{operation_name}: response is not a JSON object")

        errors = payload.get("errors")
        if errors:
            details = parse_graphql_errors(errors)
            logger.warning(
                "GraphQL %s failed: %s", operation_name, "; ".join(d.message for d in details)
            )
            raise RemoteApplicationError(details, operation=operation_name)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise RemoteTransportError(f"{operation_name}: response carries no data")
        return data

    async def aclose(self) -> None:
        await self._client.aclose()
