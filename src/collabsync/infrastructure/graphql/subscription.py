"""
WebSocket transport for the annotation change feed.

Speaks the ``graphql-ws`` subprotocol:

    client -> connection_init {"authToken": token}
    server -> connection_ack
    client -> start {query, variables}
    server -> data* / ka* / error / complete

Each ``data`` message's payload (``{"data": ..., "errors": ...}``) is yielded
as-is; decoding is the caller's job. A quiet feed is healthy: liveness is
checked with WebSocket pings, and only the handshake is bounded by the
keepalive timeout. The feed is not reconnected: a dropped connection ends
the iterator with RemoteTransportError.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

import websockets
from websockets.exceptions import ConnectionClosedOK, WebSocketException

from collabsync.domain.config import ClientTimeouts
from collabsync.domain.errors import RemoteApplicationError, RemoteTransportError
from collabsync.infrastructure.graphql.client import parse_graphql_errors

logger = logging.getLogger(__name__)

SUBPROTOCOL = "graphql-ws"
SUBSCRIPTION_ID = "1"


class GraphQLSubscription:
    """
    One graphql-ws subscription over one WebSocket connection.

    Usage:
        feed = GraphQLSubscription(url, ON_ANNOTATION_CHANGED, {"userId": uid}, token)
        async for payload in feed:
            ...
    """

    def __init__(
        self,
        url: str,
        query: str,
        variables: dict[str, Any],
        auth_token: str | None = None,
        timeouts: ClientTimeouts | None = None,
        operation_name: str = "",
    ) -> None:
        self.url = url
        self.query = query
        self.variables = variables
        self.auth_token = auth_token
        self.timeouts = timeouts or ClientTimeouts()
        self.operation_name = operation_name

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._run()

    async def _run(self) -> AsyncIterator[dict[str, Any]]:
        try:
            async with websockets.connect(
                self.url,
                subprotocols=[SUBPROTOCOL],
                open_timeout=self.timeouts.connect_timeout,
                ping_interval=self.timeouts.keepalive_timeout,
                ping_timeout=self.timeouts.keepalive_timeout,
            ) as ws:
                await self._handshake(ws)
                logger.info("Subscribed to %s (%s)", self.operation_name, self.url)
                try:
                    while True:
                        message = await self._receive(ws)
                        kind = message.get("type")

                        if kind == "ka":
                            continue
                        if kind == "data":
                            yield message.get("payload") or {}
                        elif kind == "error":
                            raise RemoteApplicationError(
                                parse_graphql_errors(_as_error_list(message.get("payload"))),
                                operation=self.operation_name,
                            )
                        elif kind == "complete":
                            logger.info("Subscription %s completed by server", self.operation_name)
                            return
                        else:
                            logger.debug("Ignoring graphql-ws message type %r", kind)
                finally:
                    await _send_quietly(ws, {"id": SUBSCRIPTION_ID, "type": "stop"})
                    await _send_quietly(ws, {"type": "connection_terminate"})
        except ConnectionClosedOK:
            logger.info("Subscription %s closed", self.operation_name)
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            raise RemoteTransportError(
                f"{self.operation_name}: subscription to {self.url} failed: "
                f"{str(e) or type(e).__name__}"
            ) from e

    async def _handshake(self, ws) -> None:
        await ws.send(
            json.dumps(
                {
                    "type": "connection_init",
                    "payload": {"authToken": self.auth_token} if self.auth_token else {},
                }
            )
        )
        while True:
            try:
                message = await asyncio.wait_for(
                    self._receive(ws), timeout=self.timeouts.keepalive_timeout
                )
            except asyncio.TimeoutError as e:
                raise RemoteTransportError(
                    f"{self.operation_name}: no connection_ack within "
                    f"{self.timeouts.keepalive_timeout:g}s from {self.url}"
                ) from e
            kind = message.get("type")
            if kind == "connection_ack":
                break
            if kind == "connection_error":
                raise RemoteApplicationError(
                    parse_graphql_errors(_as_error_list(message.get("payload"))),
                    operation=self.operation_name,
                )
            # keep-alives may arrive before the ack

        start: dict[str, Any] = {"query": self.query, "variables": self.variables}
        if self.operation_name:
            start["operationName"] = self.operation_name
        await ws.send(json.dumps({"id": SUBSCRIPTION_ID, "type": "start", "payload": start}))

    async def _receive(self, ws) -> dict[str, Any]:
        raw = await ws.recv()
        try:
            message = json.loads(raw)
        except ValueError as e:
            raise RemoteTransportError(f"{self.operation_name}: malformed message") from e
        if not isinstance(message, dict):
            raise RemoteTransportError(f"{self.operation_name}: message is not an object")
        return message


def _as_error_list(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and "errors" in payload:
        return list(payload.get("errors") or [])
    if payload is None:
        return []
    return [payload]


async def _send_quietly(ws, message: dict[str, Any]) -> None:
    try:
        await ws.send(json.dumps(message))
    except WebSocketException as e:
        logger.debug("Could not send %s: %s", message.get("type"), e)
