"""
Client settings domain model.

This module defines the settings that control where the collaboration
service lives, where the local annotation index is stored, and the network
timeouts used by the remote store client.
"""

import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class ClientTimeouts(BaseModel):
    """
    Timeout settings for remote operations.

    The client never retries; these bound how long a single attempt may take.
    """

    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for GraphQL queries and mutations",
        ge=1.0,
        le=300.0
    )

    connect_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for establishing HTTP and WebSocket connections",
        ge=1.0,
        le=120.0
    )

    keepalive_timeout: float = Field(
        default=60.0,
        description="WebSocket ping interval and pong deadline in seconds; also bounds the wait for connection_ack",
        ge=5.0,
        le=3600.0
    )


class ClientSettings(BaseModel):
    """
    Settings for one CollabClient.

    Loaded from ``config/collabsync.json`` with COLLABSYNC_* environment
    overrides (see infrastructure.config_loader).
    """

    endpoint_url: str = Field(
        default="http://localhost:3000/graphql",
        description="HTTP endpoint for queries and mutations"
    )

    subscription_url: str = Field(
        default="ws://localhost:3000/subscribe",
        description="WebSocket endpoint for the annotation change feed"
    )

    index_path: str = Field(
        default="output/annotation_index.db",
        description="SQLite file holding the local annotation index (':memory:' for tests)"
    )

    timeouts: ClientTimeouts = ClientTimeouts()

    clear_index_on_logout: bool = Field(
        default=True,
        description="Whether logout wipes the local annotation index"
    )

    log_level: str = Field(
        default="INFO",
        description="Console log level"
    )

    log_file: str | None = Field(
        default=None,
        description="Optional log file (always written at DEBUG)"
    )

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        """The query endpoint must be plain HTTP(S)."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"endpoint_url must start with http:// or https://, got {v!r}")
        return v.rstrip("/")

    @field_validator("subscription_url")
    @classmethod
    def validate_subscription_url(cls, v: str) -> str:
        """The change feed endpoint must be a WebSocket URL."""
        if not v.startswith(("ws://", "wss://")):
            raise ValueError(f"subscription_url must start with ws:// or wss://, got {v!r}")
        if v.startswith("ws://") and "localhost" not in v and "127.0.0.1" not in v:
            logger.warning("Subscription URL %s is not encrypted", v)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper().strip()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level
