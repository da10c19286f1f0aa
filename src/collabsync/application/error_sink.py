"""
Default error sink.

Every non-fatal failure of the engine and services ends up here. The sink
logs it and keeps the most recent ones for inspection.
"""

from __future__ import annotations

import logging
from collections import deque

from collabsync.domain.errors import (
    IndexPersistenceError,
    NoDocumentError,
    NotLoggedInError,
    SyncError,
)

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class LoggingErrorSink:
    """
    ErrorSink that logs each error and remembers the last ``capacity``.

    Session precondition failures are logged at WARNING, everything else at
    ERROR.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._errors: deque[SyncError] = deque(maxlen=capacity)
        self.total = 0

    def report(self, error: SyncError) -> None:
        self._errors.append(error)
        self.total += 1
        if isinstance(error, (NotLoggedInError, NoDocumentError)):
            logger.warning("%s: %s", type(error).__name__, error)
        elif isinstance(error, IndexPersistenceError):
            logger.error("Local index failure: %s", error)
        else:
            logger.error("%s: %s", type(error).__name__, error)

    @property
    def errors(self) -> list[SyncError]:
        """Most recent errors, oldest first."""
        return list(self._errors)

    @property
    def last_error(self) -> SyncError | None:
        return self._errors[-1] if self._errors else None

    def clear(self) -> None:
        self._errors.clear()

    def __len__(self) -> int:
        return len(self._errors)
