"""
Tracking of in-flight sync operations.

Host-facing entry points schedule engine coroutines as tasks and return
them; this registry lets the client cancel one of them or all of them
(logout, shutdown).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class InFlightOperations:
    """Set of running operation tasks; finished tasks drop out on their own."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        """Schedule ``coro`` on the running loop and track it until done."""
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel(self, task: asyncio.Task) -> bool:
        """Cancel one tracked task. Returns False if it was not in flight."""
        if task not in self._tasks:
            return False
        return task.cancel()

    async def cancel_all(self) -> int:
        """Cancel every tracked task and wait until they have stopped."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d in-flight operation(s)", len(tasks))
        return len(tasks)

    async def drain(self) -> None:
        """Wait for every tracked task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def __len__(self) -> int:
        return len(self._tasks)
