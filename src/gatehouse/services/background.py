"""Fire-and-forget background work."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Tracks best-effort tasks whose outcome never reaches the caller.

    A failed task (an exception, or a coroutine returning False) is logged.
    References are held until completion so tasks are not garbage collected
    mid-flight.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task[Any]:
        """Schedule a coroutine without awaiting it."""
        task = asyncio.create_task(coro, name=description)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task cancelled: {task.get_name()}")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task failed: {task.get_name()}: {error!r}", exc_info=error)
        elif task.result() is False:
            logger.warning(f"Background task reported failure: {task.get_name()}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = 10.0) -> None:
        """Wait for outstanding tasks, cancelling whatever is left after the timeout."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        _, not_done = await asyncio.wait(tasks, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning(f"Cancelled {len(not_done)} background task(s) on shutdown")
