"""
Background Executor
Runs detached coroutines on the API process's event loop and tracks them until
they finish. There is no queue and no retry: a task runs once.
"""

import asyncio
import logging
from typing import Awaitable, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundExecutor:
    """
    Fire-and-forget task runner with explicit lifecycle.

    Features:
    - Keeps references to running tasks so they are not garbage collected
    - Logs any exception a task lets escape
    - drain() waits for in-flight work at shutdown
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
        """Schedule a coroutine and return its task."""
        if self._closed:
            coro.close()
            raise RuntimeError("Executor is shut down")

        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug(f"Submitted background task {task.get_name()}")
        return task

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[ERROR] Background task {task.get_name()} failed: {error}", exc_info=error)

    async def drain(self, timeout: Optional[float] = None):
        """Wait for all in-flight tasks."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} background task(s) still running after {timeout}s")

    async def shutdown(self, timeout: Optional[float] = 10.0):
        """Stop accepting work and give in-flight tasks time to finish."""
        self._closed = True
        await self.drain(timeout=timeout)
