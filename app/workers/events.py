"""
Job Events
In-process channel announcing when a processing job reaches a terminal state.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobEvent:
    """A job finished, successfully or not."""
    job_id: str
    message_id: str
    status: str
    error: Optional[str] = None


class JobEventBus:
    """
    Fan-out of JobEvents to subscriber queues.

    Each subscriber gets its own asyncio.Queue; publishing never blocks.
    """

    def __init__(self):
        self._subscribers: List[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def publish(self, event: JobEvent):
        logger.debug(f"Job event: {event}")
        for queue in list(self._subscribers):
            queue.put_nowait(event)

    async def wait_for(self, job_id: str, timeout: Optional[float] = None) -> JobEvent:
        """Wait for the terminal event of one job."""
        queue = self.subscribe()
        try:
            async def _next() -> JobEvent:
                while True:
                    event = await queue.get()
                    if event.job_id == job_id:
                        return event
            return await asyncio.wait_for(_next(), timeout=timeout)
        finally:
            self.unsubscribe(queue)
