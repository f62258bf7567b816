"""
Job Poller
Client-side loop that watches a processing job until it reaches a terminal state,
then refreshes the conversation once.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("completed", "error")

RefreshCallback = Callable[[List[Dict[str, Any]]], Awaitable[None]]
CompletedCallback = Callable[[str, str], Awaitable[None]]


@dataclass
class PollSchedule:
    """
    Delays between polls: fast_delay for the first fast_attempts polls, then
    slow_delay growing by backoff up to max_delay.
    """
    fast_delay: float = 1.0
    fast_attempts: int = 3
    slow_delay: float = 2.0
    backoff: float = 1.5
    max_delay: float = 5.0
    max_attempts: int = 60
    max_consecutive_failures: int = 3

    def delay_for(self, attempt: int) -> float:
        """Delay before poll number attempt (0-based)."""
        if attempt < self.fast_attempts:
            return self.fast_delay
        grown = self.slow_delay * (self.backoff ** (attempt - self.fast_attempts))
        return min(grown, self.max_delay)


@dataclass
class PollState:
    """Where the loop is."""
    attempt: int = 0
    next_delay: float = 0.0
    consecutive_failures: int = 0
    terminal: bool = False
    cancelled: bool = False
    gave_up: bool = False
    status: Optional[str] = None
    job: Optional[Dict[str, Any]] = None
    messages: List[Dict[str, Any]] = field(default_factory=list)


class JobPoller:
    """
    Poll GET /api/processing-jobs/{message_id} until completed or error.

    Transient failures are retried; after max_consecutive_failures in a row the
    poller stops without raising. cancel() (or leaving the async context) stops
    the loop immediately, including a pending wait.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        message_id: str,
        conversation_id: Optional[str] = None,
        schedule: Optional[PollSchedule] = None,
        on_refresh: Optional[RefreshCallback] = None,
        on_completed: Optional[CompletedCallback] = None,
    ):
        self.client = client
        self.message_id = message_id
        self.conversation_id = conversation_id
        self.schedule = schedule or PollSchedule()
        self.on_refresh = on_refresh
        self.on_completed = on_completed
        self.state = PollState(next_delay=self.schedule.delay_for(0))
        self._cancelled = asyncio.Event()

    def cancel(self):
        """Stop polling."""
        self.state.cancelled = True
        self._cancelled.set()

    async def __aenter__(self) -> "JobPoller":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.cancel()

    async def _wait(self, delay: float) -> bool:
        """Sleep for delay; True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    async def _fetch_job(self) -> Dict[str, Any]:
        response = await self.client.get(f"/api/processing-jobs/{self.message_id}")
        response.raise_for_status()
        return response.json()

    async def _refresh(self):
        """Re-fetch the message list once after the job settles."""
        if self.conversation_id:
            try:
                response = await self.client.get(f"/api/conversations/{self.conversation_id}/messages")
                response.raise_for_status()
                self.state.messages = response.json()
            except httpx.HTTPError as e:
                logger.warning(f"Could not refresh messages for {self.conversation_id}: {e}")
        if self.on_refresh:
            await self.on_refresh(self.state.messages)

    async def run(self) -> PollState:
        """Poll until terminal, cancelled, out of attempts or out of retries."""
        state = self.state

        while state.attempt < self.schedule.max_attempts:
            state.next_delay = self.schedule.delay_for(state.attempt)
            if state.cancelled or await self._wait(state.next_delay):
                logger.debug(f"Polling for {self.message_id} cancelled")
                return state

            state.attempt += 1
            try:
                job = await self._fetch_job()
            except (httpx.HTTPError, ValueError) as e:
                state.consecutive_failures += 1
                logger.debug(
                    f"Poll {state.attempt} for {self.message_id} failed "
                    f"({state.consecutive_failures}/{self.schedule.max_consecutive_failures}): {e}"
                )
                if state.consecutive_failures >= self.schedule.max_consecutive_failures:
                    logger.warning(f"Giving up on {self.message_id} after {state.consecutive_failures} failed polls")
                    state.gave_up = True
                    return state
                continue

            state.consecutive_failures = 0
            state.job = job
            state.status = job.get("status")

            if state.status in TERMINAL_STATUSES:
                state.terminal = True
                await self._refresh()
                if state.status == "completed" and self.on_completed and job.get("processedImageUrl"):
                    await self.on_completed(job.get("originalImageUrl"), job["processedImageUrl"])
                return state

        logger.warning(f"Job for {self.message_id} still not finished after {state.attempt} polls")
        state.gave_up = True
        return state


async def poll_job(
    base_url: str,
    message_id: str,
    conversation_id: Optional[str] = None,
    schedule: Optional[PollSchedule] = None,
    headers: Optional[Dict[str, str]] = None,
) -> PollState:
    """Poll one job against a running API (convenience function)."""
    async with httpx.AsyncClient(base_url=base_url, headers=headers, timeout=30.0) as client:
        async with JobPoller(client, message_id, conversation_id=conversation_id, schedule=schedule) as poller:
            return await poller.run()
