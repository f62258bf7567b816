"""
Tests for the client-side job poller.
"""

import asyncio

import httpx
import pytest

from app.client.poller import JobPoller, PollSchedule

FAST = PollSchedule(fast_delay=0.001, fast_attempts=3, slow_delay=0.001, backoff=1.0, max_delay=0.001)


class ScriptedServer:
    """Answers job polls from a list of (status code, job status) steps."""

    def __init__(self, steps, messages=None):
        self.steps = list(steps)
        self.messages = messages or []
        self.job_polls = 0
        self.message_fetches = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/api/conversations/"):
            self.message_fetches += 1
            return httpx.Response(200, json=self.messages)

        self.job_polls += 1
        status_code, status = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if status_code != 200:
            return httpx.Response(status_code, json={"detail": "unavailable"})
        return httpx.Response(200, json={
            "id": "job_1",
            "messageId": "msg_1",
            "status": status,
            "originalImageUrl": "/api/images/in.png",
            "processedImageUrl": "/api/images/out.png" if status == "completed" else None,
            "errorMessage": "boom" if status == "error" else None,
        })


def make_client(server):
    return httpx.AsyncClient(transport=httpx.MockTransport(server), base_url="http://editor.test")


class TestPollSchedule:
    def test_default_delays(self):
        schedule = PollSchedule()

        assert [schedule.delay_for(i) for i in range(3)] == [1.0, 1.0, 1.0]
        assert schedule.delay_for(3) == 2.0
        assert schedule.delay_for(4) == 3.0
        assert schedule.delay_for(10) == 5.0

    def test_delays_never_exceed_max(self):
        schedule = PollSchedule()
        assert max(schedule.delay_for(i) for i in range(schedule.max_attempts)) == schedule.max_delay


class TestJobPoller:
    """Polling loop outcomes."""

    @pytest.mark.asyncio
    async def test_polls_until_completed(self):
        server = ScriptedServer(
            [(200, "processing"), (200, "processing"), (200, "completed")],
            messages=[{"id": "msg_1", "role": "assistant"}],
        )
        refreshed = []
        completed = []

        async def on_refresh(messages):
            refreshed.append(messages)

        async def on_completed(original, processed):
            completed.append((original, processed))

        async with make_client(server) as client:
            poller = JobPoller(client, "msg_1", conversation_id="conv_1", schedule=FAST,
                               on_refresh=on_refresh, on_completed=on_completed)
            state = await poller.run()

        assert state.terminal is True
        assert state.status == "completed"
        assert state.attempt == 3
        assert server.message_fetches == 1
        assert refreshed == [[{"id": "msg_1", "role": "assistant"}]]
        assert completed == [("/api/images/in.png", "/api/images/out.png")]

    @pytest.mark.asyncio
    async def test_error_is_terminal_without_completion_callback(self):
        server = ScriptedServer([(200, "error")])
        completed = []

        async def on_completed(original, processed):
            completed.append(processed)

        async with make_client(server) as client:
            state = await JobPoller(client, "msg_1", schedule=FAST, on_completed=on_completed).run()

        assert state.terminal is True
        assert state.status == "error"
        assert state.job["errorMessage"] == "boom"
        assert completed == []

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self):
        server = ScriptedServer([(503, None), (500, None), (200, "completed")])

        async with make_client(server) as client:
            state = await JobPoller(client, "msg_1", schedule=FAST).run()

        assert state.terminal is True
        assert state.consecutive_failures == 0
        assert server.job_polls == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_consecutive_failures(self):
        server = ScriptedServer([(500, None)])

        async with make_client(server) as client:
            state = await JobPoller(client, "msg_1", schedule=FAST).run()

        assert state.gave_up is True
        assert state.terminal is False
        assert server.job_polls == FAST.max_consecutive_failures

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        server = ScriptedServer([(200, "processing")])
        schedule = PollSchedule(fast_delay=0.001, slow_delay=0.001, max_delay=0.001, max_attempts=5)

        async with make_client(server) as client:
            state = await JobPoller(client, "msg_1", schedule=schedule).run()

        assert state.gave_up is True
        assert state.status == "processing"
        assert server.job_polls == 5

    @pytest.mark.asyncio
    async def test_cancel_stops_pending_wait(self):
        server = ScriptedServer([(200, "processing")])
        slow = PollSchedule(fast_delay=30.0)

        async with make_client(server) as client:
            poller = JobPoller(client, "msg_1", schedule=slow)
            task = asyncio.ensure_future(poller.run())
            await asyncio.sleep(0.01)
            poller.cancel()
            state = await asyncio.wait_for(task, timeout=1)

        assert state.cancelled is True
        assert server.job_polls == 0

    @pytest.mark.asyncio
    async def test_leaving_context_cancels(self):
        server = ScriptedServer([(200, "processing")])

        async with make_client(server) as client:
            async with JobPoller(client, "msg_1", schedule=FAST) as poller:
                pass
            state = await poller.run()

        assert state.cancelled is True
        assert server.job_polls == 0
