# Client package - consumers of the HTTP API
from app.client.poller import JobPoller, PollSchedule, PollState, poll_job

__all__ = [
    "JobPoller",
    "PollSchedule",
    "PollState",
    "poll_job",
]
