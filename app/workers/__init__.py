# Workers package - in-process background execution

from app.workers.events import JobEvent, JobEventBus
from app.workers.executor import BackgroundExecutor

__all__ = [
    "JobEvent",
    "JobEventBus",
    "BackgroundExecutor",
]
