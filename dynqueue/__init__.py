"""
Dynamic Priority Task Queue

An in-process asyncio scheduler that runs tasks in priority order under a
concurrency limit that can be changed while tasks are running.
"""

__version__ = "1.0.0"

from dynqueue.constants import TaskPriority, TaskStatus
from dynqueue.exceptions import (
    HandleAlreadySettledError,
    InvalidConcurrencyError,
    SchedulerClosedError,
    SchedulerError,
    TaskCancelledError,
    TaskTimeoutError,
)
from dynqueue.handle import TaskHandle
from dynqueue.scheduler import Scheduler

__all__ = [
    "Scheduler",
    "TaskHandle",
    "TaskPriority",
    "TaskStatus",
    "SchedulerError",
    "InvalidConcurrencyError",
    "SchedulerClosedError",
    "TaskCancelledError",
    "HandleAlreadySettledError",
    "TaskTimeoutError",
]
