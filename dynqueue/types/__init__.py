"""
Type definitions for the scheduler.
Contains the queued task record, stats snapshot and listener events.
"""

from dynqueue.types.events import TaskEvent
from dynqueue.types.task import (
    SchedulerStats,
    TaskCallable,
    TaskRecord,
    priority_level,
    resolve_priority,
)

__all__ = [
    # Task types
    "TaskRecord",
    "TaskCallable",
    "SchedulerStats",
    "resolve_priority",
    "priority_level",
    # Event types
    "TaskEvent",
]
