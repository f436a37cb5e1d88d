"""
Event type definitions for scheduler listeners.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from dynqueue.constants import (
    EVENT_LIMIT_CHANGED,
    EVENT_TASK_CANCELLED,
    EVENT_TASK_FAILED,
    EVENT_TASK_QUEUED,
    EVENT_TASK_STARTED,
    EVENT_TASK_SUCCEEDED,
    TaskStatus,
)


def _now() -> datetime:
    return datetime.now(UTC)


class TaskEvent(BaseModel):
    """
    Event emitted when a task or the scheduler changes state.
    Delivered synchronously to every registered listener.
    """

    event_type: str
    scheduler: str
    running: int
    limit: int
    timestamp: datetime
    task_id: UUID | None = None
    priority: int | None = None
    sequence: int | None = None
    status: TaskStatus | None = None
    data: dict[str, Any] | None = None

    @classmethod
    def task_queued(
        cls,
        scheduler: str,
        task_id: UUID,
        priority: int,
        sequence: int,
        running: int,
        limit: int,
    ) -> "TaskEvent":
        """Create a task queued event."""
        return cls(
            event_type=EVENT_TASK_QUEUED,
            scheduler=scheduler,
            task_id=task_id,
            priority=priority,
            sequence=sequence,
            status=TaskStatus.QUEUED,
            running=running,
            limit=limit,
            timestamp=_now(),
        )

    @classmethod
    def task_started(
        cls,
        scheduler: str,
        task_id: UUID,
        priority: int,
        sequence: int,
        running: int,
        limit: int,
        wait_seconds: float,
    ) -> "TaskEvent":
        """Create a task started event."""
        return cls(
            event_type=EVENT_TASK_STARTED,
            scheduler=scheduler,
            task_id=task_id,
            priority=priority,
            sequence=sequence,
            status=TaskStatus.RUNNING,
            running=running,
            limit=limit,
            timestamp=_now(),
            data={"wait_seconds": wait_seconds},
        )

    @classmethod
    def task_finished(
        cls,
        scheduler: str,
        task_id: UUID,
        priority: int,
        sequence: int,
        status: TaskStatus,
        running: int,
        limit: int,
        error: str | None = None,
    ) -> "TaskEvent":
        """Create a succeeded/failed/cancelled event depending on status."""
        event_type = {
            TaskStatus.SUCCEEDED: EVENT_TASK_SUCCEEDED,
            TaskStatus.FAILED: EVENT_TASK_FAILED,
            TaskStatus.CANCELLED: EVENT_TASK_CANCELLED,
        }[status]
        return cls(
            event_type=event_type,
            scheduler=scheduler,
            task_id=task_id,
            priority=priority,
            sequence=sequence,
            status=status,
            running=running,
            limit=limit,
            timestamp=_now(),
            data={"error": error} if error is not None else None,
        )

    @classmethod
    def limit_changed(
        cls,
        scheduler: str,
        old_limit: int,
        new_limit: int,
        running: int,
    ) -> "TaskEvent":
        """Create a limit changed event."""
        return cls(
            event_type=EVENT_LIMIT_CHANGED,
            scheduler=scheduler,
            running=running,
            limit=new_limit,
            timestamp=_now(),
            data={"old_limit": old_limit, "new_limit": new_limit},
        )
