"""
Task-related type definitions for internal use.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel

from dynqueue.constants import PRIORITY_WEIGHTS, TaskPriority
from dynqueue.handle import TaskHandle

# A zero-argument invocable: a coroutine function, a sync function, or a
# sync function returning an awaitable.
TaskCallable = Callable[[], Any]


def resolve_priority(priority: int | TaskPriority | str) -> int:
    """
    Convert a priority argument into its integer weight.

    Args:
        priority: Raw integer, TaskPriority member, or its string value.

    Returns:
        The integer priority (higher = more urgent).

    Raises:
        TypeError: If the priority is neither an int nor a known level.
    """
    if isinstance(priority, bool):
        raise TypeError("priority must be an int or TaskPriority, not bool")
    if isinstance(priority, int):
        return priority
    try:
        return PRIORITY_WEIGHTS[TaskPriority(priority)]
    except ValueError:
        raise TypeError(f"Unknown priority level: {priority!r}") from None


def priority_level(weight: int) -> TaskPriority:
    """
    Bucket an integer priority into the highest level it reaches.

    Weights below the lowest level map to TaskPriority.LOW.
    """
    level = TaskPriority.LOW
    for candidate, threshold in sorted(PRIORITY_WEIGHTS.items(), key=lambda item: item[1]):
        if weight >= threshold:
            level = candidate
    return level


@dataclass(frozen=True, slots=True)
class TaskRecord:
    """
    A submitted task waiting in (or popped from) the queue.

    Pairs the invocable with its priority, arrival sequence and the handle
    the submitter is holding. Immutable once created.
    """

    task: TaskCallable
    priority: int
    sequence: int
    handle: TaskHandle
    submitted_at: float
    task_id: UUID = field(default_factory=uuid4)

    @property
    def sort_key(self) -> tuple[int, int]:
        """Heap key: priority descending, then sequence ascending."""
        return (-self.priority, self.sequence)


class SchedulerStats(BaseModel):
    """
    Point-in-time snapshot of a scheduler.
    Used for observability and reporting.
    """

    name: str
    limit: int
    running: int
    queued: int
    submitted: int
    succeeded: int
    failed: int
    cancelled: int
    closed: bool

    @property
    def available_slots(self) -> int:
        """Slots free under the current limit (0 while over the limit)."""
        return max(0, self.limit - self.running)

    @property
    def settled(self) -> int:
        """Total number of settled handles."""
        return self.succeeded + self.failed + self.cancelled
