"""
Application constants.
Centralized location for all constant values used across the package.
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Task lifecycle states.

    State transitions:
    - QUEUED -> RUNNING (slot acquired)
    - RUNNING -> SUCCEEDED (task returned a value)
    - RUNNING -> FAILED (task raised)
    - QUEUED -> CANCELLED (scheduler closed before the task started)
    - RUNNING -> CANCELLED (scheduler closed with cancel_running=True)
    """

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED, TaskStatus.CANCELLED)


class TaskPriority(StrEnum):
    """Named priority levels for queue ordering."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


# Priority weights for ordering (higher = processed first)
PRIORITY_WEIGHTS: dict[TaskPriority, int] = {
    TaskPriority.LOW: 1,
    TaskPriority.NORMAL: 5,
    TaskPriority.HIGH: 10,
    TaskPriority.CRITICAL: 100,
}

# Default values
DEFAULT_PRIORITY = 0
DEFAULT_CONCURRENCY = 4
DEFAULT_SCHEDULER_NAME = "default"
DEFAULT_TIMEOUT_MESSAGE = "Request Timed Out"

# Metrics names
METRIC_QUEUE_DEPTH = "dynqueue_queue_depth"
METRIC_RUNNING_TASKS = "dynqueue_running_tasks"
METRIC_CONCURRENCY_LIMIT = "dynqueue_concurrency_limit"
METRIC_TASKS_SUBMITTED = "dynqueue_tasks_submitted_total"
METRIC_TASKS_COMPLETED = "dynqueue_tasks_completed_total"
METRIC_TASK_DURATION = "dynqueue_task_duration_seconds"
METRIC_TASK_WAIT = "dynqueue_task_wait_seconds"

# Trace span names
SPAN_EXECUTE_TASK = "execute_task"

# Event types
EVENT_TASK_QUEUED = "task.queued"
EVENT_TASK_STARTED = "task.started"
EVENT_TASK_SUCCEEDED = "task.succeeded"
EVENT_TASK_FAILED = "task.failed"
EVENT_TASK_CANCELLED = "task.cancelled"
EVENT_LIMIT_CHANGED = "scheduler.limit_changed"
