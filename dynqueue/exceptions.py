"""
Exception hierarchy for the scheduler.

Task failures are never wrapped: the exception raised by a task is the
exception its handle fails with. The classes below only cover failures that
originate in the scheduler itself.
"""


class SchedulerError(Exception):
    """Base class for all scheduler errors."""


class InvalidConcurrencyError(SchedulerError, ValueError):
    """Raised when a concurrency limit is negative or not an integer."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Concurrency limit must be a non-negative integer, got {value!r}")


class SchedulerClosedError(SchedulerError, RuntimeError):
    """Raised by submit() once the scheduler has been closed."""


class TaskCancelledError(SchedulerError):
    """Outcome of a task abandoned or cancelled during shutdown."""


class HandleAlreadySettledError(SchedulerError, RuntimeError):
    """Raised when a handle is settled a second time."""


class TaskTimeoutError(SchedulerError, TimeoutError):
    """Raised by a time-bounded task that did not finish in time."""
