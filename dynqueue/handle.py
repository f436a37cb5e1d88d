"""
Completion handle returned by Scheduler.submit().

A TaskHandle is a single-assignment result channel backed by an
asyncio.Future. It settles exactly once, to the task's return value or to
the exception the task raised. Callers either await it or attach observers
with then().
"""

import asyncio
from collections.abc import Callable, Generator
from typing import Any
from uuid import UUID

from dynqueue.constants import TaskStatus
from dynqueue.exceptions import HandleAlreadySettledError, TaskCancelledError


class TaskHandle:
    """
    Future-like handle for one submitted task.

    Awaiting the handle is shielded: cancelling the coroutine that awaits it
    does not cancel the task or settle the handle.

    Example:
        handle = scheduler.submit(fetch_page, priority=5)
        handle.then(print, lambda exc: log.warning("failed: %s", exc))
        page = await handle
    """

    def __init__(
        self,
        task_id: UUID,
        priority: int,
        sequence: int,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.task_id = task_id
        self.priority = priority
        self.sequence = sequence
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[Any] = self._loop.create_future()
        self._status = TaskStatus.QUEUED

    def __repr__(self) -> str:
        return (
            f"<TaskHandle {self.task_id} priority={self.priority} "
            f"sequence={self.sequence} status={self._status.value}>"
        )

    def __await__(self) -> Generator[Any, None, Any]:
        return asyncio.shield(self._future).__await__()

    @property
    def status(self) -> TaskStatus:
        """Current lifecycle status of the task."""
        return self._status

    def done(self) -> bool:
        """True once the handle has settled."""
        return self._future.done()

    def result(self) -> Any:
        """
        Return the task's value, or raise its exception.

        Raises:
            asyncio.InvalidStateError: If the handle has not settled yet.
        """
        return self._future.result()

    def exception(self) -> BaseException | None:
        """
        Return the task's exception, or None if it succeeded.

        Raises:
            asyncio.InvalidStateError: If the handle has not settled yet.
        """
        return self._future.exception()

    def add_done_callback(self, callback: Callable[["TaskHandle"], Any]) -> None:
        """Call callback(handle) once settled (on the next loop iteration if already settled)."""
        self._future.add_done_callback(lambda _: callback(self))

    def then(
        self,
        on_success: Callable[[Any], Any],
        on_failure: Callable[[BaseException], Any] | None = None,
    ) -> "TaskHandle":
        """
        Attach success and failure observers.

        Args:
            on_success: Called with the task's return value.
            on_failure: Called with the task's exception. Optional.

        Returns:
            The same handle, for chaining.
        """

        def _dispatch(fut: asyncio.Future[Any]) -> None:
            exc = fut.exception()
            if exc is None:
                on_success(fut.result())
            elif on_failure is not None:
                on_failure(exc)

        self._future.add_done_callback(_dispatch)
        return self

    # ------------------------------------------------------------------
    # Settlement (scheduler only)
    # ------------------------------------------------------------------

    def _mark_running(self) -> None:
        self._status = TaskStatus.RUNNING

    def _ensure_unsettled(self) -> None:
        if self._future.done():
            raise HandleAlreadySettledError(f"Handle for task {self.task_id} already settled")

    def _set_result(self, value: Any) -> None:
        self._ensure_unsettled()
        self._status = TaskStatus.SUCCEEDED
        self._future.set_result(value)

    def _set_exception(self, exc: BaseException) -> None:
        self._ensure_unsettled()
        self._status = TaskStatus.FAILED
        self._future.set_exception(exc)

    def _cancel(self, reason: str) -> None:
        self._ensure_unsettled()
        self._status = TaskStatus.CANCELLED
        self._future.set_exception(TaskCancelledError(reason))
        # Mark retrieved: unawaited cancelled handles must not log at GC.
        self._future.exception()
