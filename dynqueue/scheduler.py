"""
Priority scheduler with a runtime-adjustable concurrency limit.

Tasks are queued by priority and started while fewer than `limit` of them
are running. Every state change (submit, limit change, task completion)
re-runs the same dispatch loop. The event loop the scheduler is bound to is
its only dispatch authority: queue and counter updates are plain
synchronous code on that loop, so they can never interleave.
"""

import asyncio
import concurrent.futures
import functools
import itertools
import logging
import time
from collections.abc import Callable
from types import TracebackType
from typing import Any
from uuid import UUID, uuid4

from opentelemetry import trace
from opentelemetry.trace import Tracer

from dynqueue.compose import ensure_async
from dynqueue.config import Settings, get_settings
from dynqueue.constants import SPAN_EXECUTE_TASK, TaskPriority, TaskStatus
from dynqueue.exceptions import InvalidConcurrencyError, SchedulerClosedError
from dynqueue.handle import TaskHandle
from dynqueue.observability.logging import bind_task_context
from dynqueue.observability.metrics import MetricsCollector, get_metrics
from dynqueue.observability.tracing import get_tracer
from dynqueue.queue import PriorityQueue
from dynqueue.types.events import TaskEvent
from dynqueue.types.task import SchedulerStats, TaskCallable, TaskRecord, resolve_priority

logger = logging.getLogger(__name__)

EventListener = Callable[[TaskEvent], Any]


def _validate_limit(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidConcurrencyError(value)
    return value


class Scheduler:
    """
    Runs submitted tasks in priority order under a concurrency limit.

    Features:
    - Priority ordering with FIFO tie-break (binary heap)
    - Limit changes at runtime; running tasks are never interrupted
    - Each handle settles exactly once with the task's value or exception
    - Shutdown that cancels queued handles and waits for (or cancels) running tasks

    submit() and set_limit() must be called from the scheduler's event loop;
    other threads use submit_threadsafe() and set_limit_threadsafe().
    """

    def __init__(
        self,
        concurrency: int | None = None,
        *,
        name: str | None = None,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
        tracer: Tracer | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            concurrency: Initial limit. Defaults to settings.default_concurrency.
            name: Label for logs, metrics and events.
            settings: Settings instance. Defaults to the cached environment settings.
            metrics: Metrics collector. Defaults to the process-wide collector
                when metrics are enabled.
            tracer: Tracer for task spans. Defaults to the configured tracer
                when tracing is enabled.
            loop: Event loop to bind to. Defaults to the loop running the first submit().

        Raises:
            InvalidConcurrencyError: If concurrency is negative or not an int.
        """
        self._settings = settings or get_settings()

        if concurrency is None:
            concurrency = self._settings.default_concurrency
        self._limit = _validate_limit(concurrency)

        self.name = name or self._settings.scheduler_name
        self._loop = loop

        self._queue = PriorityQueue()
        self._running = 0
        self._sequence = itertools.count()
        self._active: dict[UUID, asyncio.Task[Any]] = {}
        self._dispatching = False
        self._closed = False
        self._idle = asyncio.Event()
        self._idle.set()

        self._listeners: list[EventListener] = []
        self._submitted = 0
        self._succeeded = 0
        self._failed = 0
        self._cancelled = 0

        if metrics is not None:
            self._metrics: MetricsCollector | None = metrics
        elif self._settings.metrics_enabled:
            self._metrics = get_metrics()
        else:
            self._metrics = None

        if tracer is not None:
            self._tracer = tracer
        elif self._settings.tracing_enabled:
            self._tracer = get_tracer()
        else:
            self._tracer = trace.NoOpTracer()

        self._update_gauges()

    def __repr__(self) -> str:
        return (
            f"<Scheduler {self.name!r} limit={self._limit} running={self._running} "
            f"queued={len(self._queue)} closed={self._closed}>"
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def limit(self) -> int:
        """Current concurrency limit."""
        return self._limit

    @property
    def running(self) -> int:
        """Number of started tasks that have not finished."""
        return self._running

    @property
    def pending(self) -> int:
        """Number of queued tasks that have not started."""
        return len(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> SchedulerStats:
        """Snapshot of the scheduler's counters."""
        return SchedulerStats(
            name=self.name,
            limit=self._limit,
            running=self._running,
            queued=len(self._queue),
            submitted=self._submitted,
            succeeded=self._succeeded,
            failed=self._failed,
            cancelled=self._cancelled,
            closed=self._closed,
        )

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: EventListener) -> None:
        """Register a callable that receives every TaskEvent synchronously."""
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        """Unregister a listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: TaskEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Event listener raised",
                    extra={"scheduler": self.name, "event_type": event.event_type},
                )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def submit(
        self,
        task: TaskCallable,
        priority: int | TaskPriority | None = None,
    ) -> TaskHandle:
        """
        Queue a task and return its handle immediately.

        Args:
            task: Zero-argument invocable. Coroutine functions are awaited;
                plain callables run in a worker thread unless
                settings.offload_sync_tasks is off.
            priority: Integer (higher = more urgent) or TaskPriority level.
                Defaults to settings.default_priority.

        Returns:
            TaskHandle settled with the task's value or exception.

        Raises:
            SchedulerClosedError: If close() has been called.
            TypeError: If task is not callable or priority is invalid.
            RuntimeError: If called outside the scheduler's event loop.
        """
        if self._closed:
            raise SchedulerClosedError(f"Scheduler {self.name!r} is closed")
        if not callable(task):
            raise TypeError(f"task must be a zero-argument callable, got {type(task).__name__}")

        loop = self._bind_loop()
        if priority is None:
            priority = self._settings.default_priority
        weight = resolve_priority(priority)

        task_id = uuid4()
        sequence = next(self._sequence)
        handle = TaskHandle(task_id, weight, sequence, loop=loop)
        record = TaskRecord(
            task=task,
            priority=weight,
            sequence=sequence,
            handle=handle,
            submitted_at=time.monotonic(),
            task_id=task_id,
        )

        self._queue.push(record)
        self._submitted += 1
        self._idle.clear()

        logger.debug(
            "Task submitted",
            extra={
                "scheduler": self.name,
                "task_id": str(task_id),
                "priority": weight,
                "sequence": sequence,
            },
        )
        if self._metrics is not None:
            self._metrics.record_task_submitted(self.name, weight)
        self._emit(
            TaskEvent.task_queued(
                scheduler=self.name,
                task_id=task_id,
                priority=weight,
                sequence=sequence,
                running=self._running,
                limit=self._limit,
            )
        )

        self._dispatch()
        return handle

    def set_limit(self, new_limit: int) -> None:
        """
        Replace the concurrency limit and start whatever now fits.

        Lowering the limit below the running count interrupts nothing; no new
        task starts until running drops under the new limit.

        Raises:
            InvalidConcurrencyError: If new_limit is negative or not an int.
        """
        new_limit = _validate_limit(new_limit)
        old_limit = self._limit
        self._limit = new_limit

        logger.info(
            "Concurrency limit changed",
            extra={
                "scheduler": self.name,
                "old_limit": old_limit,
                "new_limit": new_limit,
                "running": self._running,
            },
        )
        self._emit(
            TaskEvent.limit_changed(
                scheduler=self.name,
                old_limit=old_limit,
                new_limit=new_limit,
                running=self._running,
            )
        )

        self._dispatch()

    def submit_threadsafe(
        self,
        task: TaskCallable,
        priority: int | TaskPriority | None = None,
    ) -> concurrent.futures.Future[Any]:
        """
        Submit from a thread other than the scheduler's loop.

        Returns:
            A concurrent.futures.Future resolving to the task's outcome.
        """
        loop = self._require_loop()

        async def submit_and_wait() -> Any:
            return await self.submit(task, priority)

        return asyncio.run_coroutine_threadsafe(submit_and_wait(), loop)

    def set_limit_threadsafe(self, new_limit: int) -> None:
        """
        Change the limit from a thread other than the scheduler's loop.

        Raises:
            InvalidConcurrencyError: If new_limit is invalid (in the caller's thread).
            RuntimeError: If the scheduler is not bound to an event loop yet.
        """
        new_limit = _validate_limit(new_limit)
        loop = self._require_loop()
        loop.call_soon_threadsafe(self.set_limit, new_limit)

    async def join(self) -> None:
        """
        Wait until the queue is empty and no task is running.

        Never returns while tasks stay queued under a limit of 0.
        """
        await self._idle.wait()

    async def close(self, cancel_running: bool = False) -> None:
        """
        Shut the scheduler down.

        Queued tasks never start: their handles fail with TaskCancelledError.
        Running tasks are awaited, or cancelled first when cancel_running is
        set (their handles then fail with TaskCancelledError as well).
        Further submit() calls raise SchedulerClosedError. Idempotent.
        """
        if not self._closed:
            logger.info(
                "Scheduler closing",
                extra={
                    "scheduler": self.name,
                    "queued": len(self._queue),
                    "running": self._running,
                },
            )
        self._closed = True

        for record in self._queue.drain():
            record.handle._cancel("Scheduler closed before the task started")
            self._cancelled += 1
            if self._metrics is not None:
                self._metrics.record_task_cancelled(self.name)
            self._emit(
                TaskEvent.task_finished(
                    scheduler=self.name,
                    task_id=record.task_id,
                    priority=record.priority,
                    sequence=record.sequence,
                    status=TaskStatus.CANCELLED,
                    running=self._running,
                    limit=self._limit,
                )
            )
        self._update_gauges()
        self._check_idle()

        if cancel_running:
            for active in list(self._active.values()):
                active.cancel()

        await self.join()
        logger.info("Scheduler closed", extra={"scheduler": self.name})

    async def __aenter__(self) -> "Scheduler":
        self._bind_loop()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            await self.join()
            await self.close()
        else:
            await self.close(cancel_running=True)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        loop = asyncio.get_running_loop()
        if self._loop is None:
            self._loop = loop
        elif self._loop is not loop:
            raise RuntimeError(f"Scheduler {self.name!r} is bound to a different event loop")
        return loop

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise RuntimeError(
                f"Scheduler {self.name!r} is not bound to an event loop yet; "
                "pass loop= or enter it with 'async with' first"
            )
        return self._loop

    def _dispatch(self) -> None:
        """
        Start queued tasks while there is room under the limit.

        Re-entrant calls (from a listener that submits or changes the limit)
        return immediately; the outer loop re-checks its condition after
        every start and picks up their changes.
        """
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._running < self._limit and self._queue:
                record = self._queue.pop()
                if record is None:
                    break
                self._start(record)
        finally:
            self._dispatching = False
        self._update_gauges()
        self._check_idle()

    def _start(self, record: TaskRecord) -> None:
        assert self._loop is not None
        self._running += 1
        record.handle._mark_running()
        wait_seconds = time.monotonic() - record.submitted_at

        logger.debug(
            "Task started",
            extra={
                "scheduler": self.name,
                "task_id": str(record.task_id),
                "priority": record.priority,
                "running": self._running,
                "limit": self._limit,
            },
        )
        if self._metrics is not None:
            self._metrics.record_task_started(self.name, wait_seconds)

        task = self._loop.create_task(
            self._execute(record),
            name=f"dynqueue-{self.name}-{record.sequence}",
        )
        self._active[record.task_id] = task
        task.add_done_callback(functools.partial(self._finish, record, time.monotonic()))

        self._emit(
            TaskEvent.task_started(
                scheduler=self.name,
                task_id=record.task_id,
                priority=record.priority,
                sequence=record.sequence,
                running=self._running,
                limit=self._limit,
                wait_seconds=wait_seconds,
            )
        )

    async def _execute(self, record: TaskRecord) -> Any:
        bind_task_context(self.name, record.task_id)
        runner = ensure_async(record.task, offload=self._settings.offload_sync_tasks)
        with self._tracer.start_as_current_span(SPAN_EXECUTE_TASK) as span:
            span.set_attribute("scheduler", self.name)
            span.set_attribute("task_id", str(record.task_id))
            span.set_attribute("priority", record.priority)
            span.set_attribute("sequence", record.sequence)
            return await runner()

    def _finish(self, record: TaskRecord, started_at: float, task: asyncio.Task[Any]) -> None:
        """Settle the handle, release the slot, and dispatch again."""
        handle = record.handle
        error: str | None = None

        if task.cancelled():
            handle._cancel("Task cancelled while running")
            status = TaskStatus.CANCELLED
            self._cancelled += 1
        elif (exc := task.exception()) is not None:
            handle._set_exception(exc)
            status = TaskStatus.FAILED
            error = str(exc) or type(exc).__name__
            self._failed += 1
        else:
            handle._set_result(task.result())
            status = TaskStatus.SUCCEEDED
            self._succeeded += 1

        self._running -= 1
        self._active.pop(record.task_id, None)
        duration = time.monotonic() - started_at

        if status is TaskStatus.SUCCEEDED:
            logger.debug(
                "Task completed successfully",
                extra={
                    "scheduler": self.name,
                    "task_id": str(record.task_id),
                    "duration": f"{duration:.3f}s",
                },
            )
        else:
            logger.warning(
                "Task did not succeed",
                extra={
                    "scheduler": self.name,
                    "task_id": str(record.task_id),
                    "status": status.value,
                    "error": error,
                },
            )

        if self._metrics is not None:
            self._metrics.record_task_completed(self.name, status.value, duration)
        self._emit(
            TaskEvent.task_finished(
                scheduler=self.name,
                task_id=record.task_id,
                priority=record.priority,
                sequence=record.sequence,
                status=status,
                running=self._running,
                limit=self._limit,
                error=error,
            )
        )

        self._dispatch()

    def _check_idle(self) -> None:
        if self._running == 0 and not self._queue:
            self._idle.set()

    def _update_gauges(self) -> None:
        if self._metrics is not None:
            self._metrics.update_state(self.name, len(self._queue), self._running, self._limit)
