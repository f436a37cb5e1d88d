"""
Composable wrappers over a single zero-argument task.

None of these share state with the scheduler. Each takes an invocable and
returns a new zero-argument coroutine function that can be submitted as a
task: bound it in time, retry it, adapt a callback API, or normalize a sync
callable into an async one.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from dynqueue.constants import DEFAULT_TIMEOUT_MESSAGE
from dynqueue.exceptions import TaskTimeoutError

logger = logging.getLogger(__name__)

# Type alias for what every wrapper returns
AsyncTask = Callable[[], Awaitable[Any]]


def ensure_async(task: Callable[[], Any], offload: bool = True) -> AsyncTask:
    """
    Normalize a sync or async invocable into a coroutine function.

    Coroutine functions (and objects with an async __call__) are returned
    unchanged. Plain callables run in a worker thread (or inline on the loop
    when offload is False); if they return an awaitable, it is awaited on
    the loop.

    Args:
        task: Zero-argument invocable.
        offload: Run sync callables via asyncio.to_thread.

    Returns:
        A zero-argument coroutine function.
    """
    if inspect.iscoroutinefunction(task) or inspect.iscoroutinefunction(
        getattr(type(task), "__call__", None)
    ):
        return task

    async def runner() -> Any:
        if offload:
            result = await asyncio.to_thread(task)
        else:
            result = task()
        if inspect.isawaitable(result):
            result = await result
        return result

    return runner


async def delay(seconds: float, value: Any = None) -> Any:
    """Sleep for seconds, then return value."""
    await asyncio.sleep(seconds)
    return value


def with_timeout(
    task: Callable[[], Any],
    seconds: float,
    message: str = DEFAULT_TIMEOUT_MESSAGE,
) -> AsyncTask:
    """
    Race a task against a deadline.

    The returned task raises TaskTimeoutError(message) if the deadline
    passes first; the inner task is cancelled. A TimeoutError raised by the
    task itself passes through unchanged.

    Example:
        scheduler.submit(with_timeout(lambda: client.get(url), 2.5))
    """
    runner = ensure_async(task)

    async def timed() -> Any:
        deadline = asyncio.timeout(seconds)
        try:
            async with deadline:
                return await runner()
        except TimeoutError:
            if deadline.expired():
                raise TaskTimeoutError(message) from None
            raise

    return timed


def retry(
    task: Callable[[], Any],
    attempts: int = 2,
    backoff_seconds: float = 0.0,
) -> AsyncTask:
    """
    Retry a failing task.

    Args:
        task: Zero-argument invocable.
        attempts: Total number of tries (2 = retry once).
        backoff_seconds: Sleep between tries.

    Returns:
        A task that re-raises the last exception once attempts run out.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    runner = ensure_async(task)

    async def retrying() -> Any:
        for attempt in range(1, attempts + 1):
            try:
                return await runner()
            except Exception as e:
                if attempt == attempts:
                    raise
                logger.warning(
                    "Task attempt failed, retrying",
                    extra={"attempt": attempt, "max_attempts": attempts, "error": str(e)},
                )
                if backoff_seconds > 0:
                    await asyncio.sleep(backoff_seconds)

    return retrying


def from_callback(fn: Callable[..., Any], *args: Any) -> AsyncTask:
    """
    Adapt a callback-style function into an awaitable task.

    fn is called as fn(*args, callback) where callback(error, result) follows
    the error-first convention. The callback may be invoked from any thread;
    only its first invocation counts.

    Example:
        def read_config(path, callback):
            ...
            callback(None, data)

        data = await scheduler.submit(from_callback(read_config, "app.toml"))
    """

    async def runner() -> Any:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def settle(error: Any, result: Any) -> None:
            if future.done():
                return
            if error is None:
                future.set_result(result)
            elif isinstance(error, BaseException):
                future.set_exception(error)
            else:
                future.set_exception(RuntimeError(str(error)))

        def callback(error: Any = None, result: Any = None) -> None:
            loop.call_soon_threadsafe(settle, error, result)

        fn(*args, callback)
        return await future

    return runner


async def fetch_with_timeout(
    url: str,
    seconds: float,
    client: httpx.AsyncClient | None = None,
    message: str = DEFAULT_TIMEOUT_MESSAGE,
) -> httpx.Response:
    """
    GET a URL, failing with TaskTimeoutError if it takes longer than seconds.

    Args:
        url: The URL to request.
        seconds: Deadline for the whole request.
        client: Optional shared client. A short-lived one is used otherwise.
        message: Timeout error message.

    Returns:
        The httpx response (any status code).
    """

    async def fetch() -> httpx.Response:
        if client is not None:
            return await client.get(url)
        async with httpx.AsyncClient() as owned:
            return await owned.get(url)

    logger.debug("Fetching with timeout", extra={"url": url, "timeout": seconds})
    return await with_timeout(fetch, seconds, message=message)()
