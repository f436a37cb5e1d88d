"""
Structured logging setup using structlog.

The scheduler logs through the standard library. setup_logging() routes
those records through structlog so they pick up the trace ids of the
current span and any fields bound with bind_task_context().
"""

import logging
import sys
from typing import Any
from uuid import UUID

import structlog
from opentelemetry import trace

from dynqueue.config import Settings, get_settings

# Loggers too chatty to follow the configured level
_QUIET_LOGGERS = ("asyncio", "httpx")


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add the recording span's trace and span ids to the event."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _renderer(settings: Settings) -> Any:
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for applications embedding the scheduler.

    Replaces the root handlers with a single stdout handler whose
    ProcessorFormatter renders both structlog events and standard library
    records as JSON or console lines, per settings.log_format.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_task_context(scheduler: str, task_id: UUID) -> None:
    """
    Tag every log line emitted while a task runs with its scheduler and id.

    Must be called from inside the task's own asyncio.Task: the binding lives
    in that task's copy of the context and disappears with it. Worker threads
    started with asyncio.to_thread inherit it.
    """
    structlog.contextvars.bind_contextvars(scheduler=scheduler, task_id=str(task_id))
