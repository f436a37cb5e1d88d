"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from dynqueue.observability.logging import bind_task_context, setup_logging
from dynqueue.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from dynqueue.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "bind_task_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
]
