"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from dynqueue.constants import (
    METRIC_CONCURRENCY_LIMIT,
    METRIC_QUEUE_DEPTH,
    METRIC_RUNNING_TASKS,
    METRIC_TASK_DURATION,
    METRIC_TASK_WAIT,
    METRIC_TASKS_COMPLETED,
    METRIC_TASKS_SUBMITTED,
)
from dynqueue.types.task import priority_level

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for schedulers.

    Every series is labelled by scheduler name so several schedulers can
    share one collector. Collects:
    - Queue depth, running tasks and concurrency limit
    - Task submissions and completions
    - Task execution duration and queue wait time
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of tasks waiting in the queue",
            ["scheduler"],
            registry=self._registry,
        )

        self.running_tasks = Gauge(
            METRIC_RUNNING_TASKS,
            "Number of tasks currently executing",
            ["scheduler"],
            registry=self._registry,
        )

        self.concurrency_limit = Gauge(
            METRIC_CONCURRENCY_LIMIT,
            "Current concurrency limit",
            ["scheduler"],
            registry=self._registry,
        )

        self.tasks_submitted = Counter(
            METRIC_TASKS_SUBMITTED,
            "Total number of tasks submitted, by priority level",
            ["scheduler", "priority"],
            registry=self._registry,
        )

        self.tasks_completed = Counter(
            METRIC_TASKS_COMPLETED,
            "Total number of tasks settled",
            ["scheduler", "status"],
            registry=self._registry,
        )

        self.task_duration = Histogram(
            METRIC_TASK_DURATION,
            "Task execution duration in seconds",
            ["scheduler", "status"],
            buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )

        self.task_wait = Histogram(
            METRIC_TASK_WAIT,
            "Time tasks spend queued before starting, in seconds",
            ["scheduler"],
            buckets=(0.001, 0.01, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0),
            registry=self._registry,
        )

    def record_task_submitted(self, scheduler: str, priority: int) -> None:
        """Record a task submission under its bucketed priority level."""
        self.tasks_submitted.labels(
            scheduler=scheduler, priority=priority_level(priority).value
        ).inc()

    def record_task_started(self, scheduler: str, wait_seconds: float) -> None:
        """Record how long a task waited for a slot."""
        self.task_wait.labels(scheduler=scheduler).observe(wait_seconds)

    def record_task_completed(
        self,
        scheduler: str,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Record a task completion."""
        self.tasks_completed.labels(scheduler=scheduler, status=status).inc()
        self.task_duration.labels(scheduler=scheduler, status=status).observe(
            duration_seconds
        )

    def record_task_cancelled(self, scheduler: str) -> None:
        """Record a queued task abandoned at shutdown."""
        self.tasks_completed.labels(scheduler=scheduler, status="cancelled").inc()

    def update_state(self, scheduler: str, queued: int, running: int, limit: int) -> None:
        """Update the queue depth, running and limit gauges."""
        self.queue_depth.labels(scheduler=scheduler).set(queued)
        self.running_tasks.labels(scheduler=scheduler).set(running)
        self.concurrency_limit.labels(scheduler=scheduler).set(limit)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics exposition."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the process-wide metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the process-wide metrics collector, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
