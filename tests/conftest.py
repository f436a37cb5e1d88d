"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from dynqueue.config import Settings
from dynqueue.observability.metrics import MetricsCollector
from dynqueue.scheduler import Scheduler
from tests.fakes import EventRecorder


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        default_concurrency=2,
        log_level="DEBUG",
        log_format="console",
        metrics_enabled=True,
        tracing_enabled=False,
    )


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on a private registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def recorder() -> EventRecorder:
    """Listener recording every scheduler event."""
    return EventRecorder()


@pytest_asyncio.fixture
async def make_scheduler(
    test_settings: Settings,
    metrics: MetricsCollector,
    recorder: EventRecorder,
) -> AsyncGenerator[Callable[..., Scheduler]]:
    """Factory for schedulers wired to the recorder; closes them on teardown."""
    created: list[Scheduler] = []

    def factory(concurrency: int = 1, **kwargs: Any) -> Scheduler:
        kwargs.setdefault("settings", test_settings)
        kwargs.setdefault("metrics", metrics)
        scheduler = Scheduler(concurrency, **kwargs)
        scheduler.add_listener(recorder)
        created.append(scheduler)
        return scheduler

    yield factory

    for scheduler in created:
        await scheduler.close(cancel_running=True)
