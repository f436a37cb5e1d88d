"""
Package configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dynqueue.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_PRIORITY,
    DEFAULT_SCHEDULER_NAME,
)


class Settings(BaseSettings):
    """Scheduler settings loaded from DYNQUEUE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DYNQUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Scheduler
    default_concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=0)
    default_priority: int = DEFAULT_PRIORITY
    scheduler_name: str = DEFAULT_SCHEDULER_NAME
    offload_sync_tasks: bool = True

    # Observability
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    metrics_enabled: bool = True
    tracing_enabled: bool = True
    otel_exporter_otlp_endpoint: str | None = None
    otel_service_name: str = "dynqueue"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
