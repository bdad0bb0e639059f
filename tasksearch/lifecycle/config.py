"""
Configuration for the embedding lifecycle and its dispatcher.

Uses Pydantic BaseSettings for environment variable support.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LifecycleConfig(BaseSettings):
    """
    Configuration for keeping embeddings in sync with source records.

    All settings can be overridden via environment variables with
    LIFECYCLE_ prefix (e.g., LIFECYCLE_BACKFILL_DELAY_SECONDS=0.5).
    """

    model_config = SettingsConfigDict(env_prefix="LIFECYCLE_", extra="ignore")

    backfill_delay_seconds: float = Field(
        default=0.1,
        ge=0.0,
        le=60.0,
        description="Pause between provider calls during backfill",
    )
    backfill_batch_size: int = Field(
        default=500,
        ge=1,
        le=10_000,
        description="Source records fetched per page during backfill",
    )


class DispatcherConfig(BaseSettings):
    """
    Configuration for the background dispatch of lifecycle jobs.

    All settings can be overridden via environment variables with
    DISPATCH_ prefix (e.g., DISPATCH_WORKER_COUNT=4).
    """

    model_config = SettingsConfigDict(env_prefix="DISPATCH_", extra="ignore")

    max_queue_size: int = Field(
        default=1000,
        ge=1,
        le=1_000_000,
        description="Jobs held per worker queue before new ones are dropped",
    )
    worker_count: int = Field(
        default=2,
        ge=1,
        le=64,
        description="Concurrent workers draining the queue",
    )
    drain_timeout_seconds: float = Field(
        default=10.0,
        ge=0.0,
        le=600.0,
        description="How long stop() waits for queued jobs before abandoning them",
    )
