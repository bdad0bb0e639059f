"""
Request and response models for the task search API.
"""

from typing import Literal

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(
        ...,
        description="Error message",
    )
    error_type: str = Field(
        default="error",
        description="Error type (e.g. invalid_query, not_initialized, provider_unavailable)",
    )


# Search models


class SearchRequest(BaseModel):
    """Request model for semantic search."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural-language query",
    )
    limit: int | None = Field(
        default=None,
        ge=1,
        description="Maximum number of results (default 10, capped at 100)",
    )
    min_similarity: float | None = Field(
        default=None,
        ge=-1.0,
        le=1.0,
        description="Only return tasks with similarity above this value (default 0.5)",
    )


class SearchResultItem(BaseModel):
    """Single search result."""

    source_id: str = Field(
        ...,
        description="Task ID",
    )
    similarity: float = Field(
        ...,
        description="Cosine similarity to the query (1.0 = same direction)",
    )


class SearchResponse(BaseModel):
    """Response model for semantic search."""

    results: list[SearchResultItem] = Field(
        default_factory=list,
        description="Matching tasks, highest similarity first",
    )
    total: int = Field(
        ...,
        description="Number of results returned",
    )
    latency_ms: float = Field(
        ...,
        description="Processing latency in milliseconds",
    )


# Embedding lifecycle models


class EmbeddingJobResponse(BaseModel):
    """Acknowledgement for a queued lifecycle job."""

    source_id: str
    action: Literal["upsert", "delete"]
    queued: bool = Field(
        ...,
        description="False when the job was dropped (queue full or dispatcher stopped)",
    )


# Admin models


class VectorStatusResponse(BaseModel):
    """Vector store coverage report."""

    initialized: bool
    embedding_count: int = Field(..., ge=0)
    source_count: int = Field(..., ge=0)
    coverage: int = Field(
        ...,
        ge=0,
        le=100,
        description="Percent of tasks with an embedding from the active model",
    )
    model: str
    stale_count: int = Field(
        default=0,
        ge=0,
        description="Embeddings produced by a different model",
    )


class VectorActionRequest(BaseModel):
    """Administrative action on the vector store."""

    action: Literal["init", "backfill", "init-and-backfill"] = Field(
        ...,
        description="init creates the table; backfill embeds every task",
    )
    stale_only: bool = Field(
        default=False,
        description="Backfill only tasks with a missing or outdated embedding",
    )


class BackfillCounts(BaseModel):
    success: int = 0
    failed: int = 0
    skipped: int = 0


class VectorActionResponse(BaseModel):
    """Result of an administrative action."""

    action: str
    success: bool
    message: str
    initialized: bool | None = None
    backfill: BackfillCounts | None = None


# Health models


class ComponentHealth(BaseModel):
    """Health status of an infrastructure component."""

    status: str = Field(
        ...,
        description="Component status: healthy, degraded, or unhealthy",
    )
    latency_ms: float | None = Field(
        default=None,
        description="Check latency in milliseconds",
    )
    details: dict = Field(
        default_factory=dict,
        description="Additional component details",
    )


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(
        ...,
        description="Overall service status: healthy, degraded, or unhealthy",
    )
    components: dict[str, ComponentHealth] = Field(
        default_factory=dict,
        description="Per-component health",
    )
    dispatcher: dict = Field(
        default_factory=dict,
        description="Embedding dispatcher statistics",
    )
    version: str = Field(
        default="0.1.0",
        description="Service version",
    )
