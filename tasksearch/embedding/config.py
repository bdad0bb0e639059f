"""
Embedding service configuration.

Provides Pydantic settings for the remote embedding provider including
model selection, input limits, timeouts, and Redis caching.
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingConfig(BaseSettings):
    """
    Configuration for the embedding generation service.

    Settings can be overridden via environment variables prefixed with EMBEDDING_.
    """

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider model
    model_name: str = Field(
        default="text-embedding-ada-002",
        description="Embedding model requested from the provider",
    )
    dimensions: int = Field(
        default=1536,
        ge=1,
        description="Expected vector length (1536 for ada-002)",
    )
    max_input_chars: int = Field(
        default=8000,
        ge=1,
        description="Characters kept from the head of the text before the call",
    )

    # Provider connection
    api_key: SecretStr | None = Field(
        default=None,
        description="Provider API key (falls back to OPENAI_API_KEY when unset)",
    )
    base_url: str | None = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=300.0,
        description="Upper bound on one provider round-trip",
    )

    # Caching configuration
    cache_enabled: bool = Field(
        default=False,
        description="Enable Redis caching for embeddings",
    )
    cache_ttl_hours: int = Field(
        default=168,
        ge=1,
        description="Cache TTL in hours (default: 1 week)",
    )
    cache_key_prefix: str = Field(
        default="emb:",
        description="Redis key prefix for cached embeddings",
    )

    @property
    def cache_ttl_seconds(self) -> int:
        """Get cache TTL in seconds."""
        return self.cache_ttl_hours * 3600
