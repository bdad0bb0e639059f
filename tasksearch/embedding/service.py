"""
Embedding generation service backed by a remote embedding API.

Provides async embedding generation for task text with:
- Input normalization (trim, reject empty, head-truncate)
- One bounded provider round-trip per call
- Redis caching keyed on model and content hash
- Latency metrics per model
"""

import asyncio
import hashlib
import json
import time
from typing import Any

import numpy as np
import openai
import redis.asyncio as redis
import structlog

from tasksearch.embedding.config import EmbeddingConfig
from tasksearch.errors import EmptyInputError, ProviderError
from tasksearch.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero norm.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


class EmbeddingService:
    """
    Service for generating text embeddings through an OpenAI-compatible API.

    The provider client is passed in by the owner of the service (or
    created lazily from config when none is given), so one process can
    hold several independently configured services and tests can swap in
    a fake.

    Features:
    - Empty input rejected with EmptyInputError before any network call
    - Long input truncated to the first max_input_chars characters
    - Timeout on every call, no retries; failures become ProviderError
    - Vector length checked against the configured dimensionality
    - Redis caching using content hash keys (per-model)

    Usage:
        service = EmbeddingService(config, client=openai.AsyncOpenAI())
        vector = await service.embed("Renew SSL certificate")
    """

    def __init__(
        self,
        config: EmbeddingConfig | None = None,
        client: Any = None,
        redis_client: redis.Redis | None = None,
    ):
        """
        Initialize the embedding service.

        Args:
            config: Embedding configuration (uses defaults if None)
            client: Provider client exposing embeddings.create (optional)
            redis_client: Redis client for caching (optional)
        """
        self._config = config or EmbeddingConfig()
        self._client = client
        self._redis = redis_client

        self._stats = {
            "provider_calls": 0,
            "provider_errors": 0,
            "cache_hits": 0,
            "cache_misses": 0,
        }

        logger.info(
            "EmbeddingService created",
            model=self._config.model_name,
            dimensions=self._config.dimensions,
            cache_enabled=self._config.cache_enabled and redis_client is not None,
        )

    @property
    def model_name(self) -> str:
        """Model label stored alongside every vector this service produces."""
        return self._config.model_name

    @property
    def dimensions(self) -> int:
        return self._config.dimensions

    def _get_client(self) -> Any:
        """Lazy-initialize the OpenAI async client."""
        if self._client is None:
            api_key = self._config.api_key
            self._client = openai.AsyncOpenAI(
                api_key=api_key.get_secret_value() if api_key else None,
                base_url=self._config.base_url,
                timeout=self._config.request_timeout_seconds,
                max_retries=0,
            )
        return self._client

    def prepare_text(self, text: str) -> str:
        """
        Normalize text for embedding.

        Raises:
            EmptyInputError: If nothing remains after trimming
        """
        prepared = (text or "").strip()
        if not prepared:
            raise EmptyInputError("Cannot embed empty text")
        return prepared[: self._config.max_input_chars]

    def _make_cache_key(self, text: str) -> str:
        """Create cache key with model prefix to avoid collisions."""
        content_hash = hashlib.sha256(text.encode("utf-8")).hexdigest()[:32]
        return f"{self._config.cache_key_prefix}{self._config.model_name}:{content_hash}"

    async def _get_cached_embedding(self, text: str) -> list[float] | None:
        """Try to retrieve embedding from cache."""
        if not self._config.cache_enabled or not self._redis:
            return None

        cache_key = self._make_cache_key(text)
        try:
            cached = await self._redis.get(cache_key)
        except redis.RedisError as e:
            logger.warning("Cache retrieval failed", error=str(e))
            return None

        if not cached:
            self._stats["cache_misses"] += 1
            get_metrics().record_embedding_cache(hit=False)
            return None

        try:
            vector = json.loads(cached)
        except ValueError as e:
            logger.warning("Discarding unreadable cache entry", key=cache_key, error=str(e))
            return None

        if len(vector) != self._config.dimensions:
            return None

        self._stats["cache_hits"] += 1
        get_metrics().record_embedding_cache(hit=True)
        return vector

    async def _cache_embedding(self, text: str, vector: list[float]) -> None:
        """Store embedding in cache."""
        if not self._config.cache_enabled or not self._redis:
            return

        try:
            await self._redis.setex(
                self._make_cache_key(text),
                self._config.cache_ttl_seconds,
                json.dumps(vector),
            )
        except redis.RedisError as e:
            logger.warning("Cache storage failed", error=str(e))

    async def embed(self, text: str) -> list[float]:
        """
        Generate an embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Vector of the configured dimensionality

        Raises:
            EmptyInputError: If text is empty after trimming
            ProviderError: If the provider call fails, times out, or
                returns a vector of the wrong length
        """
        prepared = self.prepare_text(text)

        cached = await self._get_cached_embedding(prepared)
        if cached is not None:
            return cached

        vector = await self._request_embedding(prepared)
        await self._cache_embedding(prepared, vector)
        return vector

    async def _request_embedding(self, text: str) -> list[float]:
        """Perform one provider round-trip."""
        model = self._config.model_name
        client = self._get_client()
        self._stats["provider_calls"] += 1
        start = time.perf_counter()

        try:
            async with asyncio.timeout(self._config.request_timeout_seconds):
                response = await client.embeddings.create(model=model, input=text)
        except TimeoutError as e:
            self._stats["provider_errors"] += 1
            raise ProviderError(
                f"Embedding request timed out after "
                f"{self._config.request_timeout_seconds}s"
            ) from e
        except openai.OpenAIError as e:
            self._stats["provider_errors"] += 1
            raise ProviderError(f"Embedding request failed: {e}") from e
        finally:
            get_metrics().record_provider_latency(model, time.perf_counter() - start)

        try:
            vector = [float(x) for x in response.data[0].embedding]
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            self._stats["provider_errors"] += 1
            raise ProviderError(f"Malformed embedding response: {e}") from e

        if len(vector) != self._config.dimensions:
            self._stats["provider_errors"] += 1
            raise ProviderError(
                f"Provider returned {len(vector)} dimensions, "
                f"expected {self._config.dimensions}"
            )

        return vector

    def get_stats(self) -> dict[str, Any]:
        """Get service statistics."""
        return {
            "model": self._config.model_name,
            "dimensions": self._config.dimensions,
            "cache_enabled": self._config.cache_enabled and self._redis is not None,
            **self._stats,
        }

    async def close(self) -> None:
        """Release the provider client. The service owns whichever client it holds."""
        if self._client is not None:
            await self._client.close()
            self._client = None
