"""
Similarity search over task embeddings.

Embeds a natural-language query with the active model and asks the
vector store for the closest task embeddings produced by that same model.
"""

import math
import time

import structlog

from tasksearch.embedding.service import EmbeddingService
from tasksearch.errors import (
    EmptyInputError,
    InvalidQueryError,
    ProviderError,
    StorageUnavailableError,
)
from tasksearch.observability.metrics import get_metrics
from tasksearch.search.config import SearchConfig
from tasksearch.vectorstore.base import VectorSearchResult, VectorStore

logger = structlog.get_logger(__name__)


class SimilaritySearchEngine:
    """
    Natural-language query to ranked source IDs.

    Errors from the provider or the store are raised once to the caller,
    which decides whether to show a degraded result. Nothing is retried here.

    Usage:
        engine = SimilaritySearchEngine(store, embedding_service)
        results = await engine.search("certificate expiring soon", limit=5)
    """

    def __init__(
        self,
        store: VectorStore,
        embedding_service: EmbeddingService,
        config: SearchConfig | None = None,
    ):
        self._store = store
        self._embedding = embedding_service
        self._config = config or SearchConfig()
        self._metrics = get_metrics()

    @property
    def config(self) -> SearchConfig:
        return self._config

    def clamp_limit(self, limit: int | None) -> int:
        """Apply the default and keep the limit within [1, max_limit]."""
        if limit is None:
            return self._config.default_limit
        return max(1, min(int(limit), self._config.max_limit))

    def resolve_threshold(self, min_similarity: float | None) -> float:
        if min_similarity is None:
            return self._config.default_min_similarity
        if math.isnan(min_similarity) or not -1.0 <= min_similarity <= 1.0:
            raise InvalidQueryError(
                f"min_similarity must be between -1.0 and 1.0, got {min_similarity}"
            )
        return float(min_similarity)

    async def search(
        self,
        query: str,
        limit: int | None = None,
        min_similarity: float | None = None,
    ) -> list[VectorSearchResult]:
        """
        Find the source records most similar to a query.

        Args:
            query: Natural-language query (must not be blank)
            limit: Maximum results (default 10, clamped to [1, max_limit])
            min_similarity: Exclusive lower bound on similarity (default 0.5)

        Returns:
            Results with similarity > min_similarity, highest first

        Raises:
            InvalidQueryError: Blank query or threshold outside [-1, 1]
            ProviderError: Query could not be embedded
            StorageUnavailableError: Vector store missing or unreachable
        """
        if not query or not query.strip():
            raise InvalidQueryError("Query must not be empty")

        limit = self.clamp_limit(limit)
        threshold = self.resolve_threshold(min_similarity)
        start = time.perf_counter()

        try:
            vector = await self._embedding.embed(query)
            results = await self._store.query_nearest(
                vector,
                limit=limit,
                min_similarity=threshold,
                model=self._embedding.model_name,
            )
        except EmptyInputError as e:
            raise InvalidQueryError(str(e)) from e
        except ProviderError:
            self._metrics.record_search_error("provider_unavailable")
            raise
        except StorageUnavailableError as e:
            self._metrics.record_search_error(e.reason)
            raise

        # Strictly above threshold, highest first, whatever the backend returned
        results = [r for r in results if r.similarity > threshold]
        results.sort(key=lambda r: r.similarity, reverse=True)
        results = results[:limit]

        latency = time.perf_counter() - start
        self._metrics.record_search(latency, len(results))
        logger.debug(
            "Similarity search complete",
            results=len(results),
            limit=limit,
            min_similarity=threshold,
            latency_ms=round(latency * 1000, 1),
        )
        return results
