"""
Semantic search service.

The single entry point the rest of the product uses: fire-and-forget
embedding updates for task writes, awaited similarity search, and the
administrative operations (init, backfill, status, diagnostics).
"""

from typing import Any

import openai
import redis.asyncio as redis
import structlog

from tasksearch.config.settings import get_settings
from tasksearch.embedding.config import EmbeddingConfig
from tasksearch.embedding.service import EmbeddingService
from tasksearch.lifecycle.config import DispatcherConfig, LifecycleConfig
from tasksearch.lifecycle.dispatcher import EmbeddingDispatcher
from tasksearch.lifecycle.manager import EmbeddingLifecycleManager
from tasksearch.search.config import SearchConfig
from tasksearch.search.engine import SimilaritySearchEngine
from tasksearch.sources.repository import TaskRepository
from tasksearch.sources.schemas import TaskRecord
from tasksearch.storage.database import Database
from tasksearch.vectorstore.base import VectorStore
from tasksearch.vectorstore.config import VectorStoreConfig
from tasksearch.vectorstore.pgvector_store import PgVectorStore

logger = structlog.get_logger(__name__)


class SemanticSearchService:
    """
    Facade over the embedding lifecycle, dispatcher and search engine.

    All collaborators are passed in; nothing is reached through module
    globals. Use build_semantic_search_service() to wire the production
    stack from environment configuration.

    Usage:
        service = SemanticSearchService(store, embedding_service, repository)
        await service.start()
        service.embed_source_record(task)          # returns immediately
        hits = await service.search_similar("certificate expiring soon")
        await service.stop()
    """

    def __init__(
        self,
        store: VectorStore,
        embedding_service: EmbeddingService,
        repository: TaskRepository | None = None,
        *,
        store_config: VectorStoreConfig | None = None,
        lifecycle_config: LifecycleConfig | None = None,
        dispatcher_config: DispatcherConfig | None = None,
        search_config: SearchConfig | None = None,
    ):
        self._store = store
        self._embedding = embedding_service
        self._repository = repository

        self.manager = EmbeddingLifecycleManager(
            store,
            embedding_service,
            repository,
            config=lifecycle_config,
            store_config=store_config,
        )
        self.dispatcher = EmbeddingDispatcher(self.manager, config=dispatcher_config)
        self.engine = SimilaritySearchEngine(store, embedding_service, config=search_config)

    @property
    def store(self) -> VectorStore:
        return self._store

    @property
    def embedding_service(self) -> EmbeddingService:
        return self._embedding

    async def start(self) -> None:
        """Start background dispatch of lifecycle jobs."""
        await self.dispatcher.start()

    async def stop(self, drain: bool = True) -> None:
        """Stop dispatch, draining queued jobs unless drain=False."""
        await self.dispatcher.stop(drain=drain)

    async def close(self) -> None:
        """Stop dispatch and release the provider client."""
        await self.stop()
        await self._embedding.close()

    # Write path (fire-and-forget)

    def embed_source_record(self, record: TaskRecord) -> bool:
        """
        Schedule (re-)embedding of a task after its write has committed.

        Returns:
            True if the job was queued, False if it was dropped
        """
        return self.dispatcher.submit_upsert(record)

    def delete_source_embedding(self, source_id: str) -> bool:
        """Schedule removal of a deleted task's embedding."""
        return self.dispatcher.submit_delete(source_id)

    # Read path

    async def search_similar(
        self,
        query: str,
        limit: int | None = None,
        min_similarity: float | None = None,
    ) -> list[dict[str, Any]]:
        """
        Find tasks semantically similar to a query.

        Returns:
            List of {"source_id", "similarity"} dicts, highest similarity first

        Raises:
            InvalidQueryError, ProviderError, StorageUnavailableError
        """
        results = await self.engine.search(query, limit=limit, min_similarity=min_similarity)
        return [r.to_dict() for r in results]

    # Administration

    async def init_vector_store(self) -> bool:
        """Provision pgvector and the embedding table. Returns readiness."""
        return await self._store.ensure_schema()

    async def backfill_embeddings(self, stale_only: bool = False) -> dict[str, int]:
        """
        Embed all tasks (or only missing/stale ones) in sequence.

        Returns:
            {"success", "failed", "skipped"} counts
        """
        result = await self.manager.backfill_all(stale_only=stale_only)
        return result.to_dict()

    async def get_vector_store_status(self) -> dict[str, Any]:
        """
        Report how much of the task table is searchable.

        Coverage is the share of tasks with an embedding from the active
        model, as a rounded percentage. Embeddings from other models are
        reported as stale.
        """
        model = self._embedding.model_name
        source_count = await self._repository.count() if self._repository else 0

        if not await self._store.is_initialized():
            return {
                "initialized": False,
                "embedding_count": 0,
                "source_count": source_count,
                "coverage": 0,
                "model": model,
                "stale_count": 0,
            }

        current = await self._store.count(model=model)
        total = await self._store.count()
        coverage = round(current / source_count * 100) if source_count else 0

        return {
            "initialized": True,
            "embedding_count": total,
            "source_count": source_count,
            "coverage": coverage,
            "model": model,
            "stale_count": total - current,
        }

    async def get_vector_store_diagnostics(self) -> dict[str, Any]:
        """Backend diagnostics plus the active embedding configuration."""
        diagnostics = await self._store.diagnostics()
        diagnostics["embedding"] = self._embedding.get_stats()
        diagnostics["lifecycle"] = self.manager.get_stats()
        diagnostics["dispatcher"] = self.dispatcher.get_stats()
        return diagnostics


def build_semantic_search_service(
    database: Database,
    redis_client: redis.Redis | None = None,
    embedding_config: EmbeddingConfig | None = None,
    store_config: VectorStoreConfig | None = None,
) -> SemanticSearchService:
    """
    Wire the production stack from environment configuration.

    The caller owns the database (already connected) and the optional Redis
    client, and is responsible for closing them.
    """
    embedding_config = embedding_config or EmbeddingConfig()
    store_config = store_config or VectorStoreConfig()

    if embedding_config.dimensions != store_config.dimensions:
        raise ValueError(
            f"Embedding dimensions ({embedding_config.dimensions}) do not match "
            f"vector column dimensions ({store_config.dimensions})"
        )

    api_key = embedding_config.api_key
    client = openai.AsyncOpenAI(
        api_key=api_key.get_secret_value() if api_key else None,
        base_url=embedding_config.base_url,
        timeout=embedding_config.request_timeout_seconds,
        max_retries=0,
    )
    embedding_service = EmbeddingService(
        config=embedding_config,
        client=client,
        redis_client=redis_client,
    )

    service = SemanticSearchService(
        PgVectorStore(database, config=store_config),
        embedding_service,
        TaskRepository(database, config=store_config),
        store_config=store_config,
        lifecycle_config=LifecycleConfig(),
        dispatcher_config=DispatcherConfig(),
        search_config=SearchConfig(),
    )
    logger.info(
        "Semantic search service built",
        environment=get_settings().environment,
        model=embedding_config.model_name,
        table=store_config.table_name,
    )
    return service
