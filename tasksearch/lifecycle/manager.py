"""
Embedding lifecycle manager.

Keeps exactly zero or one stored embedding per source record in step with
that record's searchable text. Every operation is fail-soft: errors are
logged and counted here and never reach the write that triggered them.
A later backfill picks up anything that was missed.
"""

import asyncio
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

import structlog

from tasksearch.embedding.service import EmbeddingService
from tasksearch.errors import EmptyInputError, ProviderError, StorageUnavailableError
from tasksearch.lifecycle.config import LifecycleConfig
from tasksearch.observability.metrics import get_metrics
from tasksearch.sources.repository import TaskRepository
from tasksearch.sources.schemas import TaskRecord
from tasksearch.vectorstore.base import VectorStore
from tasksearch.vectorstore.config import VectorStoreConfig

logger = structlog.get_logger(__name__)


class EmbeddingOutcome(str, Enum):
    """Result of syncing one source record."""

    EMBEDDED = "embedded"
    SKIPPED = "skipped"  # no searchable text
    FAILED = "failed"


@dataclass
class BackfillResult:
    """Counts from a backfill run. Skipped records are neither successes nor failures."""

    success: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.success + self.failed + self.skipped

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def build_search_text(record: TaskRecord) -> str:
    """Derive the text embedded for a source record."""
    return record.search_text()


class EmbeddingLifecycleManager:
    """
    Derives searchable text for source records and keeps their embeddings current.

    Usage:
        manager = EmbeddingLifecycleManager(store, embedding_service, repository)
        await manager.on_upsert(record)
        await manager.on_delete("task_123")
        result = await manager.backfill_all()
    """

    def __init__(
        self,
        store: VectorStore,
        embedding_service: EmbeddingService,
        repository: TaskRepository | None = None,
        config: LifecycleConfig | None = None,
        store_config: VectorStoreConfig | None = None,
    ):
        """
        Initialize the lifecycle manager.

        Args:
            store: Vector store holding the embeddings
            embedding_service: Service producing vectors for text
            repository: Source record reader (required for backfill only)
            config: Lifecycle configuration
            store_config: Used to derive embedding IDs from source IDs
        """
        self._store = store
        self._embedding = embedding_service
        self._repository = repository
        self._config = config or LifecycleConfig()
        self._store_config = store_config or VectorStoreConfig()
        self._metrics = get_metrics()

    async def on_upsert(self, record: TaskRecord) -> EmbeddingOutcome:
        """
        Embed a created or updated source record and store the vector.

        Never raises.

        Returns:
            EMBEDDED on success, SKIPPED for records without text, FAILED otherwise
        """
        text = build_search_text(record)
        if not text:
            logger.info("No searchable text, skipping embedding", source_id=record.id)
            self._metrics.record_embedding_skipped()
            return EmbeddingOutcome.SKIPPED

        model = self._embedding.model_name
        try:
            vector = await self._embedding.embed(text)
            await self._store.upsert(
                self._store_config.record_id(record.id),
                record.id,
                vector,
                model,
            )
        except EmptyInputError:
            self._metrics.record_embedding_skipped()
            return EmbeddingOutcome.SKIPPED
        except ProviderError as e:
            return self._failed(record.id, "provider", e)
        except (StorageUnavailableError, ValueError) as e:
            return self._failed(record.id, "storage", e)
        except Exception as e:
            logger.exception("Unexpected embedding failure", source_id=record.id)
            return self._failed(record.id, "unknown", e)

        self._metrics.record_embedding_stored(model)
        logger.debug("Embedding stored", source_id=record.id, model=model)
        return EmbeddingOutcome.EMBEDDED

    async def on_delete(self, source_id: str) -> bool:
        """
        Remove the embedding of a deleted source record.

        A missing embedding is not an error. Never raises.

        Returns:
            True if the store call succeeded (whether or not a row existed)
        """
        try:
            deleted = await self._store.delete_by_source_id(source_id)
        except StorageUnavailableError as e:
            self._failed(source_id, "storage", e)
            return False
        except Exception as e:
            logger.exception("Unexpected embedding delete failure", source_id=source_id)
            self._failed(source_id, "unknown", e)
            return False

        if deleted:
            self._metrics.record_embedding_deleted()
            logger.debug("Embedding deleted", source_id=source_id)
        return True

    async def backfill_all(self, stale_only: bool = False) -> BackfillResult:
        """
        Embed every source record, one at a time.

        Individual failures are counted and do not stop the run. A short
        pause after each provider call keeps the run under provider rate
        limits.

        Args:
            stale_only: Only visit records whose embedding is missing or
                was produced by a different model than the active one

        Returns:
            BackfillResult with success, failed and skipped counts
        """
        if self._repository is None:
            raise RuntimeError("Backfill requires a TaskRepository")

        result = BackfillResult()
        batch_size = self._config.backfill_batch_size
        if stale_only:
            records = self._repository.iter_needing_embedding(
                self._embedding.model_name, batch_size=batch_size
            )
        else:
            records = self._repository.iter_all(batch_size=batch_size)

        logger.info(
            "Starting embedding backfill",
            stale_only=stale_only,
            model=self._embedding.model_name,
        )

        async for record in records:
            outcome = await self.on_upsert(record)
            if outcome is EmbeddingOutcome.EMBEDDED:
                result.success += 1
            elif outcome is EmbeddingOutcome.FAILED:
                result.failed += 1
            else:
                result.skipped += 1
                continue

            if self._config.backfill_delay_seconds > 0:
                await asyncio.sleep(self._config.backfill_delay_seconds)

            if result.total % 100 == 0:
                logger.info("Backfill progress", **result.to_dict())

        self._metrics.record_backfill(result.success, result.failed, result.skipped)
        logger.info("Embedding backfill complete", **result.to_dict())
        return result

    def _failed(self, source_id: str, stage: str, error: Exception) -> EmbeddingOutcome:
        logger.warning(
            "Embedding lifecycle operation failed",
            source_id=source_id,
            stage=stage,
            error=str(error),
        )
        self._metrics.record_embedding_failed(stage)
        return EmbeddingOutcome.FAILED

    def get_stats(self) -> dict[str, Any]:
        return {
            "model": self._embedding.model_name,
            "backfill_delay_seconds": self._config.backfill_delay_seconds,
            "backfill_batch_size": self._config.backfill_batch_size,
        }
