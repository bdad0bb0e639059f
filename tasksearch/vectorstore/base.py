"""
Abstract base class and data models for vector store implementations.

Defines the interface that all vector store backends must implement,
plus shared data structures for embedding records and search results.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class EmbeddingRecord:
    """
    The stored embedding of one source record.

    Attributes:
        id: Derived from source_id (prefix + source ID)
        source_id: ID of the source record (unique across the table)
        vector: Fixed-length embedding
        model: Embedding model that produced the vector
        created_at: First time an embedding was stored for this source
        updated_at: Last full replace
    """

    id: str
    source_id: str
    vector: list[float]
    model: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class VectorSearchResult:
    """
    Result from a vector similarity search.

    Attributes:
        source_id: ID of the matched source record
        similarity: Cosine similarity (1.0 = identical direction)
    """

    source_id: str
    similarity: float

    def __post_init__(self) -> None:
        """Validate similarity is a cosine value."""
        if not -1.0 <= self.similarity <= 1.0:
            raise ValueError(
                f"Similarity must be between -1.0 and 1.0, got {self.similarity}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {"source_id": self.source_id, "similarity": self.similarity}


class VectorStore(ABC):
    """
    Abstract base class for vector store implementations.

    Owns the durable embedding table and performs raw upsert/delete/query
    operations against it. No business logic: deciding what to embed and
    when belongs to the lifecycle manager.

    All methods are async to support non-blocking I/O.
    """

    @abstractmethod
    async def ensure_schema(self) -> bool:
        """
        Provision the vector capability and embedding table if missing.

        Idempotent and safe to call from several workers at once. Never
        raises: failures are logged and reported through the return value.

        Returns:
            True if the table is ready for use
        """
        ...

    @abstractmethod
    async def is_initialized(self) -> bool:
        """Check whether the embedding table exists."""
        ...

    @abstractmethod
    async def upsert(
        self,
        record_id: str,
        source_id: str,
        vector: list[float],
        model: str,
    ) -> None:
        """
        Insert or fully replace the embedding of a source record.

        Keyed on source_id; concurrent calls for the same source resolve
        as last write wins.

        Raises:
            StorageUnavailableError: If the write could not be performed
        """
        ...

    @abstractmethod
    async def delete_by_source_id(self, source_id: str) -> bool:
        """
        Delete the embedding of a source record.

        Returns:
            True if a record was deleted, False if none existed

        Raises:
            StorageUnavailableError: If the delete could not be performed
        """
        ...

    @abstractmethod
    async def query_nearest(
        self,
        query_vector: list[float],
        limit: int,
        min_similarity: float,
        model: str,
    ) -> list[VectorSearchResult]:
        """
        Find the nearest stored vectors produced by the given model.

        Args:
            query_vector: Embedding of the query text
            limit: Maximum number of results
            min_similarity: Exclusive lower bound on cosine similarity
            model: Model the query vector came from; only vectors from the
                same model are compared

        Returns:
            Results sorted by similarity (descending)

        Raises:
            StorageUnavailableError: If the query could not be performed
        """
        ...

    @abstractmethod
    async def get_by_source_id(self, source_id: str) -> EmbeddingRecord | None:
        """Fetch the stored embedding of a source record, if any."""
        ...

    @abstractmethod
    async def count(self, model: str | None = None) -> int:
        """
        Count stored embeddings.

        Args:
            model: Only count vectors from this model (all if None)
        """
        ...

    @abstractmethod
    async def count_stale(self, model: str) -> int:
        """Count embeddings produced by a model other than `model`."""
        ...

    async def diagnostics(self) -> dict[str, Any]:
        """Describe the backend state for operators. Backends may add detail."""
        return {"table_exists": await self.is_initialized()}
