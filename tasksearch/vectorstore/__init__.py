"""
Vector store abstraction for task embeddings.

Main components:
- VectorStore: Abstract base class defining the vector store interface
- PgVectorStore: pgvector implementation with guarded schema setup
- EmbeddingRecord: The stored embedding of one source record
- VectorSearchResult: Source ID with cosine similarity
- VectorStoreConfig: Table, dimensionality, index and timeout settings
"""

from tasksearch.vectorstore.base import (
    EmbeddingRecord,
    VectorSearchResult,
    VectorStore,
)
from tasksearch.vectorstore.config import VectorStoreConfig
from tasksearch.vectorstore.pgvector_store import PgVectorStore

__all__ = [
    "EmbeddingRecord",
    "VectorStore",
    "VectorSearchResult",
    "VectorStoreConfig",
    "PgVectorStore",
]
