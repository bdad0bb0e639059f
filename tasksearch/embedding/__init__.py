"""
Embedding generation for task text.

Components:
- EmbeddingConfig: Provider model, limits, timeout and cache settings
- EmbeddingService: Text to vector through the embedding API
- cosine_similarity: Vector comparison helper
"""

from tasksearch.embedding.config import EmbeddingConfig
from tasksearch.embedding.service import EmbeddingService, cosine_similarity

__all__ = [
    "EmbeddingConfig",
    "EmbeddingService",
    "cosine_similarity",
]
