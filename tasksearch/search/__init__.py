"""Similarity search over task embeddings."""

from tasksearch.search.config import SearchConfig
from tasksearch.search.engine import SimilaritySearchEngine

__all__ = ["SearchConfig", "SimilaritySearchEngine"]
