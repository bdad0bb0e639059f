"""
Embedding lifecycle: keeping task embeddings in sync with task writes.

Components:
- EmbeddingLifecycleManager: on_upsert / on_delete / backfill_all
- EmbeddingDispatcher: Bounded background queue in front of the manager
- BackfillResult, EmbeddingOutcome: Operation results
"""

from tasksearch.lifecycle.config import DispatcherConfig, LifecycleConfig
from tasksearch.lifecycle.dispatcher import EmbeddingDispatcher, EmbeddingJob
from tasksearch.lifecycle.manager import (
    BackfillResult,
    EmbeddingLifecycleManager,
    EmbeddingOutcome,
    build_search_text,
)

__all__ = [
    "BackfillResult",
    "DispatcherConfig",
    "EmbeddingDispatcher",
    "EmbeddingJob",
    "EmbeddingLifecycleManager",
    "EmbeddingOutcome",
    "LifecycleConfig",
    "build_search_text",
]
