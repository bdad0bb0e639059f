"""Service layer exposing semantic search to the rest of the product."""

from tasksearch.services.semantic_search import (
    SemanticSearchService,
    build_semantic_search_service,
)

__all__ = ["SemanticSearchService", "build_semantic_search_service"]
