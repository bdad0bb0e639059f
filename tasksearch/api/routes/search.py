"""
Semantic search endpoint for finding similar tasks.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from tasksearch.api.auth import verify_api_key
from tasksearch.api.dependencies import get_semantic_search_service
from tasksearch.api.models import (
    ErrorResponse,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
)
from tasksearch.services.semantic_search import SemanticSearchService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/search/similar",
    response_model=SearchResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid query"},
        401: {"model": ErrorResponse, "description": "Invalid API key"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        503: {"model": ErrorResponse, "description": "Vector store or provider unavailable"},
    },
    summary="Search for similar tasks",
    description="""
    Find tasks semantically similar to a natural-language query.

    The query is embedded with the active model and compared by cosine
    similarity against task embeddings from that same model. Only results
    strictly above `min_similarity` are returned, highest first.

    A 503 with `error_type: not_initialized` means vector search has not
    been provisioned yet, which is distinct from an empty result list.
    """,
)
async def search_similar(
    body: SearchRequest,
    api_key: str = Depends(verify_api_key),
    service: SemanticSearchService = Depends(get_semantic_search_service),
) -> SearchResponse:
    start_time = time.perf_counter()

    results = await service.search_similar(
        body.query,
        limit=body.limit,
        min_similarity=body.min_similarity,
    )
    items = [
        SearchResultItem(source_id=r["source_id"], similarity=round(r["similarity"], 4))
        for r in results
    ]

    latency_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        "Search completed",
        query_length=len(body.query),
        results_count=len(items),
        latency_ms=round(latency_ms, 2),
    )

    return SearchResponse(
        results=items,
        total=len(items),
        latency_ms=round(latency_ms, 2),
    )
