"""
Health check endpoint.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from tasksearch import __version__
from tasksearch.api.dependencies import get_database, get_semantic_search_service
from tasksearch.api.models import ComponentHealth, HealthResponse
from tasksearch.errors import StorageUnavailableError
from tasksearch.services.semantic_search import SemanticSearchService
from tasksearch.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    healthy = await db.health_check()
    return ComponentHealth(
        status="healthy" if healthy else "unhealthy",
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
    )


async def _check_vector_store(service: SemanticSearchService) -> ComponentHealth:
    """Check whether the embedding table exists."""
    start = time.perf_counter()
    try:
        initialized = await service.store.is_initialized()
    except StorageUnavailableError as e:
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            details={"error": str(e)},
        )
    return ComponentHealth(
        status="healthy" if initialized else "degraded",
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
        details={"initialized": initialized},
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Check the health of the service and its dependencies.",
)
async def health_check(
    service: SemanticSearchService = Depends(get_semantic_search_service),
    db: Database = Depends(get_database),
) -> HealthResponse:
    """
    Status logic:
    - unhealthy: database is down
    - degraded: vector store not initialized (search returns 503)
    - healthy: all components operational
    """
    components = {
        "database": await _check_database(db),
        "vector_store": await _check_vector_store(service),
    }

    if components["database"].status == "unhealthy":
        status = "unhealthy"
    elif components["vector_store"].status != "healthy":
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        components=components,
        dispatcher=service.dispatcher.get_stats(),
        version=__version__,
    )
