"""
Vector store administration: status, init, backfill, diagnostics.
"""

import structlog
from fastapi import APIRouter, Depends

from tasksearch.api.auth import verify_api_key
from tasksearch.api.dependencies import get_semantic_search_service
from tasksearch.api.models import (
    BackfillCounts,
    VectorActionRequest,
    VectorActionResponse,
    VectorStatusResponse,
)
from tasksearch.services.semantic_search import SemanticSearchService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/admin/vectors", dependencies=[Depends(verify_api_key)])


@router.get(
    "",
    response_model=VectorStatusResponse,
    summary="Vector store status and coverage",
)
async def get_status(
    service: SemanticSearchService = Depends(get_semantic_search_service),
) -> VectorStatusResponse:
    status = await service.get_vector_store_status()
    return VectorStatusResponse(**status)


@router.post(
    "",
    response_model=VectorActionResponse,
    summary="Initialize the vector store and/or backfill embeddings",
    description="""
    - `init`: enable pgvector and create the embedding table
    - `backfill`: embed every task in sequence (slow; rate limited)
    - `init-and-backfill`: both, stopping if init fails

    Set `stale_only` to backfill only tasks without an embedding from the
    active model.
    """,
)
async def run_action(
    body: VectorActionRequest,
    service: SemanticSearchService = Depends(get_semantic_search_service),
) -> VectorActionResponse:
    logger.info("Vector admin action", action=body.action, stale_only=body.stale_only)

    initialized = None
    if body.action in ("init", "init-and-backfill"):
        initialized = await service.init_vector_store()
        if not initialized:
            return VectorActionResponse(
                action=body.action,
                success=False,
                message="Vector store initialization failed; see logs",
                initialized=False,
            )
        if body.action == "init":
            return VectorActionResponse(
                action=body.action,
                success=True,
                message="Vector store initialized",
                initialized=True,
            )

    counts = await service.backfill_embeddings(stale_only=body.stale_only)
    return VectorActionResponse(
        action=body.action,
        success=True,
        message=(
            f"Backfill complete: {counts['success']} embedded, "
            f"{counts['failed']} failed, {counts['skipped']} skipped"
        ),
        initialized=initialized,
        backfill=BackfillCounts(**counts),
    )


@router.get(
    "/debug",
    summary="Diagnose the vector search setup",
)
async def get_diagnostics(
    service: SemanticSearchService = Depends(get_semantic_search_service),
) -> dict:
    return await service.get_vector_store_diagnostics()
