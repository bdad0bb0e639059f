"""
Embedding lifecycle hooks for the primary task store.

The task API calls these after its own write has committed. Both return
202 immediately; the work happens on the background dispatcher.
"""

import structlog
from fastapi import APIRouter, Depends, status

from tasksearch.api.auth import verify_api_key
from tasksearch.api.dependencies import get_semantic_search_service
from tasksearch.api.models import EmbeddingJobResponse
from tasksearch.services.semantic_search import SemanticSearchService
from tasksearch.sources.schemas import TaskRecord

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/embeddings",
    response_model=EmbeddingJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue (re-)embedding of a task",
)
async def embed_task(
    record: TaskRecord,
    api_key: str = Depends(verify_api_key),
    service: SemanticSearchService = Depends(get_semantic_search_service),
) -> EmbeddingJobResponse:
    queued = service.embed_source_record(record)
    return EmbeddingJobResponse(source_id=record.id, action="upsert", queued=queued)


@router.delete(
    "/embeddings/{source_id}",
    response_model=EmbeddingJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue removal of a task's embedding",
)
async def delete_task_embedding(
    source_id: str,
    api_key: str = Depends(verify_api_key),
    service: SemanticSearchService = Depends(get_semantic_search_service),
) -> EmbeddingJobResponse:
    queued = service.delete_source_embedding(source_id)
    return EmbeddingJobResponse(source_id=source_id, action="delete", queued=queued)
