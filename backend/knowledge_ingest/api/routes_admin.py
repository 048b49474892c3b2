"""Administrative routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from knowledge_ingest.api.dependencies import get_app_settings, get_repository
from knowledge_ingest.core.config import Settings
from knowledge_ingest.core.logging import get_logger
from knowledge_ingest.core.metrics import metrics_response
from knowledge_ingest.db.repository import DocumentRepository
from knowledge_ingest.models.dto import CleanupRequest, CleanupResponse, StatsResponse
from knowledge_ingest.utils.time import minutes_ago_ms

logger = get_logger(__name__)

router = APIRouter()


@router.post("/maintenance/cleanup-stale", response_model=CleanupResponse, summary="Fail documents stuck in processing")
async def cleanup_stale(
    request: CleanupRequest,
    repository: DocumentRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> CleanupResponse:
    minutes = request.older_than_minutes or settings.stale_after_minutes
    failed = repository.fail_stale_documents(minutes_ago_ms(minutes), user_id=request.user_id)
    if failed:
        logger.info("Marked %s stale documents as failed", len(failed))
    return CleanupResponse(failed=len(failed), document_ids=failed)


@router.get("/stats", response_model=StatsResponse, summary="Document processing statistics")
async def stats(
    user_id: str | None = None,
    repository: DocumentRepository = Depends(get_repository),
) -> StatsResponse:
    return StatsResponse(**repository.processing_stats(user_id))


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
