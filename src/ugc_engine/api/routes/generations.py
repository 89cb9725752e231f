"""Generation (batch) endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, status

from ugc_engine.api.deps import GenerationServiceDep
from ugc_engine.api.envelope import envelope
from ugc_engine.api.schemas import BatchOut, BatchSummaryOut, LineageOut, StartBatchRequest
from ugc_engine.logging import get_logger

router = APIRouter(prefix="/generations", tags=["Generations"])
logger = get_logger(__name__)


@router.post("", status_code=status.HTTP_202_ACCEPTED, summary="Start generation")
async def start_generation(
    request: StartBatchRequest,
    service: GenerationServiceDep,
) -> dict[str, Any]:
    """Create a batch of videos from a parsed brief and queue it."""
    logger.info(
        "start_generation_requested",
        brief_id=str(request.brief_id),
        target_count=request.target_count,
    )
    batch = service.start_batch(request.brief_id, request.target_count)
    return envelope(BatchOut.model_validate(batch))


@router.get("", summary="List generations")
async def list_generations(
    service: GenerationServiceDep,
    brief_id: UUID | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> dict[str, Any]:
    batches = service.list_batches(brief_id=brief_id, limit=limit, offset=offset)
    return envelope([BatchSummaryOut.model_validate(b) for b in batches])


@router.get("/{batch_id}", summary="Get generation")
async def get_generation(batch_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    """Batch status, per-item breakdown, progress counts and total cost."""
    return envelope(BatchOut.model_validate(service.get_batch(batch_id)))


@router.post("/{batch_id}/cancel", summary="Cancel generation")
async def cancel_generation(batch_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    return envelope(BatchOut.model_validate(service.cancel_batch(batch_id)))


@router.post(
    "/{batch_id}/retry",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Regenerate failed videos",
)
async def retry_failed(batch_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    """Start a child generation sized to this generation's failed videos."""
    return envelope(BatchOut.model_validate(service.retry_failed(batch_id)))


@router.get("/{batch_id}/lineage", summary="Generation lineage")
async def get_lineage(batch_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    return envelope(LineageOut.model_validate(service.get_lineage(batch_id)))
