"""Video (item) endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, status

from ugc_engine.api.deps import GenerationServiceDep
from ugc_engine.api.envelope import envelope
from ugc_engine.api.schemas import (
    BatchOut,
    CostBreakdownOut,
    ItemOut,
    ItemPageOut,
    IterateRequest,
    ReviewRequest,
)
from ugc_engine.domain.enums import GenerationStatus, QualityStatus
from ugc_engine.logging import get_logger

router = APIRouter(prefix="/videos", tags=["Videos"])
logger = get_logger(__name__)


@router.get("", summary="List videos")
async def list_videos(
    service: GenerationServiceDep,
    status_filter: GenerationStatus | None = Query(None, alias="status"),
    quality_status: QualityStatus | None = Query(None),
    brief_id: UUID | None = Query(None),
    generation_id: UUID | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> dict[str, Any]:
    """List videos across generations, newest first."""
    items, total = service.list_items(
        status=status_filter,
        quality_status=quality_status,
        brief_id=brief_id,
        batch_id=generation_id,
        limit=limit,
        offset=offset,
    )
    page = ItemPageOut(
        items=[ItemOut.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )
    return envelope(page)


@router.get("/{item_id}", summary="Get video")
async def get_video(item_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    return envelope(ItemOut.model_validate(service.get_item(item_id)))


@router.patch("/{item_id}/review", summary="Review video")
async def review_video(
    item_id: UUID,
    request: ReviewRequest,
    service: GenerationServiceDep,
) -> dict[str, Any]:
    """Approve or flag a finished video."""
    item = service.review_item(item_id, request.quality_status, request.note)
    return envelope(ItemOut.model_validate(item))


@router.post(
    "/{item_id}/iterate",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Iterate on video",
)
async def iterate_video(
    item_id: UUID,
    request: IterateRequest,
    service: GenerationServiceDep,
) -> dict[str, Any]:
    """Start a new generation from an approved video."""
    batch = service.create_iteration(item_id, request.target_count, request.variation_intent)
    return envelope(BatchOut.model_validate(batch))


@router.get("/{item_id}/costs", summary="Video cost breakdown")
async def get_video_costs(item_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    return envelope(CostBreakdownOut.model_validate(service.get_item_costs(item_id)))


@router.delete("/{item_id}", summary="Delete video")
async def delete_video(item_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    """Delete a finished video. Its cost entries stay on the generation."""
    await service.delete_item(item_id)
    return envelope({"id": str(item_id), "deleted": True})
