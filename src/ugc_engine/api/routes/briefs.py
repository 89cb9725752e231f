"""Brief endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, status

from ugc_engine.api.deps import GenerationServiceDep
from ugc_engine.api.envelope import envelope
from ugc_engine.api.schemas import (
    BatchSummaryOut,
    BriefOut,
    CreateBriefRequest,
    UpdateBriefRequest,
)
from ugc_engine.logging import get_logger

router = APIRouter(prefix="/briefs", tags=["Briefs"])
logger = get_logger(__name__)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create brief")
async def create_brief(request: CreateBriefRequest, service: GenerationServiceDep) -> dict[str, Any]:
    brief = service.create_brief(request.raw_input, parse=request.parse)
    return envelope(BriefOut.model_validate(brief))


@router.get("", summary="List briefs")
async def list_briefs(
    service: GenerationServiceDep,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> dict[str, Any]:
    briefs = service.list_briefs(limit=limit, offset=offset)
    return envelope([BriefOut.model_validate(b) for b in briefs])


@router.get("/{brief_id}", summary="Get brief")
async def get_brief(brief_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    return envelope(BriefOut.model_validate(service.get_brief(brief_id)))


@router.patch("/{brief_id}", summary="Update brief")
async def update_brief(
    brief_id: UUID,
    request: UpdateBriefRequest,
    service: GenerationServiceDep,
) -> dict[str, Any]:
    """Replace the brief text. Clears the interpretation and resets it to draft."""
    brief = service.update_brief(brief_id, request.raw_input)
    return envelope(BriefOut.model_validate(brief))


@router.post("/{brief_id}/parse", summary="Parse brief")
async def parse_brief(brief_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    """Interpret the brief text. Replaces any previous interpretation."""
    return envelope(BriefOut.model_validate(service.parse_brief(brief_id)))


@router.post(
    "/{brief_id}/duplicate",
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate brief",
)
async def duplicate_brief(brief_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    """Copy the brief text into a new, unparsed brief."""
    return envelope(BriefOut.model_validate(service.duplicate_brief(brief_id)))


@router.delete("/{brief_id}", summary="Delete brief")
async def delete_brief(brief_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    service.delete_brief(brief_id)
    return envelope({"id": str(brief_id), "deleted": True})


@router.get("/{brief_id}/generations", summary="List generations for a brief")
async def list_brief_generations(brief_id: UUID, service: GenerationServiceDep) -> dict[str, Any]:
    service.get_brief(brief_id)
    batches = service.list_batches(brief_id=brief_id)
    return envelope([BatchSummaryOut.model_validate(b) for b in batches])
