"""Cost reporting endpoints."""

from typing import Any

from fastapi import APIRouter

from ugc_engine.api.deps import GenerationServiceDep
from ugc_engine.api.envelope import envelope
from ugc_engine.api.schemas import CostStatsOut

router = APIRouter(prefix="/costs", tags=["Costs"])


@router.get("/stats", summary="Cost statistics")
async def cost_stats(service: GenerationServiceDep) -> dict[str, Any]:
    """Spend today, this week, this month and all time, plus the monthly split by category."""
    return envelope(CostStatsOut.model_validate(service.get_cost_stats()))
