"""Request and response models for the HTTP API."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ugc_engine.domain.enums import BriefStatus, GenerationStatus, QualityStatus


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# -- requests ---------------------------------------------------------------


class CreateBriefRequest(BaseModel):
    """Request to create a brief."""

    raw_input: str = Field(..., min_length=1, max_length=5000)
    parse: bool = Field(default=False, description="Parse the brief immediately")


class UpdateBriefRequest(BaseModel):
    """Request to replace a brief's text."""

    raw_input: str = Field(..., min_length=1, max_length=5000)


class StartBatchRequest(BaseModel):
    """Request to start a generation batch."""

    brief_id: UUID
    target_count: int = Field(..., description="Number of videos to generate")


class IterateRequest(BaseModel):
    """Request to iterate on an approved video."""

    target_count: int = Field(..., description="Number of new variations")
    variation_intent: str | None = Field(None, max_length=500)


class ReviewRequest(BaseModel):
    """Human quality review of a finished video."""

    quality_status: QualityStatus
    note: str | None = Field(None, max_length=2000)


# -- responses --------------------------------------------------------------


class PersonaOut(_FromDomain):
    type: str
    age: str
    demographic: str
    tone: str


class ParsedBriefOut(_FromDomain):
    hook: str
    persona: PersonaOut
    emotion: str
    broll_tags: list[str]
    testimonial_points: list[str]


class BriefOut(_FromDomain):
    id: UUID
    raw_input: str
    status: BriefStatus
    parsed: ParsedBriefOut | None = None
    created_at: datetime | None = None


class ScriptOut(_FromDomain):
    hook: str
    testimonial_script: str
    call_to_action: str
    provider: str
    tokens_used: int


class ItemOut(_FromDomain):
    id: UUID
    batch_id: UUID
    status: GenerationStatus
    variation_index: int
    script: ScriptOut | None = None
    video_url: str | None = None
    storage_key: str | None = None
    quality_status: QualityStatus
    quality_note: str | None = None
    error_message: str | None = None
    error_stage: GenerationStatus | None = None
    providers: dict[str, str | None]
    total_cost: Decimal
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ItemPageOut(BaseModel):
    items: list[ItemOut]
    total: int
    limit: int
    offset: int


class ProgressOut(_FromDomain):
    total: int
    completed: int
    failed: int
    in_progress: int
    pending: int


class BatchSummaryOut(_FromDomain):
    id: UUID
    brief_id: UUID
    target_count: int
    status: GenerationStatus
    total_cost: Decimal
    parent_id: UUID | None = None
    source_item_id: UUID | None = None
    variation_intent: str | None = None
    error_message: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    progress: ProgressOut
    child_count: int


class BatchOut(BatchSummaryOut):
    items: list[ItemOut]


class LineageOut(_FromDomain):
    batch: BatchSummaryOut
    ancestors: list[BatchSummaryOut]
    children: list[BatchSummaryOut]


class CostEntryOut(_FromDomain):
    id: UUID
    item_id: UUID | None
    batch_id: UUID | None
    category: str
    provider: str
    operation: str
    input_units: float
    output_units: float
    unit_type: str
    cost: Decimal
    created_at: datetime | None = None


class CostBreakdownOut(_FromDomain):
    item_id: UUID
    total: Decimal
    by_category: dict[str, Decimal]
    entries: list[CostEntryOut]


class CostStatsOut(_FromDomain):
    today: Decimal
    week: Decimal
    month: Decimal
    all_time: Decimal
    by_category: dict[str, Decimal]
    entry_count: int
