"""Domain models - pure Python classes independent of database."""

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from ugc_engine.domain.enums import (
    STAGE_ORDER,
    BriefStatus,
    GenerationStatus,
    QualityStatus,
    ServiceCategory,
    UnitType,
)


@dataclass
class Persona:
    """Who speaks in the testimonial."""

    type: str = "parent"
    age: str = "30-40"
    demographic: str = "general"
    tone: str = "enthusiastic"


@dataclass
class ParsedBrief:
    """Structured interpretation of a natural-language brief."""

    hook: str
    persona: Persona = field(default_factory=Persona)
    emotion: str = "warmth"
    broll_tags: list[str] = field(default_factory=list)
    testimonial_points: list[str] = field(default_factory=list)
    variation_intent: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParsedBrief":
        persona = data.get("persona") or {}
        return cls(
            hook=data["hook"],
            persona=Persona(**persona),
            emotion=data.get("emotion", "warmth"),
            broll_tags=list(data.get("broll_tags", [])),
            testimonial_points=list(data.get("testimonial_points", [])),
            variation_intent=data.get("variation_intent"),
        )

    def with_variation(self, intent: str | None) -> "ParsedBrief":
        """Copy of this brief carrying a caller-supplied variation intent."""
        return replace(self, variation_intent=intent)


@dataclass
class Script:
    """Generated testimonial script for one item."""

    hook: str
    testimonial_script: str
    call_to_action: str
    provider: str
    tokens_used: int = 0
    id: str = field(default_factory=lambda: f"script-{uuid4().hex[:12]}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Script":
        return cls(**data)


@dataclass
class AvatarClip:
    """Avatar video clip. `data` is kept in memory only; `media_url` is the durable handle."""

    duration_seconds: float
    provider: str
    data: bytes | None = None
    media_url: str | None = None
    avatar_id: str | None = None
    character_count: int = 0
    id: str = field(default_factory=lambda: f"avatar-{uuid4().hex[:12]}")

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "duration_seconds": self.duration_seconds,
            "provider": self.provider,
            "media_url": self.media_url,
            "avatar_id": self.avatar_id,
            "character_count": self.character_count,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "AvatarClip":
        return cls(**data)


@dataclass
class BRollClip:
    """Supporting clip composed around the avatar."""

    url: str
    tag: str
    type: str = "video"
    duration_seconds: float | None = None
    id: str = field(default_factory=lambda: f"broll-{uuid4().hex[:12]}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BRollClip":
        return cls(**data)


@dataclass
class ComposedMedia:
    """Final composed vertical video."""

    duration_seconds: float
    provider: str
    data: bytes | None = None
    media_url: str | None = None
    format: str = "mp4"
    width: int = 1080
    height: int = 1920
    id: str = field(default_factory=lambda: f"video-{uuid4().hex[:12]}")

    @property
    def size_bytes(self) -> int:
        return len(self.data) if self.data is not None else 0

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "duration_seconds": self.duration_seconds,
            "provider": self.provider,
            "media_url": self.media_url,
            "format": self.format,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "ComposedMedia":
        return cls(**data)


@dataclass
class BatchProgress:
    """Per-item breakdown of a batch, for polling consumers."""

    total: int = 0
    completed: int = 0
    failed: int = 0
    in_progress: int = 0
    pending: int = 0

    @classmethod
    def from_statuses(cls, statuses: Iterable[GenerationStatus]) -> "BatchProgress":
        progress = cls()
        for status in statuses:
            progress.total += 1
            if status is GenerationStatus.COMPLETED:
                progress.completed += 1
            elif status is GenerationStatus.FAILED:
                progress.failed += 1
            elif status is GenerationStatus.PENDING:
                progress.pending += 1
            else:
                progress.in_progress += 1
        return progress


def derive_batch_status(
    item_statuses: Iterable[GenerationStatus],
    batch_fault: bool = False,
) -> GenerationStatus:
    """Compute a batch's advisory status from its items.

    FAILED only for a batch-level fault. PENDING until any item starts,
    COMPLETED once every item is terminal, otherwise the lowest stage still
    in flight. Items waiting on the fan-out limit stay PENDING and do not
    pull a started batch back; with only waiting and finished items left
    the batch reads QUEUED.
    """
    if batch_fault:
        return GenerationStatus.FAILED

    statuses = [GenerationStatus(s) for s in item_statuses]
    if not statuses or all(s is GenerationStatus.PENDING for s in statuses):
        return GenerationStatus.PENDING
    if all(s.is_terminal for s in statuses):
        return GenerationStatus.COMPLETED

    in_flight = [
        s for s in statuses if not s.is_terminal and s is not GenerationStatus.PENDING
    ]
    if not in_flight:
        return GenerationStatus.QUEUED
    return min(in_flight, key=STAGE_ORDER.index)


@dataclass
class Brief:
    """A brief as read from the record store."""

    id: UUID
    raw_input: str
    status: BriefStatus
    parsed: ParsedBrief | None = None
    created_at: datetime | None = None

    @property
    def is_parsed(self) -> bool:
        return self.status is BriefStatus.PARSED and self.parsed is not None


@dataclass
class Item:
    """One generated video within a batch."""

    id: UUID
    batch_id: UUID
    status: GenerationStatus
    variation_index: int = 0
    script: Script | None = None
    avatar: AvatarClip | None = None
    broll_clips: list[BRollClip] | None = None
    composed: ComposedMedia | None = None
    video_url: str | None = None
    storage_key: str | None = None
    quality_status: QualityStatus = QualityStatus.PENDING
    quality_note: str | None = None
    error_message: str | None = None
    error_stage: GenerationStatus | None = None
    providers: dict[str, str | None] = field(default_factory=dict)
    total_cost: Decimal = Decimal("0")
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass
class Batch:
    """One orchestration run, with its derived status and cost."""

    id: UUID
    brief_id: UUID
    target_count: int
    status: GenerationStatus
    total_cost: Decimal = Decimal("0")
    parent_id: UUID | None = None
    source_item_id: UUID | None = None
    variation_intent: str | None = None
    error_message: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    items: list[Item] = field(default_factory=list)
    progress: BatchProgress = field(default_factory=BatchProgress)
    child_count: int = 0


@dataclass
class CostEntry:
    """One cost ledger row."""

    id: UUID
    item_id: UUID | None
    batch_id: UUID | None
    category: ServiceCategory
    provider: str
    operation: str
    input_units: float
    output_units: float
    unit_type: UnitType
    cost: Decimal
    created_at: datetime | None = None
