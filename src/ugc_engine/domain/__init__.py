"""Domain models and business logic."""

from ugc_engine.domain.enums import (
    STAGE_ORDER,
    BriefStatus,
    GenerationStatus,
    QualityStatus,
    ServiceCategory,
    UnitType,
)
from ugc_engine.domain.models import (
    AvatarClip,
    Batch,
    BatchProgress,
    Brief,
    BRollClip,
    ComposedMedia,
    CostEntry,
    Item,
    ParsedBrief,
    Persona,
    Script,
    derive_batch_status,
)

__all__ = [
    "STAGE_ORDER",
    "AvatarClip",
    "Batch",
    "BatchProgress",
    "Brief",
    "BRollClip",
    "BriefStatus",
    "ComposedMedia",
    "CostEntry",
    "GenerationStatus",
    "Item",
    "ParsedBrief",
    "Persona",
    "QualityStatus",
    "Script",
    "ServiceCategory",
    "UnitType",
    "derive_batch_status",
]
