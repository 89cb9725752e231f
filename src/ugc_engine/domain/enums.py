"""Domain enumerations."""

from enum import StrEnum


class GenerationStatus(StrEnum):
    """Pipeline status of an item (and, derived, of a batch)."""

    PENDING = "pending"
    QUEUED = "queued"
    SCRIPT_GEN = "script_gen"
    AVATAR_GEN = "avatar_gen"
    VIDEO_GEN = "video_gen"
    COMPOSITING = "compositing"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationStatus.COMPLETED, GenerationStatus.FAILED)

    @property
    def rank(self) -> int:
        """Position in the stage order. FAILED has no position."""
        if self is GenerationStatus.FAILED:
            raise ValueError("FAILED is not part of the stage order")
        return STAGE_ORDER.index(self)

    def next_stage(self) -> "GenerationStatus":
        """The status that follows this one in the stage order."""
        if self.is_terminal:
            raise ValueError(f"{self} is terminal")
        return STAGE_ORDER[self.rank + 1]

    def can_transition_to(self, target: "GenerationStatus") -> bool:
        """Forward-only, no skipping; FAILED from any non-terminal state."""
        if self.is_terminal:
            return False
        if target is GenerationStatus.FAILED:
            return True
        return target is self.next_stage()


STAGE_ORDER: tuple[GenerationStatus, ...] = (
    GenerationStatus.PENDING,
    GenerationStatus.QUEUED,
    GenerationStatus.SCRIPT_GEN,
    GenerationStatus.AVATAR_GEN,
    GenerationStatus.VIDEO_GEN,
    GenerationStatus.COMPOSITING,
    GenerationStatus.UPLOADING,
    GenerationStatus.COMPLETED,
)


class QualityStatus(StrEnum):
    """Human review outcome for a finished item."""

    PENDING = "pending"
    APPROVED = "approved"
    FLAGGED = "flagged"


class BriefStatus(StrEnum):
    """Whether a brief has a structured interpretation."""

    DRAFT = "draft"
    PARSED = "parsed"


class ServiceCategory(StrEnum):
    """Cost ledger service categories."""

    SCRIPT = "script"
    AVATAR = "avatar"
    COMPOSITION = "composition"
    STORAGE = "storage"


class UnitType(StrEnum):
    """Units a provider bills in."""

    TOKENS = "tokens"
    SECONDS = "seconds"
    BYTES = "bytes"
    REQUESTS = "requests"
