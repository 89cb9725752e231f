"""Base interface for supporting (B-roll) clip providers."""

from abc import ABC, abstractmethod

from ugc_engine.domain.models import BRollClip


class BRollProvider(ABC):
    """Abstract base class for B-roll clip lookup."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def fetch_clips(self, tags: list[str]) -> list[BRollClip]:
        """Return supporting clips matching the brief's B-roll tags.

        Lookups are unbilled: the stage writes no cost ledger entry.

        Raises:
            BRollError: On lookup failure
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available and healthy."""
        return True
