"""Base interface for video composition providers."""

from abc import ABC, abstractmethod

from ugc_engine.domain.models import AvatarClip, BRollClip, ComposedMedia


class CompositionProvider(ABC):
    """Abstract base class for composition providers.

    Implementations:
    - StubCompositionProvider: Returns placeholder media for testing
    - FFmpegCompositionProvider: Local FFmpeg with B-roll cutaways
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def compose(
        self,
        avatar: AvatarClip,
        supporting_clips: list[BRollClip],
    ) -> ComposedMedia:
        """Compose the avatar clip and supporting clips into a 9:16 video.

        Raises:
            CompositionError: On any composition failure
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available and healthy."""
        return True
