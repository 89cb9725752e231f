"""Base interface for avatar video providers."""

from abc import ABC, abstractmethod

from ugc_engine.domain.models import AvatarClip, Script


class AvatarProvider(ABC):
    """Abstract base class for avatar video providers.

    Implementations:
    - StubAvatarProvider: Returns placeholder media for testing
    - VeoAvatarProvider: Google Veo via the google-genai SDK
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def generate_avatar(self, script: Script) -> AvatarClip:
        """Render a talking-head clip delivering the script.

        Args:
            script: Script whose testimonial text the avatar speaks

        Returns:
            AvatarClip with in-memory data and/or a media URL

        Raises:
            AvatarError: On any provider failure
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available and healthy."""
        return True
