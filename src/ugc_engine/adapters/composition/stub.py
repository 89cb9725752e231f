"""Stub composition provider for testing."""

import asyncio

from ugc_engine.adapters.composition.base import CompositionProvider
from ugc_engine.domain.models import AvatarClip, BRollClip, ComposedMedia
from ugc_engine.errors import CompositionError, ErrorKind
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

# Seconds of B-roll the stub pretends to add around the avatar
BROLL_PADDING_SECONDS = 5.0


class StubCompositionProvider(CompositionProvider):
    """Stub provider that simulates composition without external dependencies."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay

    @property
    def name(self) -> str:
        return "stub"

    async def compose(
        self,
        avatar: AvatarClip,
        supporting_clips: list[BRollClip],
    ) -> ComposedMedia:
        if avatar.data is None and avatar.media_url is None:
            raise CompositionError(self.name, "Avatar clip has no media", ErrorKind.MALFORMED_INPUT)

        logger.info(
            "stub_composition_started",
            avatar_id=avatar.id,
            clip_count=len(supporting_clips),
        )
        if self.delay:
            await asyncio.sleep(self.delay)

        return ComposedMedia(
            duration_seconds=avatar.duration_seconds + BROLL_PADDING_SECONDS,
            provider=self.name,
            data=b"STUB_COMPOSED_" + avatar.id.encode(),
        )
