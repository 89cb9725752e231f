"""Stub avatar provider for testing."""

import asyncio

from ugc_engine.adapters.avatar.base import AvatarProvider
from ugc_engine.domain.models import AvatarClip, Script
from ugc_engine.errors import AvatarError, ErrorKind
from ugc_engine.logging import get_logger

logger = get_logger(__name__)


class StubAvatarProvider(AvatarProvider):
    """Stub provider that simulates avatar generation without external calls."""

    def __init__(self, duration_seconds: float = 30.0, delay: float = 0.0) -> None:
        self.duration_seconds = duration_seconds
        self.delay = delay

    @property
    def name(self) -> str:
        return "stub"

    async def generate_avatar(self, script: Script) -> AvatarClip:
        if not script.testimonial_script.strip():
            raise AvatarError(self.name, "Script has no testimonial text", ErrorKind.MALFORMED_INPUT)

        logger.info("stub_avatar_generation_started", script_id=script.id)
        if self.delay:
            await asyncio.sleep(self.delay)

        return AvatarClip(
            duration_seconds=self.duration_seconds,
            provider=self.name,
            data=b"STUB_AVATAR_DATA_" + script.id.encode(),
            avatar_id="stub-avatar-001",
            character_count=len(script.testimonial_script),
        )
