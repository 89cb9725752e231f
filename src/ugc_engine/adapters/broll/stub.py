"""Stub B-roll provider backed by a fixed clip library."""

import asyncio
from urllib.parse import quote

from ugc_engine.adapters.broll.base import BRollProvider
from ugc_engine.domain.models import BRollClip
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

CLIP_BASE_URL = "https://example.com/broll"

FALLBACK_TAGS = (
    "app-interface",
    "happy-child",
    "bedtime-scene",
    "family-moment",
    "story-illustration",
)


def fallback_clips(count: int) -> list[BRollClip]:
    """Generic clips used when a brief names no B-roll tags."""
    return [
        BRollClip(url=f"{CLIP_BASE_URL}/{tag}.mp4", tag=tag, duration_seconds=4.0)
        for tag in FALLBACK_TAGS[:count]
    ]


class StubBRollProvider(BRollProvider):
    """Returns one deterministic clip per tag, or fallbacks when there are no tags."""

    def __init__(self, fallback_count: int = 2, delay: float = 0.0) -> None:
        self.fallback_count = fallback_count
        self.delay = delay

    @property
    def name(self) -> str:
        return "stub"

    async def fetch_clips(self, tags: list[str]) -> list[BRollClip]:
        if self.delay:
            await asyncio.sleep(self.delay)

        if not tags:
            logger.debug("broll_using_fallbacks", count=self.fallback_count)
            return fallback_clips(self.fallback_count)

        return [
            BRollClip(url=f"{CLIP_BASE_URL}/{quote(tag)}.mp4", tag=tag, duration_seconds=4.0)
            for tag in tags
        ]
