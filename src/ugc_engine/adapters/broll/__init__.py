"""Supporting clip adapters."""

from ugc_engine.adapters.broll.base import BRollProvider
from ugc_engine.adapters.broll.stub import StubBRollProvider, fallback_clips

__all__ = [
    "BRollProvider",
    "StubBRollProvider",
    "fallback_clips",
]
