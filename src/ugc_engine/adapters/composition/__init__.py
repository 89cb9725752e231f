"""Video composition adapters."""

from ugc_engine.adapters.composition.base import CompositionProvider
from ugc_engine.adapters.composition.ffmpeg import FFmpegCompositionProvider
from ugc_engine.adapters.composition.stub import StubCompositionProvider

__all__ = [
    "CompositionProvider",
    "FFmpegCompositionProvider",
    "StubCompositionProvider",
]
