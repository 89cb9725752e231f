"""Avatar video adapters."""

from ugc_engine.adapters.avatar.base import AvatarProvider
from ugc_engine.adapters.avatar.stub import StubAvatarProvider
from ugc_engine.adapters.avatar.veo import VeoAvatarProvider

__all__ = [
    "AvatarProvider",
    "StubAvatarProvider",
    "VeoAvatarProvider",
]
