"""Adapters for external services."""

from ugc_engine.adapters.avatar.base import AvatarProvider
from ugc_engine.adapters.broll.base import BRollProvider
from ugc_engine.adapters.composition.base import CompositionProvider
from ugc_engine.adapters.gateway import ProviderGateway
from ugc_engine.adapters.script.base import ScriptProvider
from ugc_engine.adapters.storage.base import StorageProvider

__all__ = [
    "AvatarProvider",
    "BRollProvider",
    "CompositionProvider",
    "ProviderGateway",
    "ScriptProvider",
    "StorageProvider",
]
