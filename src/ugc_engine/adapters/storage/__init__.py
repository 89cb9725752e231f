"""Finished-video storage adapters."""

from ugc_engine.adapters.storage.base import StorageProvider, object_key
from ugc_engine.adapters.storage.local import LocalStorageProvider
from ugc_engine.adapters.storage.r2 import R2StorageProvider

__all__ = [
    "LocalStorageProvider",
    "R2StorageProvider",
    "StorageProvider",
    "object_key",
]
