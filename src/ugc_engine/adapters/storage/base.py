"""Base interface for finished-video storage."""

from abc import ABC, abstractmethod
from uuid import UUID


def object_key(batch_id: UUID, item_id: UUID, extension: str = "mp4") -> str:
    """Storage key for an item's final video."""
    return f"generations/{batch_id}/{item_id}.{extension}"


class StorageProvider(ABC):
    """Abstract base class for storage providers.

    Implementations:
    - LocalStorageProvider: Writes under a local directory
    - R2StorageProvider: Cloudflare R2 through the S3 API
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def upload(self, data: bytes, key: str, content_type: str = "video/mp4") -> str:
        """Store `data` under `key` and return its public URL.

        Raises:
            UploadError: If the object could not be stored
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the object stored under `key`. Missing objects are not an error.

        Raises:
            UploadError: If the storage backend refused the removal
        """
        ...

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Public URL for a stored key."""
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available and healthy."""
        return True
