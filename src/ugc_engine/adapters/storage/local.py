"""Local filesystem storage provider."""

from pathlib import Path

from ugc_engine.adapters.storage.base import StorageProvider
from ugc_engine.config import settings
from ugc_engine.errors import UploadError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)


class LocalStorageProvider(StorageProvider):
    """Stores objects under a root directory served at a public base URL."""

    def __init__(self, root: str | Path | None = None, base_url: str | None = None) -> None:
        self.root = Path(root or settings.local_storage_path)
        self.base_url = (base_url or settings.storage_public_base_url).rstrip("/")

    @property
    def name(self) -> str:
        return "local"

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise UploadError(f"Key escapes storage root: {key}", key=key)
        return path

    async def upload(self, data: bytes, key: str, content_type: str = "video/mp4") -> str:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise UploadError(f"Failed to write {key}: {e}", key=key) from e

        logger.info("local_upload_completed", key=key, size_bytes=len(data))
        return self.public_url(key)

    async def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise UploadError(f"Failed to delete {key}: {e}", key=key) from e

        logger.info("local_delete_completed", key=key)

    async def health_check(self) -> bool:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.error("local_storage_health_check_failed", error=str(e))
            return False
