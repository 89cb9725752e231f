"""Cloudflare R2 storage provider.

R2 speaks the S3 API, so uploads go through boto3 with a custom endpoint.
boto3 is synchronous; calls run in the default thread pool.
"""

import asyncio
from typing import Any

from ugc_engine.adapters.storage.base import StorageProvider
from ugc_engine.config import settings
from ugc_engine.errors import UploadError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

CACHE_CONTROL = "public, max-age=31536000"


class R2StorageProvider(StorageProvider):
    """Uploads finished videos to an R2 bucket."""

    def __init__(
        self,
        account_id: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        bucket_name: str | None = None,
        public_base_url: str | None = None,
        client: Any = None,
    ) -> None:
        self.account_id = account_id or settings.r2_account_id
        self.access_key_id = access_key_id or settings.r2_access_key_id
        self.secret_access_key = secret_access_key or settings.r2_secret_access_key
        self.bucket_name = bucket_name or settings.r2_bucket_name
        base = public_base_url or settings.r2_public_url
        if not base:
            base = f"https://{self.bucket_name}.{self.account_id}.r2.dev"
        self.public_base_url = base.rstrip("/")
        self._client = client

        if not self.is_configured:
            logger.warning("R2 storage not fully configured")

    @property
    def name(self) -> str:
        return "r2"

    @property
    def is_configured(self) -> bool:
        return all([self.account_id, self.access_key_id, self.secret_access_key, self.bucket_name])

    @property
    def endpoint_url(self) -> str:
        return f"https://{self.account_id}.r2.cloudflarestorage.com"

    def _get_client(self) -> Any:
        if self._client is None:
            import boto3
            from botocore.config import Config

            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
                region_name="auto",
                config=Config(signature_version="s3v4"),
            )
        return self._client

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    async def upload(self, data: bytes, key: str, content_type: str = "video/mp4") -> str:
        if not self.is_configured and self._client is None:
            raise UploadError("R2 storage is not configured", key=key)

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: self._put_sync(data, key, content_type))

        url = self.public_url(key)
        logger.info("r2_upload_completed", key=key, size_bytes=len(data))
        return url

    def _put_sync(self, data: bytes, key: str, content_type: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._get_client().put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=CACHE_CONTROL,
            )
        except (BotoCoreError, ClientError) as e:
            raise UploadError(f"R2 upload failed: {e}", key=key) from e

    async def delete(self, key: str) -> None:
        if not self.is_configured and self._client is None:
            raise UploadError("R2 storage is not configured", key=key)

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: self._delete_sync(key))
        logger.info("r2_delete_completed", key=key)

    def _delete_sync(self, key: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._get_client().delete_object(Bucket=self.bucket_name, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise UploadError(f"R2 delete failed: {e}", key=key) from e

    async def health_check(self) -> bool:
        if not self.is_configured:
            return False

        from botocore.exceptions import BotoCoreError, ClientError

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None, lambda: self._get_client().head_bucket(Bucket=self.bucket_name)
            )
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error("r2_health_check_failed", error=str(e))
            return False
