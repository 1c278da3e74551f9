import asyncio
import logging
import re
import secrets
import string
import time
from dataclasses import dataclass
from functools import lru_cache

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from tripalbum.config import Settings, get_settings
from tripalbum.utils.urls import photo_public_url

logger = logging.getLogger(__name__)

KEY_ALPHABET = string.ascii_lowercase + string.digits
UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class StorageNotConfiguredError(Exception):
    pass


class StorageError(Exception):
    pass


@dataclass
class PresignedUpload:
    upload_url: str
    key: str
    public_url: str


def sanitize_filename(filename: str) -> str:
    return UNSAFE_FILENAME_CHARS.sub("_", filename)


def build_object_key(user_id: str, filename: str) -> str:
    """Key layout: ``{user_id}/{epoch_ms}-{random6}-{sanitized filename}``."""
    timestamp = int(time.time() * 1000)
    random_id = "".join(secrets.choice(KEY_ALPHABET) for _ in range(6))
    return f"{user_id}/{timestamp}-{random_id}-{sanitize_filename(filename)}"


class StorageService:
    """Photo storage on Cloudflare R2 through its S3-compatible API."""

    def __init__(self, settings: Settings, client: BaseClient | None = None):
        if not settings.storage_configured:
            raise StorageNotConfiguredError("Photo storage is not configured")

        self.settings = settings
        self.bucket = settings.r2_bucket_name
        self.expires_in = settings.upload_url_expiry
        self._client = client or boto3.client(
            "s3",
            endpoint_url=f"https://{settings.r2_account_id}.r2.cloudflarestorage.com",
            aws_access_key_id=settings.r2_access_key_id,
            aws_secret_access_key=settings.r2_secret_access_key,
            region_name="auto",
            config=Config(signature_version="s3v4"),
        )

    def get_public_url(self, key: str) -> str:
        return photo_public_url(key, self.settings)

    def generate_presigned_upload(
        self, user_id: str, filename: str, content_type: str
    ) -> PresignedUpload:
        """
        Sign a PUT URL the browser uploads the photo to directly.

        Args:
            user_id: Owner of the upload, used as the key prefix
            filename: Original filename from the client
            content_type: MIME type the upload must be sent with

        Returns:
            PresignedUpload with the signed URL, object key and public URL
        """
        key = build_object_key(user_id, filename)
        try:
            upload_url = self._client.generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to sign upload for {key}: {e}")
            raise StorageError("Failed to generate upload URL") from e

        return PresignedUpload(
            upload_url=upload_url,
            key=key,
            public_url=self.get_public_url(key),
        )

    async def delete_object(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to delete {key} from storage: {e}")
            raise StorageError(f"Failed to delete {key}") from e

    async def delete_objects(self, keys: list[str]) -> None:
        """Best-effort removal of several objects; failures are logged."""
        for key in keys:
            try:
                await self.delete_object(key)
            except StorageError:
                continue


@lru_cache
def get_storage_service() -> StorageService:
    return StorageService(get_settings())


def get_optional_storage_service() -> StorageService | None:
    """Storage for best-effort cleanup paths, or None when it is not configured."""
    try:
        return get_storage_service()
    except StorageNotConfiguredError:
        return None
