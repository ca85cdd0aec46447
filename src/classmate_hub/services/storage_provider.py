"""
Image Host Interface and Implementations
Abstraction for storing uploaded images (local filesystem, S3)
"""
import logging
import mimetypes
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import ImageHostError

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


@dataclass
class UploadResult:
    url: str
    public_id: str
    thumbnail_url: Optional[str] = None


def _clean_segment(value: str) -> str:
    """Strip path traversal and separators from one key segment"""
    return value.replace("..", "").replace("\\", "/").strip("/")


class ImageHost(ABC):
    """Abstract base class for image hosts"""

    @abstractmethod
    def upload(self, data: bytes, content_type: str, folder: str,
               public_id: Optional[str] = None, overwrite: bool = False) -> UploadResult:
        """
        Store an image

        Args:
            data: Image bytes
            content_type: MIME type
            folder: Logical folder (e.g. 'avatars', 'gallery')
            public_id: Fixed name inside the folder; generated when omitted
            overwrite: Replace an existing image with the same name

        Returns:
            UploadResult with the public URL and host identifier

        Raises:
            ImageHostError: the host rejected or failed the upload
        """
        pass

    @abstractmethod
    def delete(self, public_id: str) -> bool:
        """
        Delete an image by host identifier

        Returns:
            True if deleted, False if it did not exist

        Raises:
            ImageHostError: the host failed the delete
        """
        pass


class LocalDiskImageHost(ImageHost):
    """Local filesystem image host (default for dev), served under /media"""

    def __init__(self, base_path: str = "./storage", base_url: str = "http://localhost:8000"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")
        logger.info(f"LocalDiskImageHost initialized at {self.base_path}")

    def _path(self, public_id: str) -> Path:
        return self.base_path / _clean_segment(public_id)

    def upload(self, data: bytes, content_type: str, folder: str,
               public_id: Optional[str] = None, overwrite: bool = False) -> UploadResult:
        stem = _clean_segment(public_id) if public_id else uuid.uuid4().hex
        extension = EXTENSIONS.get(content_type) or mimetypes.guess_extension(content_type) or ""
        key = f"{_clean_segment(folder)}/{stem}{extension}"
        file_path = self._path(key)

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            if overwrite:
                # Same name with another extension would otherwise linger
                for stale in file_path.parent.glob(f"{stem}.*"):
                    stale.unlink()
            elif file_path.exists():
                raise ImageHostError(f"Image {key} already exists")
            file_path.write_bytes(data)
        except OSError as e:
            logger.error(f"Error writing image {key}: {e}")
            raise ImageHostError() from e

        url = f"{self.base_url}/media/{key}"
        if overwrite:
            url = f"{url}?v={int(time.time())}"
        logger.debug(f"Stored {len(data)} bytes as {key}")
        return UploadResult(url=url, public_id=key)

    def delete(self, public_id: str) -> bool:
        file_path = self._path(public_id)
        if not file_path.exists():
            return False
        try:
            file_path.unlink()
        except OSError as e:
            logger.error(f"Error deleting image {public_id}: {e}")
            raise ImageHostError() from e
        logger.debug(f"Deleted {public_id}")
        return True


class S3ImageHost(ImageHost):
    """S3-compatible image host (for production)"""

    def __init__(
        self,
        bucket_name: str,
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
        public_base_url: Optional[str] = None,
        client=None,
    ):
        """
        Args:
            bucket_name: S3 bucket name
            endpoint_url: Custom S3 endpoint (for S3-compatible services)
            region: AWS region
            public_base_url: Base URL objects are served from (CDN or bucket website)
            client: Preconfigured boto3 S3 client
        """
        self.bucket_name = bucket_name
        self.region = region
        # Credentials come from the standard AWS_* environment variables
        self.s3_client = client or boto3.client("s3", endpoint_url=endpoint_url, region_name=region)
        self.public_base_url = (
            public_base_url or f"https://{bucket_name}.s3.{region}.amazonaws.com"
        ).rstrip("/")

    def upload(self, data: bytes, content_type: str, folder: str,
               public_id: Optional[str] = None, overwrite: bool = False) -> UploadResult:
        key = f"{_clean_segment(folder)}/{_clean_segment(public_id) if public_id else uuid.uuid4().hex}"
        try:
            if not overwrite:
                self._ensure_absent(key)
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="public, max-age=31536000" if not overwrite else "no-cache",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 upload failed for {key}: {type(e).__name__}")
            raise ImageHostError() from e

        url = f"{self.public_base_url}/{key}"
        if overwrite:
            url = f"{url}?v={int(time.time())}"
        return UploadResult(url=url, public_id=key)

    def _ensure_absent(self, key: str) -> None:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return
            raise
        raise ImageHostError(f"Image {key} already exists")

    def delete(self, public_id: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=public_id)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 delete failed for {public_id}: {type(e).__name__}")
            raise ImageHostError() from e
        return True


def get_image_host(settings) -> ImageHost:
    """
    Factory function to get the configured image host

    Args:
        settings: Config instance ('local' or 's3' in STORAGE_PROVIDER)
    """
    provider_name = settings.STORAGE_PROVIDER.lower()

    if provider_name == "local":
        return LocalDiskImageHost(base_path=settings.STORAGE_PATH, base_url=settings.API_BASE_URL)
    elif provider_name == "s3":
        if not settings.S3_BUCKET_NAME:
            raise ValueError("S3_BUCKET_NAME environment variable required for S3 storage")
        return S3ImageHost(
            bucket_name=settings.S3_BUCKET_NAME,
            endpoint_url=settings.S3_ENDPOINT_URL,
            region=settings.AWS_REGION,
            public_base_url=settings.S3_PUBLIC_BASE_URL,
        )
    else:
        raise ValueError(f"Unknown storage provider: {provider_name}")
