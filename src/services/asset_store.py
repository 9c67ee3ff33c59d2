"""Object storage for product images.

This module provides:
- The AssetStore interface the catalog depends on
- An S3 implementation backed by boto3
- Helpers for deriving object keys for uploads and from public URLs
"""

import asyncio
import logging
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Any, Protocol
from urllib.parse import quote, unquote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from src.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class AssetStoreError(Exception):
    """Base exception for object storage errors."""


class AssetUploadError(AssetStoreError):
    """Raised when an object could not be stored."""


class AssetDeleteError(AssetStoreError):
    """Raised when an object could not be removed."""


@dataclass(frozen=True)
class StoredObject:
    """An object listed from the store."""

    key: str
    last_modified: datetime


class AssetStore(Protocol):
    """Interface for the object store holding product images."""

    async def put(
        self, key: str, data: bytes, content_type: str, public: bool = True
    ) -> str:
        """Store an object and return its public URL."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete an object. Returns False if it did not exist."""
        ...

    async def list_objects(self, prefix: str) -> list[StoredObject]:
        """List objects whose key starts with prefix."""
        ...

    def key_from_url(self, url: str) -> str:
        """Recover the object key from a URL returned by put()."""
        ...


def sanitize_filename(filename: str | None) -> str:
    """Reduce an uploaded filename to characters safe in an object key."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_KEY_CHARS.sub("-", name).strip("-.")
    return name or "image"


def build_asset_key(filename: str | None, prefix: str | None = None) -> str:
    """Derive a fresh object key for an upload.

    Keys combine a millisecond timestamp with a random suffix so two uploads
    of the same file never share a key.

    Example:
        >>> build_asset_key("Paneer Tikka.jpg")
        'products/1760860800000-3f2a9c1b-Paneer-Tikka.jpg'
    """
    prefix = (prefix if prefix is not None else settings.product_image_prefix).strip("/")
    stamp = int(time.time() * 1000)
    name = f"{stamp}-{uuid.uuid4().hex[:8]}-{sanitize_filename(filename)}"
    return f"{prefix}/{name}" if prefix else name


class S3AssetStore:
    """Amazon S3 (or S3-compatible) implementation of AssetStore.

    boto3 is synchronous, so every call runs in a worker thread to keep the
    event loop free.

    Usage:
        store = S3AssetStore(bucket="my-bucket", region="ap-south-1")
        url = await store.put("products/1-a-tea.png", data, "image/png")
        await store.delete(store.key_from_url(url))
    """

    def __init__(
        self,
        bucket: str | None = None,
        region: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        endpoint_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        """Initialize the S3 asset store.

        Args:
            bucket: Bucket name. Defaults to settings.aws_s3_bucket_name.
            region: AWS region. Defaults to settings.aws_region.
            access_key_id: AWS access key. Defaults to settings.
            secret_access_key: AWS secret key. Defaults to settings.
            endpoint_url: Custom endpoint for S3-compatible stores.
                Defaults to settings.aws_s3_endpoint_url.
            client: Pre-built boto3 S3 client (mainly for tests).
        """
        self.bucket = bucket or settings.aws_s3_bucket_name
        self.region = region or settings.aws_region
        self.access_key_id = access_key_id or settings.aws_access_key_id
        self.secret_access_key = secret_access_key or settings.aws_secret_access_key
        self.endpoint_url = (endpoint_url or settings.aws_s3_endpoint_url or "").rstrip("/")
        self._client = client

    def _get_client(self) -> Any:
        """Get or create the boto3 S3 client."""
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=self.access_key_id or None,
                aws_secret_access_key=self.secret_access_key or None,
                endpoint_url=self.endpoint_url or None,
            )
        return self._client

    def public_url(self, key: str) -> str:
        """Build the public URL for an object key."""
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self.bucket}/{quote(key)}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quote(key)}"

    def key_from_url(self, url: str) -> str:
        """Recover the object key from a public URL.

        Handles both virtual-hosted URLs (bucket in the hostname) and
        path-style URLs (bucket as the first path segment).
        """
        path = unquote(urlparse(url).path).lstrip("/")
        bucket_prefix = f"{self.bucket}/"
        if path.startswith(bucket_prefix):
            path = path[len(bucket_prefix):]
        return path

    async def put(
        self, key: str, data: bytes, content_type: str, public: bool = True
    ) -> str:
        """Upload an object and return its public URL.

        Raises:
            AssetUploadError: If S3 rejects the upload or cannot be reached.
        """
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
        }
        if public:
            params["ACL"] = "public-read"

        try:
            client = self._get_client()
            await asyncio.to_thread(partial(client.put_object, **params))
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 upload of %s failed: %s", key, e)
            raise AssetUploadError(f"Image upload failed: {e}") from e

        logger.info("Uploaded %s to bucket %s (%d bytes)", key, self.bucket, len(data))
        return self.public_url(key)

    async def delete(self, key: str) -> bool:
        """Delete an object.

        Returns:
            True if the object was deleted, False if it did not exist.

        Raises:
            AssetDeleteError: If S3 rejects the request or cannot be reached.
        """
        try:
            client = self._get_client()
            await asyncio.to_thread(
                partial(client.delete_object, Bucket=self.bucket, Key=key)
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return False
            logger.error("S3 delete of %s failed: %s", key, e)
            raise AssetDeleteError(f"Image delete failed: {e}") from e
        except BotoCoreError as e:
            logger.error("S3 delete of %s failed: %s", key, e)
            raise AssetDeleteError(f"Image delete failed: {e}") from e

        logger.info("Deleted %s from bucket %s", key, self.bucket)
        return True

    async def list_objects(self, prefix: str) -> list[StoredObject]:
        """List all objects under a key prefix.

        Raises:
            AssetStoreError: If the listing fails.
        """

        def _list() -> list[StoredObject]:
            paginator = self._get_client().get_paginator("list_objects_v2")
            objects: list[StoredObject] = []
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    objects.append(
                        StoredObject(key=item["Key"], last_modified=item["LastModified"])
                    )
            return objects

        try:
            return await asyncio.to_thread(_list)
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 listing of %s failed: %s", prefix, e)
            raise AssetStoreError(f"Listing failed: {e}") from e
