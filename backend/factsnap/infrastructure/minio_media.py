"""MinIO Media Store — object storage for question/response images.

Invariants:
    - Keys are derived from stored URLs by object_key_from_url()
    - Blocking minio SDK calls run in a worker thread (asyncio.to_thread)
    - SDK failures -> ExternalServiceError("minio", ...)
"""

import asyncio
import io
import logging
import uuid
from urllib.parse import urlparse

from minio import Minio
from minio.error import S3Error

from factsnap.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


def _normalize_base(base_url: str) -> str:
    if base_url and not base_url.startswith(("http://", "https://")):
        base_url = "https://" + base_url
    return base_url.rstrip("/")


def object_key_from_url(url: str, base_url: str = "", bucket: str = "") -> str:
    """Object key for a media URL served from the CDN base or the store itself.

    CDN URLs (same host as base_url) map to their path. Path-style store URLs
    (``http://host/<bucket>/<key>``) drop the bucket segment. Anything that is
    not a URL is treated as a bare key.
    """
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url.lstrip("/")

    path = parsed.path.lstrip("/")
    base = urlparse(_normalize_base(base_url)) if base_url else None
    if base is not None and base.netloc and parsed.netloc == base.netloc:
        prefix = base.path.strip("/")
        if prefix and path.startswith(prefix + "/"):
            path = path[len(prefix) + 1:]
        return path

    if bucket and path.startswith(bucket + "/"):
        return path[len(bucket) + 1:]
    parts = path.split("/", 1)
    if len(parts) != 2 or not parts[1]:
        raise ValueError(f"cannot extract object key from {url}")
    return parts[1]


class MinioMediaStore:
    """Satisfies core.repository_protocols.MediaStore."""

    def __init__(self, client: Minio, bucket: str, base_url: str = ""):
        self.client = client
        self.bucket = bucket
        self.base_url = _normalize_base(base_url)

    def url_for(self, key: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{key}"
        return f"/{self.bucket}/{key}"

    async def upload(
        self, filename: str, content: bytes, content_type: str | None = None,
    ) -> str:
        """Store content under a fresh unique key and return its URL."""
        key = f"{uuid.uuid4()}_{filename}"
        try:
            await asyncio.to_thread(
                self.client.put_object,
                bucket_name=self.bucket,
                object_name=key,
                data=io.BytesIO(content),
                length=len(content),
                content_type=content_type or "application/octet-stream",
            )
        except S3Error as e:
            raise ExternalServiceError("minio", f"upload failed: {e}") from e
        return self.url_for(key)

    async def get(self, key_or_url: str) -> bytes:
        key = object_key_from_url(key_or_url, self.base_url, self.bucket)
        try:
            return await asyncio.to_thread(self._read, key)
        except S3Error as e:
            raise ExternalServiceError("minio", f"get failed: {e}") from e

    def _read(self, key: str) -> bytes:
        response = self.client.get_object(self.bucket, key)
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    async def delete(self, key_or_url: str) -> None:
        try:
            key = object_key_from_url(key_or_url, self.base_url, self.bucket)
        except ValueError as e:
            raise ExternalServiceError("minio", str(e)) from e
        try:
            await asyncio.to_thread(self.client.remove_object, self.bucket, key)
        except S3Error as e:
            raise ExternalServiceError("minio", f"delete failed: {e}") from e
        logger.info(f"Media object deleted: {key}")
