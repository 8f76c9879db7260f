"""Image storage helpers (S3/MinIO)."""
from __future__ import annotations

import hashlib
import mimetypes
import os

import aioboto3

from ..config import StorageSettings, get_settings


class ImageStorage:
    """Persist uploaded photos to S3/MinIO using content-hash identifiers."""

    def __init__(self, settings: StorageSettings | None = None, local_root: str = "./.artifacts") -> None:
        self._settings = settings or get_settings().storage
        self._local_root = local_root

    async def put_image(self, payload: bytes, content_type: str | None = None) -> str:
        """Store image bytes and return a content-hash reference."""
        suffix = mimetypes.guess_extension(content_type or "") or ".bin"
        return await self._put_bytes(payload, suffix=suffix, content_type=content_type)

    async def _put_bytes(self, payload: bytes, suffix: str = "", content_type: str | None = None) -> str:
        digest = hashlib.sha256(payload).hexdigest()
        key = f"images/{digest}{suffix}"

        if not self._settings.s3_bucket:
            # Dev mode: write to local file system for traceability
            path = os.path.join(self._local_root, f"{digest}{suffix}")
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as handle:
                handle.write(payload)
            return f"file://{path}"

        session = aioboto3.Session()
        async with session.client(
            "s3",
            endpoint_url=self._settings.s3_endpoint,
            region_name=self._settings.s3_region,
        ) as client:
            extra = {"ContentType": content_type} if content_type else {}
            await client.put_object(Bucket=self._settings.s3_bucket, Key=key, Body=payload, **extra)
        return f"s3://{self._settings.s3_bucket}/{key}"

    async def get_image(self, reference: str) -> bytes:
        """Load bytes previously stored under a ``file://`` or ``s3://`` reference."""
        if reference.startswith("file://"):
            with open(reference[len("file://"):], "rb") as handle:
                return handle.read()
        if not reference.startswith("s3://"):
            raise ValueError(f"Unsupported image reference: {reference}")

        bucket, _, key = reference[len("s3://"):].partition("/")
        session = aioboto3.Session()
        async with session.client(
            "s3",
            endpoint_url=self._settings.s3_endpoint,
            region_name=self._settings.s3_region,
        ) as client:
            response = await client.get_object(Bucket=bucket, Key=key)
            async with response["Body"] as stream:
                return await stream.read()


__all__ = ["ImageStorage"]
