"""
Rendered image cache on S3-compatible object storage.

Images are stored under ``{root}{yyyyMMddHHmmssSSS}.png`` so keys sort in
upload order. Retrieval happens through presigned URLs created with a
separate URL-signing identity.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Sequence, TypeVar

import aioboto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from grafana_unfurl.core.errors import ErrorKind, StorageError
from grafana_unfurl.metrics import STORAGE_FAILURES

logger = structlog.get_logger()

T = TypeVar("T")

# SigV4 presigned URLs are valid for at most 7 days
MAX_PRESIGN_SECONDS = 7 * 86400
PNG_CONTENT_TYPE = "image/png"
# DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_key_timestamp(moment: datetime) -> str:
    """Fixed-width, lexicographically sortable millisecond timestamp."""
    return moment.strftime("%Y%m%d%H%M%S") + f"{moment.microsecond // 1000:03d}"


@dataclass(frozen=True, slots=True)
class StoredObject:
    key: str | None
    last_modified: datetime | None


class ImageCache:
    """Uploads images, signs retrieval URLs and lists/deletes cached objects."""

    def __init__(
        self,
        bucket: str,
        *,
        root: str = "",
        retention_seconds: int,
        endpoint_url: str | None = None,
        region: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        signing_access_key_id: str | None = None,
        signing_secret_access_key: str | None = None,
        timeout: float = 30.0,
        session: Any | None = None,
        signing_session: Any | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.bucket = bucket
        self.root = root
        self.retention_seconds = retention_seconds
        self._endpoint_url = endpoint_url
        self._region = region
        self._timeout = timeout
        self._clock = clock
        self._last_stamp: datetime | None = None

        self._session = session or aioboto3.Session(
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
        )
        self._signing_session = signing_session or aioboto3.Session(
            aws_access_key_id=signing_access_key_id or access_key_id,
            aws_secret_access_key=signing_secret_access_key or secret_access_key,
            region_name=region,
        )

        self._presign_seconds = retention_seconds
        if retention_seconds > MAX_PRESIGN_SECONDS:
            logger.warning(
                "presign_expiry_capped",
                retention_seconds=retention_seconds,
                max_seconds=MAX_PRESIGN_SECONDS,
            )
            self._presign_seconds = MAX_PRESIGN_SECONDS

    def _client(self, session: Any) -> Any:
        return session.client("s3", endpoint_url=self._endpoint_url, region_name=self._region)

    async def _bounded(self, operation: str, awaitable: Awaitable[T], **context: Any) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            STORAGE_FAILURES.labels(operation=operation, kind=ErrorKind.TIMEOUT.value).inc()
            raise StorageError(
                f"S3 {operation} timed out after {self._timeout}s",
                context,
                kind=ErrorKind.TIMEOUT,
            ) from exc
        except (BotoCoreError, ClientError) as exc:
            STORAGE_FAILURES.labels(operation=operation, kind=ErrorKind.UPSTREAM.value).inc()
            raise StorageError(f"S3 {operation} failed: {exc}", context) from exc

    def next_key(self) -> tuple[str, datetime]:
        """Generate the next storage key; keys never repeat within a process."""
        now = self._clock()
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(milliseconds=1)
        self._last_stamp = now
        return f"{self.root}{format_key_timestamp(now)}.png", now

    async def put(self, body: bytes, content_type: str = PNG_CONTENT_TYPE) -> str:
        """Upload an image and return its storage key."""
        key, now = self.next_key()

        async def _upload() -> None:
            async with self._client(self._session) as client:
                await client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=body,
                    ContentType=content_type,
                    Expires=now + timedelta(seconds=self.retention_seconds),
                )

        await self._bounded("upload", _upload(), key=key)
        logger.debug("image_uploaded", bucket=self.bucket, key=key, size=len(body))
        return key

    async def signed_url(self, key: str) -> str:
        """Create a time-limited GET URL for ``key`` using the signing identity."""

        async def _sign() -> str:
            async with self._client(self._signing_session) as client:
                return await client.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self.bucket, "Key": key},
                    ExpiresIn=self._presign_seconds,
                )

        return await self._bounded("presign", _sign(), key=key)

    async def list_objects(self, prefix: str | None = None) -> list[StoredObject]:
        """List every object under ``prefix`` (defaults to the cache root)."""
        prefix = self.root if prefix is None else prefix

        async def _list() -> list[StoredObject]:
            objects: list[StoredObject] = []
            async with self._client(self._session) as client:
                paginator = client.get_paginator("list_objects_v2")
                async for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                    for item in page.get("Contents", []):
                        objects.append(
                            StoredObject(key=item.get("Key"), last_modified=item.get("LastModified"))
                        )
            return objects

        return await self._bounded("list", _list(), prefix=prefix)

    async def delete_many(self, keys: Sequence[str]) -> dict[str, str]:
        """
        Delete ``keys`` in batches over a single client.

        Every batch is attempted. Returns the keys that could not be deleted,
        mapped to the reason reported for each.
        """
        failed: dict[str, str] = {}
        if not keys:
            return failed

        async with self._client(self._session) as client:
            for start in range(0, len(keys), DELETE_BATCH_SIZE):
                batch = list(keys[start : start + DELETE_BATCH_SIZE])
                try:
                    response = await self._bounded(
                        "delete",
                        client.delete_objects(
                            Bucket=self.bucket,
                            Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                        ),
                        first_key=batch[0],
                        count=len(batch),
                    )
                except StorageError as exc:
                    failed.update((key, exc.message) for key in batch)
                    continue
                for error in response.get("Errors", []):
                    failed[error.get("Key", "")] = error.get("Message") or error.get("Code", "unknown")

        logger.debug("images_deleted", requested=len(keys), failed=len(failed))
        return failed
