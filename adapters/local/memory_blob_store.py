"""
Local Blob Store: nested in-memory dicts (bucket → key → object).

For local development and tests. No S3 dependency.
Mirrors S3 semantics where they matter to the router: get on a missing
bucket or key raises, list on a missing bucket returns nothing.
"""

import hashlib
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Optional, Union

from service.interfaces.blob_store import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_MAX_KEYS,
    BlobNotFound,
    BlobObject,
    BlobStore,
    BlobSummary,
    DeleteBlobResult,
    ListBlobsResult,
    PutBlobResult,
    to_bytes,
)

logger = logging.getLogger("lambda_service.simulator.blob")


def _request_id() -> str:
    return f"mock-{int(time.time() * 1000)}"


class InMemoryBlobStore(BlobStore):
    """Dict-backed stand-in for object storage. Keys list in insertion order."""

    def __init__(self):
        self._buckets: dict[str, dict[str, BlobObject]] = {}
        self._lock = threading.Lock()

    async def put(
        self,
        bucket: str,
        key: str,
        body: Union[bytes, str],
        content_type: Optional[str] = None,
    ) -> PutBlobResult:
        data = to_bytes(body)
        logger.info(f"Simulated put s3://{bucket}/{key} ({len(data)} bytes)")

        blob = BlobObject(
            key=key,
            body=data,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            last_modified=datetime.now(timezone.utc),
            content_length=len(data),
        )
        with self._lock:
            objects = self._buckets.setdefault(bucket, {})
            # Overwrite keeps the original listing position
            objects[key] = blob

        etag = hashlib.md5(data).hexdigest()
        return PutBlobResult(etag=f'"{etag}"', request_id=_request_id())

    async def get(self, bucket: str, key: str) -> BlobObject:
        logger.debug(f"Simulated get s3://{bucket}/{key}")
        with self._lock:
            objects = self._buckets.get(bucket)
            if objects is None:
                raise BlobNotFound(BlobNotFound.NO_SUCH_BUCKET, bucket, key)
            blob = objects.get(key)
            if blob is None:
                raise BlobNotFound(BlobNotFound.NO_SUCH_KEY, bucket, key)
        return blob

    async def list(
        self,
        bucket: str,
        prefix: str = "",
        max_keys: int = DEFAULT_MAX_KEYS,
    ) -> ListBlobsResult:
        logger.debug(f"Simulated list s3://{bucket}/{prefix}*")
        with self._lock:
            objects = self._buckets.get(bucket)
            if objects is None:
                return ListBlobsResult(request_id=_request_id())
            matches = [
                BlobSummary(key=key, last_modified=blob.last_modified, size=blob.content_length)
                for key, blob in objects.items()
                if key.startswith(prefix or "")
            ]

        return ListBlobsResult(
            contents=matches[:max_keys],
            key_count=len(matches),
            request_id=_request_id(),
        )

    async def delete(self, bucket: str, key: str) -> DeleteBlobResult:
        logger.info(f"Simulated delete s3://{bucket}/{key}")
        with self._lock:
            objects = self._buckets.get(bucket)
            if objects is not None:
                objects.pop(key, None)
        return DeleteBlobResult(request_id=_request_id())


async def seed_sample_files(store: BlobStore, bucket: str) -> None:
    """Seed files for the dev server."""
    await store.put(
        bucket,
        "users/profile-1.json",
        '{"userId": 1, "profilePicture": "https://example.com/pic1.jpg"}',
        "application/json",
    )
    await store.put(bucket, "documents/readme.txt", "Welcome to our application!", "text/plain")
