"""
Blob Store Interface

Cloud-agnostic abstraction for object/file storage.
Implementations: S3BlobStore (AWS), InMemoryBlobStore (local).

Used for uploaded files and per-user profile documents.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from service.errors.models import NotFoundError

DEFAULT_CONTENT_TYPE = "binary/octet-stream"
DEFAULT_MAX_KEYS = 1000


@dataclass
class BlobObject:
    """A stored object, body included."""
    key: str
    body: bytes
    content_type: str = DEFAULT_CONTENT_TYPE
    last_modified: Optional[datetime] = None
    content_length: int = 0

    def text(self) -> str:
        return self.body.decode("utf-8")


@dataclass
class BlobSummary:
    """One entry in a listing."""
    key: str
    last_modified: Optional[datetime] = None
    size: int = 0
    storage_class: str = "STANDARD"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "lastModified": self.last_modified.isoformat() if self.last_modified else None,
            "size": self.size,
            "storageClass": self.storage_class,
        }


@dataclass
class PutBlobResult:
    etag: str
    status_code: int = 200
    request_id: str = ""


@dataclass
class ListBlobsResult:
    contents: list[BlobSummary] = field(default_factory=list)
    key_count: int = 0      # Total matches, before max_keys truncation
    status_code: int = 200
    request_id: str = ""


@dataclass
class DeleteBlobResult:
    status_code: int = 204
    request_id: str = ""


class BlobStore(ABC):
    """
    Abstract base class for blob/object storage.

    `get` treats absence as exceptional; `list` does not. A listing is a
    query over a namespace, a get targets one resource.
    """

    @abstractmethod
    async def put(
        self,
        bucket: str,
        key: str,
        body: Union[bytes, str],
        content_type: Optional[str] = None,
    ) -> PutBlobResult:
        """
        Store an object, creating the bucket if needed.

        Args:
            bucket: Bucket name
            key: Object key (e.g., "profiles/user-1.json")
            body: Raw bytes, or text (stored UTF-8 encoded)
            content_type: Defaults to binary/octet-stream
        """
        ...

    @abstractmethod
    async def get(self, bucket: str, key: str) -> BlobObject:
        """
        Retrieve an object.

        Raises:
            BlobNotFound: If the bucket or the key doesn't exist
        """
        ...

    @abstractmethod
    async def list(
        self,
        bucket: str,
        prefix: str = "",
        max_keys: int = DEFAULT_MAX_KEYS,
    ) -> ListBlobsResult:
        """
        List keys starting with `prefix` (empty matches all).

        A missing bucket yields an empty result.
        """
        ...

    @abstractmethod
    async def delete(self, bucket: str, key: str) -> DeleteBlobResult:
        """Delete an object. Idempotent."""
        ...


class BlobNotFound(NotFoundError):
    """Raised when a requested blob or its bucket doesn't exist."""

    NO_SUCH_BUCKET = "NoSuchBucket"
    NO_SUCH_KEY = "NoSuchKey"

    def __init__(self, kind: str, bucket: str, key: str):
        self.kind = kind
        self.bucket = bucket
        self.key = key
        if kind == self.NO_SUCH_BUCKET:
            message = f"NoSuchBucket: The specified bucket does not exist: {bucket}"
        else:
            message = f"NoSuchKey: The specified key does not exist: {key}"
        super().__init__(message, {"kind": kind})


def to_bytes(body: Union[bytes, str, None]) -> bytes:
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)
