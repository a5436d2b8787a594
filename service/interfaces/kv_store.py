"""
Key-Value Store Interface

Cloud-agnostic abstraction for a table of records keyed by `id`.
Implementations: DynamoDBKeyValueStore (AWS), InMemoryKeyValueStore (local).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_SCAN_LIMIT = 50


@dataclass
class ItemResult:
    """Result of a point operation. `item` is None when nothing was found."""
    item: Optional[dict] = None
    status_code: int = 200
    request_id: str = ""


@dataclass
class ScanResult:
    """Result of a full-table scan."""
    items: list[dict] = field(default_factory=list)
    count: int = 0
    scanned_count: int = 0
    status_code: int = 200
    request_id: str = ""


class KeyValueStore(ABC):
    """
    Abstract base class for the record table.

    Every key is a mapping with an `id` entry. Missing `id` is a caller bug
    and raises InvalidKeyError; nothing else is an error at this layer.
    """

    @abstractmethod
    async def put(self, table: str, item: dict) -> ItemResult:
        """Store or overwrite `item` under `item["id"]`."""
        ...

    @abstractmethod
    async def get(self, table: str, key: dict) -> ItemResult:
        """
        Point read.

        Returns:
            ItemResult with `item=None` when the key is absent (never raises)
        """
        ...

    @abstractmethod
    async def scan(self, table: str, limit: Optional[int] = None) -> ScanResult:
        """Return up to `limit` items (default 50) plus counts."""
        ...

    @abstractmethod
    async def update(self, table: str, key: dict, mutation: dict) -> ItemResult:
        """
        Merge `mutation` into the stored item, creating it if absent.

        `updatedAt` is always refreshed. Returns the merged item.
        """
        ...

    @abstractmethod
    async def delete(self, table: str, key: dict) -> ItemResult:
        """Remove the item. Succeeds whether or not it existed."""
        ...


class InvalidKeyError(ValueError):
    """Raised when a key or item has no `id`."""
    pass


def require_id(key: dict, what: str = "key") -> str:
    """Return key["id"] or raise InvalidKeyError."""
    if not isinstance(key, dict) or key.get("id") in (None, ""):
        raise InvalidKeyError(f"{what} must contain a non-empty 'id'")
    return str(key["id"])
