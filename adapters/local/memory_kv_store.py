"""
Local Key-Value Store: in-memory dict.

For local development and tests. No DynamoDB dependency.
State lives for the life of the process and is never persisted.
"""

import logging
import threading
import time
from typing import Iterable, Optional

from service.interfaces.kv_store import (
    DEFAULT_SCAN_LIMIT,
    ItemResult,
    KeyValueStore,
    ScanResult,
    require_id,
)
from service.models.user import utc_now_iso

logger = logging.getLogger("lambda_service.simulator.kv")


def _request_id() -> str:
    return f"mock-{int(time.time() * 1000)}"


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed stand-in for the users table.

    The table name is only used in log lines; all tables share one map.
    A lock guards the map, concurrent writers to the same id are
    last-write-wins.
    """

    def __init__(self, seed_items: Optional[Iterable[dict]] = None):
        self._items: dict[str, dict] = {}
        self._lock = threading.Lock()
        for item in seed_items or []:
            self._items[require_id(item, "item")] = dict(item)

    async def put(self, table: str, item: dict) -> ItemResult:
        item_id = require_id(item, "item")
        logger.info(f"Simulated put on '{table}': {item_id}")
        with self._lock:
            self._items[item_id] = dict(item)
        return ItemResult(item=dict(item), request_id=_request_id())

    async def get(self, table: str, key: dict) -> ItemResult:
        item_id = require_id(key)
        logger.debug(f"Simulated get on '{table}': {item_id}")
        with self._lock:
            item = self._items.get(item_id)
        return ItemResult(item=dict(item) if item else None, request_id=_request_id())

    async def scan(self, table: str, limit: Optional[int] = None) -> ScanResult:
        logger.debug(f"Simulated scan on '{table}' (limit={limit})")
        with self._lock:
            items = [dict(item) for item in self._items.values()]
        total = len(items)
        return ScanResult(
            items=items[:DEFAULT_SCAN_LIMIT if limit is None else limit],
            count=total,
            scanned_count=total,
            request_id=_request_id(),
        )

    async def update(self, table: str, key: dict, mutation: dict) -> ItemResult:
        item_id = require_id(key)
        logger.info(f"Simulated update on '{table}': {item_id} {sorted(mutation)}")
        with self._lock:
            existing = self._items.get(item_id) or {"id": item_id}
            merged = {**existing, **{k: v for k, v in mutation.items() if k != "id"}}
            merged["updatedAt"] = utc_now_iso(after=existing.get("updatedAt"))
            self._items[item_id] = merged
        return ItemResult(item=dict(merged), request_id=_request_id())

    async def delete(self, table: str, key: dict) -> ItemResult:
        item_id = require_id(key)
        logger.info(f"Simulated delete on '{table}': {item_id}")
        with self._lock:
            self._items.pop(item_id, None)
        return ItemResult(request_id=_request_id())


def sample_users() -> list[dict]:
    """Seed records for the dev server."""
    return [
        {
            "id": "1",
            "name": "John Doe",
            "email": "john@example.com",
            "createdAt": "2024-01-15T10:30:00.000000+00:00",
            "updatedAt": "2024-01-15T10:30:00.000000+00:00",
        },
        {
            "id": "2",
            "name": "Jane Smith",
            "email": "jane@example.com",
            "createdAt": "2024-01-16T14:20:00.000000+00:00",
            "updatedAt": "2024-01-16T14:20:00.000000+00:00",
        },
    ]
