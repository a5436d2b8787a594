"""
Shared fixtures: fresh simulators, a collecting observer and a router wired
to them. Nothing here touches AWS.
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from adapters.local.memory_blob_store import InMemoryBlobStore
from adapters.local.memory_kv_store import InMemoryKeyValueStore
from service.config import Settings
from service.interfaces.observer import Observer
from service.models.api import ApiRequest
from service.router.router import Router


class CollectingObserver(Observer):
    """Keeps every event so tests can assert on metrics."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def on_event(self, kind: str, fields: dict) -> None:
        self.events.append((kind, fields))

    def metrics(self, name: str) -> list[dict]:
        return [f for kind, f in self.events if kind == "metric" and f["name"] == name]


def make_request(method: str, path: str, body=None, query=None, path_parameters=None) -> ApiRequest:
    if body is not None and not isinstance(body, str):
        body = json.dumps(body)
    return ApiRequest(
        method=method,
        path=path,
        path_parameters=path_parameters or {},
        query_parameters=query or {},
        headers={"User-Agent": "pytest"},
        body=body,
    )


# --- Fixtures ---


@pytest.fixture
def settings():
    return Settings(table_name="test-table", bucket_name="test-bucket")


@pytest.fixture
def kv():
    """Fresh, empty key-value simulator."""
    return InMemoryKeyValueStore()


@pytest.fixture
def blobs():
    """Fresh, empty blob simulator."""
    return InMemoryBlobStore()


@pytest.fixture
def observer():
    return CollectingObserver()


@pytest.fixture
def router(kv, blobs, observer, settings):
    return Router(kv, blobs, observer, settings, environment="local-mock")
