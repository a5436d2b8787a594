from adapters.local.log_observer import LogObserver
from adapters.local.memory_blob_store import InMemoryBlobStore
from adapters.local.memory_kv_store import InMemoryKeyValueStore

__all__ = [
    "LogObserver",
    "InMemoryBlobStore",
    "InMemoryKeyValueStore",
]
