"""
Interfaces: cloud-agnostic contracts.

The router depends on these interfaces only.
Simulator, emulator and AWS implementations live in adapters/.
"""

from service.interfaces.kv_store import KeyValueStore, ItemResult, ScanResult, InvalidKeyError
from service.interfaces.blob_store import (
    BlobStore, BlobObject, BlobSummary, BlobNotFound,
    PutBlobResult, ListBlobsResult, DeleteBlobResult,
)
from service.interfaces.observer import Observer

__all__ = [
    "KeyValueStore", "ItemResult", "ScanResult", "InvalidKeyError",
    "BlobStore", "BlobObject", "BlobSummary", "BlobNotFound",
    "PutBlobResult", "ListBlobsResult", "DeleteBlobResult",
    "Observer",
]
