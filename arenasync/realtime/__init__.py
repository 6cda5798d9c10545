"""Real-time key/value store with push-style change notification."""

from .change_bus import ChangeBus
from .keyed_store import ABSENT, KeyedStore
from .reference import Store, SyncedReference, WriteResult
from .storage import (
    FirestoreStorageArea,
    MemoryStorageArea,
    SqliteStorageArea,
    StorageArea,
    StorageEvent,
)

__all__ = [
    "ABSENT",
    "ChangeBus",
    "FirestoreStorageArea",
    "KeyedStore",
    "MemoryStorageArea",
    "SqliteStorageArea",
    "StorageArea",
    "StorageEvent",
    "Store",
    "SyncedReference",
    "WriteResult",
]
