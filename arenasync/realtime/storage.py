"""Durable string key/value storage areas with cross-context change signals.

A storage area plays the part of the browser's ``localStorage``: it holds
already-serialized blobs under flat string keys and tells *other* contexts
sharing the same storage when a key changes.  The writing context never
receives its own storage event; it is expected to notify its subscribers
itself.
"""

from __future__ import annotations

import abc
import logging
import sqlite3
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional
from urllib.parse import quote

from firebase_admin import firestore

from arenasync.errors import StaleWriteError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageEvent:
    """A change made to a storage area by another context."""

    key: str
    old_value: Optional[str]
    new_value: Optional[str]
    revision: int


StorageListener = Callable[[StorageEvent], None]


class StorageArea(abc.ABC):
    """Base class for storage areas.

    Revisions start at 0 for a key that has never been written and grow by
    one on every write to that key.
    """

    def __init__(self) -> None:
        self._listeners: list[StorageListener] = []

    def add_listener(self, listener: StorageListener) -> Callable[[], None]:
        """Register a callback for storage events raised by other contexts."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def dispatch(self, event: StorageEvent) -> None:
        """Deliver a storage event to this area's listeners."""
        for listener in list(self._listeners):
            listener(event)

    @abc.abstractmethod
    def get_item(self, key: str) -> tuple[Optional[str], int]:
        """Return the stored blob (or None) and its revision."""
        raise NotImplementedError

    @abc.abstractmethod
    def set_item(
        self, key: str, value: str, expected_revision: Optional[int] = None
    ) -> int:
        """Store a blob and return its new revision.

        Raises:
            StaleWriteError: If ``expected_revision`` is given and does not
                match the stored revision.
        """
        raise NotImplementedError

    def poll(self) -> int:
        """Raise storage events for external changes; return how many."""
        return 0

    def close(self) -> None:
        """Release any resources held by the area."""
        self._listeners.clear()


def _check_revision(key: str, current: int, expected: Optional[int]) -> None:
    if expected is not None and current != expected:
        raise StaleWriteError(
            f"'{key}' is at revision {current}, expected {expected}.",
            revision=current,
        )


class _MemoryBackend:
    """Shared state behind one or more connected memory areas."""

    def __init__(self) -> None:
        self.items: dict[str, str] = {}
        self.revisions: dict[str, int] = {}
        self.areas: list[MemoryStorageArea] = []
        self.lock = threading.RLock()


class MemoryStorageArea(StorageArea):
    """In-process storage; ``connect()`` opens another context on the same data."""

    def __init__(self, backend: Optional[_MemoryBackend] = None) -> None:
        super().__init__()
        self._backend = backend or _MemoryBackend()
        with self._backend.lock:
            self._backend.areas.append(self)

    def connect(self) -> MemoryStorageArea:
        """Return a new context sharing this area's data."""
        return MemoryStorageArea(self._backend)

    def get_item(self, key: str) -> tuple[Optional[str], int]:
        backend = self._backend
        with backend.lock:
            return backend.items.get(key), backend.revisions.get(key, 0)

    def set_item(
        self, key: str, value: str, expected_revision: Optional[int] = None
    ) -> int:
        backend = self._backend
        with backend.lock:
            current = backend.revisions.get(key, 0)
            _check_revision(key, current, expected_revision)
            old_value = backend.items.get(key)
            backend.items[key] = value
            backend.revisions[key] = current + 1
            others = [area for area in backend.areas if area is not self]

        event = StorageEvent(key, old_value, value, current + 1)
        for area in others:
            area.dispatch(event)
        return current + 1

    def close(self) -> None:
        with self._backend.lock:
            if self in self._backend.areas:
                self._backend.areas.remove(self)
        super().close()


class SqliteStorageArea(StorageArea):
    """Storage in a SQLite file shared by every process on the device.

    Each write stamps the row with a file-wide change sequence so that
    ``poll()`` can find rows committed by other connections.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS storage (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            revision INTEGER NOT NULL,
            seq INTEGER NOT NULL
        )
    """

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.execute(self.SCHEMA)
        self._last_seq = self._max_seq()
        self._own_seqs: set[int] = set()

    def _max_seq(self) -> int:
        row = self._conn.execute("SELECT COALESCE(MAX(seq), 0) FROM storage").fetchone()
        return int(row[0])

    def get_item(self, key: str) -> tuple[Optional[str], int]:
        with self._lock:
            row = self._conn.execute(
                "SELECT value, revision FROM storage WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None, 0
        return row[0], int(row[1])

    def set_item(
        self, key: str, value: str, expected_revision: Optional[int] = None
    ) -> int:
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                row = self._conn.execute(
                    "SELECT revision FROM storage WHERE key = ?", (key,)
                ).fetchone()
                current = int(row[0]) if row else 0
                _check_revision(key, current, expected_revision)
                seq = self._max_seq() + 1
                self._conn.execute(
                    "INSERT INTO storage (key, value, revision, seq) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                    "revision = excluded.revision, seq = excluded.seq",
                    (key, value, current + 1, seq),
                )
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")
            self._own_seqs.add(seq)
        return current + 1

    def poll(self) -> int:
        with self._lock:
            rows = self._conn.execute(
                "SELECT key, value, revision, seq FROM storage WHERE seq > ? ORDER BY seq",
                (self._last_seq,),
            ).fetchall()
            events = []
            for key, value, revision, seq in rows:
                self._last_seq = max(self._last_seq, seq)
                if seq in self._own_seqs:
                    self._own_seqs.discard(seq)
                    continue
                events.append(StorageEvent(key, None, value, int(revision)))
            # Sequences at or below the high-water mark can no longer show up.
            self._own_seqs = {s for s in self._own_seqs if s > self._last_seq}

        for event in events:
            self.dispatch(event)
        return len(events)

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        super().close()


class FirestoreStorageArea(StorageArea):
    """Storage in a Firestore collection, one document per key.

    Every write stamps the document with a collection-wide ``seq`` so that
    ``poll()`` only fetches documents changed since the last poll. The
    revision check, the ``seq`` lookup and the write are separate requests,
    so two servers racing on the same collection can collide.
    """

    def __init__(self, db: Client | Any, collection: str) -> None:
        super().__init__()
        self.db = db
        self.collection = collection
        self._last_seq = self._max_seq()
        self._own_seqs: set[int] = set()

    def _collection(self) -> Any:
        return self.db.collection(self.collection)

    def _doc(self, key: str) -> Any:
        return self._collection().document(quote(key, safe=""))

    def _max_seq(self) -> int:
        query = (
            self._collection()
            .order_by("seq", direction=firestore.Query.DESCENDING)
            .limit(1)
        )
        for doc in query.stream():
            return int((doc.to_dict() or {}).get("seq", 0))
        return 0

    def get_item(self, key: str) -> tuple[Optional[str], int]:
        doc = self._doc(key).get()
        if not doc.exists:
            return None, 0
        data = doc.to_dict() or {}
        return data.get("value"), int(data.get("revision", 0))

    def set_item(
        self, key: str, value: str, expected_revision: Optional[int] = None
    ) -> int:
        ref = self._doc(key)
        doc = ref.get()
        current = int((doc.to_dict() or {}).get("revision", 0)) if doc.exists else 0
        _check_revision(key, current, expected_revision)
        seq = max(self._max_seq(), self._last_seq) + 1
        ref.set({"key": key, "value": value, "revision": current + 1, "seq": seq})
        self._own_seqs.add(seq)
        return current + 1

    def poll(self) -> int:
        query = self._collection().where(
            filter=firestore.FieldFilter("seq", ">", self._last_seq)
        )
        changed = sorted(
            (doc.to_dict() or {} for doc in query.stream()),
            key=lambda data: int(data.get("seq", 0)),
        )
        events = []
        for data in changed:
            seq = int(data.get("seq", 0))
            self._last_seq = max(self._last_seq, seq)
            if seq in self._own_seqs:
                self._own_seqs.discard(seq)
                continue
            if "key" in data:
                events.append(
                    StorageEvent(
                        data["key"], None, data.get("value"), int(data.get("revision", 0))
                    )
                )
        self._own_seqs = {s for s in self._own_seqs if s > self._last_seq}

        for event in events:
            self.dispatch(event)
        if events:
            logger.debug("Picked up %d external change(s) from Firestore", len(events))
        return len(events)
