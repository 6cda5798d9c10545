"""Live references to store paths, in the style of Firebase ``ref``/``set``/``onValue``."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from arenasync.core.constants import NAMESPACE_PREFIX
from arenasync.errors import StaleWriteError

from .change_bus import ChangeBus, Handler
from .keyed_store import ABSENT, KeyedStore, validate_path
from .storage import StorageArea

logger = logging.getLogger(__name__)

TRANSACTION_ATTEMPTS = 5


@dataclass(frozen=True)
class WriteResult:
    """Acknowledgement of a committed write."""

    path: str
    revision: int
    value: Any


class SyncedReference:
    """A handle on one path of a :class:`Store`."""

    def __init__(self, store: Store, path: str) -> None:
        self.store = store
        self.path = validate_path(path)

    def __repr__(self) -> str:
        return f"SyncedReference({self.path!r})"

    def read(self) -> Any:
        """Return the current value, or None if nothing is stored."""
        value, _ = self.read_with_revision()
        return value

    def read_with_revision(self) -> tuple[Any, int]:
        value, revision = self.store.keyed_store.get_with_revision(self.path)
        return (None if value is ABSENT else value), revision

    def exists(self) -> bool:
        return self.store.keyed_store.get(self.path) is not ABSENT

    def write(self, value: Any, expected_revision: Optional[int] = None) -> WriteResult:
        """Persist ``value`` and notify this context's subscribers.

        A change event is published even when ``value`` equals what was
        already stored.
        """
        revision = self.store.keyed_store.put(self.path, value, expected_revision)
        self.store.bus.publish(self.path, value)
        return WriteResult(self.path, revision, value)

    def transaction(
        self,
        update: Callable[[Any], Any],
        expected_revision: Optional[int] = None,
    ) -> WriteResult:
        """Read-modify-write the whole value at this path.

        ``update`` receives the current value (None when absent) and returns
        the value to store. When another writer gets in between the read and
        the write, ``update`` is re-run on the fresh value. With
        ``expected_revision`` the caller pins the revision it last saw and a
        conflict is raised instead of retried.

        Raises:
            StaleWriteError: On a pinned conflict or when every attempt lost
                the race.
        """
        attempts = 1 if expected_revision is not None else TRANSACTION_ATTEMPTS
        for attempt in range(1, attempts + 1):
            current, revision = self.read_with_revision()
            if expected_revision is not None and revision != expected_revision:
                raise StaleWriteError(
                    f"'{self.path}' is at revision {revision}, expected {expected_revision}.",
                    revision=revision,
                )
            new_value = update(current)
            try:
                return self.write(new_value, expected_revision=revision)
            except StaleWriteError:
                if attempt == attempts:
                    raise
                logger.warning(
                    "Concurrent write on '%s', retrying (attempt %d)", self.path, attempt
                )
        raise AssertionError("unreachable")

    def on_change(self, handler: Handler) -> Callable[[], None]:
        """Subscribe to this path.

        ``handler`` is called with the current value (None when absent)
        before this method returns, then with every later value. The
        subscription is registered before the current value is read; if a
        change is published in between, that newer value stands in for the
        initial one.
        """
        lock = threading.RLock()
        published = False

        def deliver(value: Any) -> None:
            nonlocal published
            with lock:
                published = True
                handler(value)

        unsubscribe = self.store.bus.subscribe(self.path, deliver)
        current = self.read()
        with lock:
            if not published:
                handler(current)
        return unsubscribe


class Store:
    """The shared store: one keyed store and one change bus per context.

    Build it once at startup and hand it to whatever needs it.
    """

    def __init__(self, area: StorageArea, namespace: str = NAMESPACE_PREFIX) -> None:
        self.keyed_store = KeyedStore(area, namespace)
        self.bus = ChangeBus()
        self.keyed_store.add_listener(self.bus.publish)

    @property
    def area(self) -> StorageArea:
        return self.keyed_store.area

    def ref(self, path: str) -> SyncedReference:
        return SyncedReference(self, path)

    def poll(self) -> int:
        """Pick up changes other processes made to the storage area."""
        return self.area.poll()

    def close(self) -> None:
        self.keyed_store.close()
        self.area.close()
