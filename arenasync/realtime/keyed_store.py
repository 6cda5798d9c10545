"""Path-addressed JSON values on top of a storage area."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

from arenasync.core.constants import NAMESPACE_PREFIX
from arenasync.errors import SerializationError, ValidationError

from .storage import StorageArea, StorageEvent

logger = logging.getLogger(__name__)


class _Absent:
    """Marker for a path that holds no value."""

    _instance: Optional[_Absent] = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT: Any = _Absent()

ChangeListener = Callable[[str, Any], None]


def validate_path(path: str) -> str:
    """Reject paths with empty segments; return the path unchanged."""
    if not isinstance(path, str) or not path:
        raise ValidationError("Path must be a non-empty string.")
    if any(not segment for segment in path.split("/")):
        raise ValidationError(f"Invalid path '{path}'.")
    return path


def encode(value: Any) -> str:
    """Serialize a value to the compact JSON stored for a path."""
    try:
        return json.dumps(value, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Value cannot be serialized: {e}") from e


def decode(blob: Optional[str], key: str = "") -> Any:
    """Parse a stored blob, treating missing or corrupt data as absent."""
    if blob is None:
        return ABSENT
    try:
        return json.loads(blob)
    except ValueError:
        logger.warning("Ignoring corrupt value stored under '%s'", key)
        return ABSENT


class KeyedStore:
    """Stores one JSON value per path under ``namespace + path``.

    Writes replace the whole value at a path. Changes made by other
    contexts arrive through :meth:`handle_storage_event` and are passed on
    to the registered change listeners as ``(path, value)``.
    """

    def __init__(self, area: StorageArea, namespace: str = NAMESPACE_PREFIX) -> None:
        self.area = area
        self.namespace = namespace
        self._listeners: list[ChangeListener] = []
        self._detach = area.add_listener(self.handle_storage_event)

    def storage_key(self, path: str) -> str:
        return self.namespace + validate_path(path)

    def get(self, path: str) -> Any:
        """Return the value at ``path`` or ``ABSENT``."""
        value, _ = self.get_with_revision(path)
        return value

    def get_with_revision(self, path: str) -> tuple[Any, int]:
        key = self.storage_key(path)
        blob, revision = self.area.get_item(key)
        return decode(blob, key), revision

    def put(
        self, path: str, value: Any, expected_revision: Optional[int] = None
    ) -> int:
        """Replace the value at ``path`` and return the new revision.

        Raises:
            SerializationError: If the value cannot be encoded. The stored
                value is left as it was.
            StaleWriteError: If ``expected_revision`` is stale.
        """
        key = self.storage_key(path)
        blob = encode(value)
        return self.area.set_item(key, blob, expected_revision)

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def handle_storage_event(self, event: StorageEvent) -> None:
        """Re-deliver a change made by another context."""
        if not event.key.startswith(self.namespace):
            return
        path = event.key[len(self.namespace) :]
        value = decode(event.new_value, event.key)
        for listener in list(self._listeners):
            listener(path, None if value is ABSENT else value)

    def close(self) -> None:
        self._detach()
        self._listeners.clear()
