"""Common utilities for tests."""

from __future__ import annotations

from typing import Any, Optional

from mockfirestore import CollectionReference, Query

from arenasync import create_app
from arenasync.realtime import MemoryStorageArea, Store, StorageArea


class Recorder:
    """Callable that remembers every value it is called with."""

    def __init__(self) -> None:
        self.values: list[Any] = []

    def __call__(self, value: Any) -> None:
        self.values.append(value)

    @property
    def last(self) -> Any:
        return self.values[-1]


def make_store(area: Optional[StorageArea] = None) -> Store:
    """Create a store over a fresh (or the given) storage area."""
    return Store(area or MemoryStorageArea())


def make_app(store: Optional[Store] = None) -> Any:
    """Create a test app backed by an in-memory store."""
    return create_app({"TESTING": True}, store=store or make_store())


def patch_mockfirestore() -> None:
    """Teach mockfirestore's ``where`` the ``filter=FieldFilter(...)`` form."""

    def where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    for cls in (CollectionReference, Query):
        if not hasattr(cls, "_where"):
            cls._where = cls.where
            cls.where = where
