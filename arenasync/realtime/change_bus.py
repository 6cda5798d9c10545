"""In-process publish/subscribe keyed by exact path."""

from __future__ import annotations

import copy
import itertools
import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class ChangeBus:
    """Fans out path values to the handlers subscribed to that exact path.

    Delivery is synchronous: ``publish`` returns after every handler has
    run. Each handler receives its own copy of the value. A handler that
    raises is logged and skipped; the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, dict[int, Handler]] = {}
        self._tokens = itertools.count()
        self._lock = threading.Lock()

    def subscribe(self, path: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``path`` and return its unsubscribe function."""
        with self._lock:
            token = next(self._tokens)
            self._subscribers.setdefault(path, {})[token] = handler

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._subscribers.get(path)
                if handlers is None:
                    return
                handlers.pop(token, None)
                if not handlers:
                    del self._subscribers[path]

        return unsubscribe

    def publish(self, path: str, value: Any) -> int:
        """Deliver ``value`` to the subscribers of ``path``; return how many ran cleanly."""
        with self._lock:
            handlers = list(self._subscribers.get(path, {}).values())

        delivered = 0
        for handler in handlers:
            try:
                handler(copy.deepcopy(value))
            except Exception:
                logger.exception("Change handler for '%s' failed", path)
                continue
            delivered += 1
        return delivered

    def subscriber_count(self, path: str) -> int:
        with self._lock:
            return len(self._subscribers.get(path, {}))
