"""Server-Sent Events for live references."""

from __future__ import annotations

import json
import queue
from collections.abc import Iterator
from typing import Any

from .reference import SyncedReference

KEEPALIVE_SECONDS = 15.0
POLL_SECONDS = 1.0


def format_event(value: Any) -> str:
    """Format one value as an SSE ``data`` frame."""
    return f"data: {json.dumps(value, separators=(',', ':'))}\n\n"


def event_stream(
    reference: SyncedReference,
    empty: Any = None,
    keepalive: float = KEEPALIVE_SECONDS,
    poll_interval: float = POLL_SECONDS,
) -> Iterator[str]:
    """Yield the current value of ``reference`` and then every change to it.

    ``empty`` is sent in place of a missing value. While idle the stream
    polls the store every ``poll_interval`` seconds, so writes committed by
    other processes reach the client without waiting for another request.
    The subscription is released when the generator is closed, which
    Werkzeug does once the client disconnects.
    """
    pending: queue.Queue = queue.Queue()
    unsubscribe = reference.on_change(pending.put)
    wait = min(poll_interval, keepalive)
    idle = 0.0
    try:
        while True:
            try:
                value = pending.get(timeout=wait)
            except queue.Empty:
                reference.store.poll()
                idle += wait
                if idle >= keepalive:
                    idle = 0.0
                    yield ": keep-alive\n\n"
                continue
            idle = 0.0
            yield format_event(empty if value is None else value)
    finally:
        unsubscribe()
