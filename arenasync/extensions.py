"""Flask extensions for the application."""

from __future__ import annotations

from flask import Flask, current_app

from .realtime import Store

STORE_EXTENSION = "arenasync.store"


def init_store(app: Flask, store: Store) -> None:
    """Attach the application's one shared store."""
    app.extensions[STORE_EXTENSION] = store


def get_store() -> Store:
    """Return the store attached to the current app."""
    return current_app.extensions[STORE_EXTENSION]
