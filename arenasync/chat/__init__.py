"""Chat blueprint."""

from flask import Blueprint

bp = Blueprint("chat", __name__, url_prefix="/chats")

from . import routes  # noqa: E402, F401
from .services import ChatStore  # noqa: E402

__all__ = ["ChatStore", "routes"]
