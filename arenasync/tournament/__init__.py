"""Tournament blueprint."""

from flask import Blueprint

bp = Blueprint("tournament", __name__, url_prefix="/tournaments")

from . import routes  # noqa: E402, F401
from .bracket import BracketEngine  # noqa: E402
from .services import TournamentDataStore  # noqa: E402

__all__ = ["BracketEngine", "TournamentDataStore", "routes"]
