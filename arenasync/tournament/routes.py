"""Routes for the tournament blueprint."""

from __future__ import annotations

from typing import Any

from flask import Response, current_app, jsonify

from arenasync.errors import ValidationError
from arenasync.extensions import get_store
from arenasync.realtime.stream import event_stream
from arenasync.utils import form_errors, get_json_payload, json_formdata, pop_revision

from . import bp
from .forms import AutoFillForm, LeaderboardUpdateForm, MatchUpdateForm
from .services import TournamentDataStore

INT_FIELDS = frozenset({"score1", "score2", "rank", "score", "coins"})


def _data_store() -> TournamentDataStore:
    return TournamentDataStore(get_store())


def _changed_fields(form: Any, payload: dict[str, Any]) -> dict[str, Any]:
    """Collect validated values for the keys present in the request body."""
    unknown = [name for name in payload if name not in form]
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}.")
    if not form.validate():
        raise ValidationError(form_errors(form))

    changes = {}
    for name in payload:
        value = form[name].data
        if name in INT_FIELDS and value is None:
            raise ValidationError(f"{name}: a number is required.")
        if name == "winner":
            value = value or None
        changes[name] = value
    return changes


def _tournament_response(tournament_id: str, revision: int, data: Any) -> Any:
    return jsonify({"tournamentId": tournament_id, "revision": revision, "data": data})


@bp.route("/<string:tournament_id>/data", methods=["GET"])
def get_tournament_data(tournament_id: str) -> Any:
    """Return the bracket and leaderboard, seeding them on first view."""
    data_store = _data_store()
    data_store.ensure_seeded(tournament_id)
    data, revision = data_store.get_with_revision(tournament_id)
    return _tournament_response(tournament_id, revision, data)


@bp.route("/<string:tournament_id>/leaderboard", methods=["GET"])
def get_leaderboard(tournament_id: str) -> Any:
    """Return leaderboard entries ordered by score."""
    data_store = _data_store()
    data_store.ensure_seeded(tournament_id)
    return jsonify(data_store.sorted_leaderboard(tournament_id))


@bp.route("/<string:tournament_id>/matches/<string:match_id>", methods=["PATCH"])
def update_match(tournament_id: str, match_id: str) -> Any:
    """Record scores, names or a winner for one match."""
    payload = get_json_payload()
    revision = pop_revision(payload)
    form = MatchUpdateForm(formdata=json_formdata(payload), meta={"csrf": False})
    changes = _changed_fields(form, payload)

    data_store = _data_store()
    data_store.ensure_seeded(tournament_id)
    result = data_store.apply_match_update(tournament_id, match_id, changes, revision)
    return _tournament_response(tournament_id, result.revision, result.value)


@bp.route("/<string:tournament_id>/leaderboard/<string:entry_id>", methods=["PATCH"])
def update_leaderboard_entry(tournament_id: str, entry_id: str) -> Any:
    """Edit one leaderboard entry."""
    payload = get_json_payload()
    revision = pop_revision(payload)
    form = LeaderboardUpdateForm(formdata=json_formdata(payload), meta={"csrf": False})
    changes = _changed_fields(form, payload)

    data_store = _data_store()
    data_store.ensure_seeded(tournament_id)
    result = data_store.apply_leaderboard_update(
        tournament_id, entry_id, changes, revision
    )
    return _tournament_response(tournament_id, result.revision, result.value)


@bp.route("/<string:tournament_id>/auto-fill", methods=["POST"])
def auto_fill(tournament_id: str) -> Any:
    """Overwrite the quarterfinals and leaderboard with the joined participants."""
    payload = get_json_payload()
    revision = pop_revision(payload)
    form = AutoFillForm(formdata=json_formdata(payload), meta={"csrf": False})
    if not form.validate():
        raise ValidationError("Auto-fill overwrites the bracket and must be confirmed.")

    data_store = _data_store()
    data_store.ensure_seeded(tournament_id)
    result = data_store.auto_fill(tournament_id, form.participants.data, revision)
    current_app.logger.info(f"Bracket for {tournament_id} auto-filled by request.")
    return _tournament_response(tournament_id, result.revision, result.value)


@bp.route("/<string:tournament_id>/stream", methods=["GET"])
def stream_tournament(tournament_id: str) -> Any:
    """Push the tournament data to the client whenever it changes."""
    data_store = _data_store()
    data_store.ensure_seeded(tournament_id)
    return Response(
        event_stream(data_store.ref(tournament_id)),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
