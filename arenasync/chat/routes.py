"""Routes for the chat blueprint."""

from __future__ import annotations

from typing import Any

from flask import Response, jsonify, request

from arenasync.errors import ValidationError
from arenasync.extensions import get_store
from arenasync.realtime.stream import event_stream
from arenasync.utils import form_errors, get_json_payload, json_formdata

from . import bp
from .forms import MessageForm
from .services import ChatStore


@bp.route("/id", methods=["GET"])
def get_chat_id() -> Any:
    """Resolve the chat id shared by two users."""
    user_a = request.args.get("a", "").strip()
    user_b = request.args.get("b", "").strip()
    return jsonify({"chatId": ChatStore.chat_id_for(user_a, user_b)})


@bp.route("/<string:chat_id>/messages", methods=["GET"])
def list_messages(chat_id: str) -> Any:
    """Return every message in the chat, oldest first."""
    return jsonify(ChatStore(get_store()).messages(chat_id))


@bp.route("/<string:chat_id>/messages", methods=["POST"])
def send_message(chat_id: str) -> Any:
    """Append a message to the chat."""
    payload = get_json_payload()
    form = MessageForm(
        formdata=json_formdata(
            {"sender_id": payload.get("senderId"), "text": payload.get("text")}
        ),
        meta={"csrf": False},
    )
    if not form.validate():
        raise ValidationError(form_errors(form))

    message = ChatStore(get_store()).send(chat_id, form.sender_id.data, form.text.data)
    return jsonify(message), 201


@bp.route("/<string:chat_id>/stream", methods=["GET"])
def stream_messages(chat_id: str) -> Any:
    """Push the message list to the client whenever it changes."""
    return Response(
        event_stream(ChatStore(get_store()).ref(chat_id), empty=[]),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
