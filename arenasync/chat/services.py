"""Service layer for two-party chats."""

from __future__ import annotations

import secrets
import time
from typing import TYPE_CHECKING, Any, Callable, Optional

from arenasync.core.constants import CHAT_ID_SEPARATOR, CHATS_ROOT, MESSAGE_ID_PREFIX
from arenasync.core.types import ChatMessage
from arenasync.errors import ValidationError

if TYPE_CHECKING:
    from arenasync.realtime import Store, SyncedReference


def now_millis() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class ChatStore:
    """Append-only message lists at ``chats/{chatId}``.

    The store does not look at message text; callers reject blank messages
    before sending.
    """

    def __init__(self, store: Store, clock: Optional[Callable[[], int]] = None) -> None:
        self.store = store
        self.clock = clock or now_millis

    @staticmethod
    def chat_id_for(user_a: str, user_b: str) -> str:
        """Return the same chat id whichever participant asks."""
        if not user_a or not user_b:
            raise ValidationError("Both participant ids are required.")
        return CHAT_ID_SEPARATOR.join(sorted([user_a, user_b]))

    @staticmethod
    def path_for(chat_id: str) -> str:
        if not chat_id or "/" in chat_id:
            raise ValidationError(f"Invalid chat id '{chat_id}'.")
        return f"{CHATS_ROOT}/{chat_id}"

    def ref(self, chat_id: str) -> SyncedReference:
        return self.store.ref(self.path_for(chat_id))

    def messages(self, chat_id: str) -> list[ChatMessage]:
        return self.ref(chat_id).read() or []

    def send(self, chat_id: str, sender_id: str, text: str) -> ChatMessage:
        """Append a message to the chat and return it."""
        timestamp = self.clock()
        message: ChatMessage = {
            "id": f"{MESSAGE_ID_PREFIX}{timestamp}_{secrets.token_hex(4)}",
            "senderId": sender_id,
            "text": text,
            "timestamp": timestamp,
        }

        def append(current: Any) -> list[ChatMessage]:
            existing = current if isinstance(current, list) else []
            return [*existing, message]

        self.ref(chat_id).transaction(append)
        return message

    def subscribe(
        self, chat_id: str, handler: Callable[[list[ChatMessage]], None]
    ) -> Callable[[], None]:
        """Deliver the full message list now and after every change."""
        return self.ref(chat_id).on_change(lambda value: handler(value or []))
