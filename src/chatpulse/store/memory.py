"""In-memory implementation of MessageStore."""

from __future__ import annotations

import logging
from uuid import uuid4

from chatpulse.core.subscriptions import Subscription
from chatpulse.errors import StoreError
from chatpulse.models.enums import MessageStatus
from chatpulse.models.message import ChatMessage
from chatpulse.store.base import InsertCallback, MessageStore

logger = logging.getLogger("chatpulse.store")


class InMemoryMessageStore(MessageStore):
    """List-backed store shared by every client in the process."""

    def __init__(self) -> None:
        self._messages: dict[str, ChatMessage] = {}
        self._listeners: dict[str, InsertCallback] = {}
        self._closed = False

    async def list_messages(self) -> list[ChatMessage]:
        return sorted(self._messages.values(), key=lambda m: m.sent_at)

    async def insert_message(self, message: ChatMessage) -> bool:
        if self._closed:
            raise StoreError("store is closed")
        if message.id in self._messages:
            raise StoreError(f"duplicate message id {message.id}")
        row = message.model_copy(update={"status": MessageStatus.CONFIRMED})
        self._messages[row.id] = row
        await self._notify(row)
        return True

    def on_insert(self, callback: InsertCallback) -> Subscription:
        listener_id = uuid4().hex
        self._listeners[listener_id] = callback

        def _detach() -> None:
            self._listeners.pop(listener_id, None)

        return Subscription(_detach, name=f"store-insert:{listener_id}")

    async def close(self) -> None:
        self._closed = True
        self._listeners.clear()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def __len__(self) -> int:
        return len(self._messages)

    async def _notify(self, row: ChatMessage) -> None:
        for listener_id, callback in list(self._listeners.items()):
            if listener_id not in self._listeners:
                continue
            try:
                await callback(row)
            except Exception:
                logger.exception("Error in insert listener %s", listener_id)
