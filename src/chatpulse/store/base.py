"""Abstract base class for the chat message store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any

from chatpulse.core.subscriptions import Subscription
from chatpulse.models.message import ChatMessage

InsertCallback = Callable[[ChatMessage], Coroutine[Any, Any, None]]


class MessageStore(ABC):
    """Durable, append-only log of room messages.

    Implement this ABC to plug in a real backend (Postgres with change
    notifications, a hosted API, etc.). The library ships with
    ``InMemoryMessageStore`` for single-process use and testing.
    """

    @abstractmethod
    async def list_messages(self) -> list[ChatMessage]:
        """Return every message, ascending by ``sent_at``."""
        ...

    @abstractmethod
    async def insert_message(self, message: ChatMessage) -> bool:
        """Persist *message*.

        Returns:
            True on success. Implementations may instead raise
            ``StoreError``; callers treat both as a failed write.
        """
        ...

    @abstractmethod
    def on_insert(self, callback: InsertCallback) -> Subscription:
        """Register *callback* for every inserted row, from any client."""
        ...

    async def close(self) -> None:
        """Clean up resources.

        Override this method in subclasses that need cleanup.
        The default implementation does nothing.
        """
        return None
