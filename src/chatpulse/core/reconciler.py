"""Optimistic sends, rollback, and de-duplicated merge of peer messages."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from chatpulse.core.typing_indicator import TypingCoordinator
from chatpulse.models.enums import MessageStatus
from chatpulse.models.message import ChatMessage, PendingSend
from chatpulse.models.session import Session
from chatpulse.store.base import MessageStore

logger = logging.getLogger("chatpulse.reconciler")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MessageReconciler:
    """Owns the visible message list and the input draft.

    The list never holds two messages with the same ``id`` and is re-sorted
    by ``sent_at`` after every mutation, so arrival order never decides
    display order.

    Peer messages are merged from store insert notifications. The local
    user's own notifications are ignored because those messages are
    already shown through the optimistic path; filtering on ``user_id``
    rather than ``id`` makes the relative timing of the echo irrelevant.
    """

    def __init__(
        self,
        session: Session,
        store: MessageStore,
        typing: TypingCoordinator,
        *,
        clock: Callable[[], datetime] = _utcnow,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._session = session
        self._store = store
        self._typing = typing
        self._clock = clock
        self._on_change = on_change
        self._messages: list[ChatMessage] = []
        self._draft = ""
        self._closed = False

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def draft(self) -> str:
        return self._draft

    @property
    def closed(self) -> bool:
        return self._closed

    def set_draft(self, text: str) -> None:
        if self._closed or text == self._draft:
            return
        self._draft = text
        self._changed()

    def get(self, message_id: str) -> ChatMessage | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    # -- Local send --

    async def send(self, body: str | None = None) -> ChatMessage | None:
        """Send *body* (the current draft by default) optimistically.

        The message is visible before the store write resolves. If the
        write fails the message is removed again and the draft is restored
        to the unsent text. Failures are logged, never raised.

        Returns:
            The confirmed message, or ``None`` if nothing was sent.
        """
        if self._closed:
            return None
        original = self._draft if body is None else body
        text = original.strip()
        if not text:
            return None

        await self._typing.notify_stop_typing()
        if self._closed:
            return None

        message = ChatMessage.compose(self._session, text, self._clock())
        pending = PendingSend(id=message.id, original_body=original)
        self._insert(message)
        self._draft = ""
        self._changed()

        try:
            stored = await self._store.insert_message(message)
        except Exception as exc:
            logger.warning("Insert of message %s failed: %s", message.id, exc, exc_info=True)
            stored = False
        else:
            if not stored:
                logger.warning("Insert of message %s was rejected by the store", message.id)

        if self._closed:
            return None
        if not stored:
            self._rollback(pending)
            return None
        return self._confirm(pending)

    def _confirm(self, pending: PendingSend) -> ChatMessage | None:
        for i, message in enumerate(self._messages):
            if message.id == pending.id:
                confirmed = message.model_copy(update={"status": MessageStatus.CONFIRMED})
                self._messages[i] = confirmed
                self._changed()
                return confirmed
        return None

    def _rollback(self, pending: PendingSend) -> None:
        self._messages = [m for m in self._messages if m.id != pending.id]
        self._draft = pending.original_body
        self._changed()

    # -- Remote inserts --

    def handle_remote_insert(self, message: ChatMessage) -> bool:
        """Merge a store insert notification.

        Returns:
            True if the message was added to the view.
        """
        if self._closed or message.user_id == self._session.user_id:
            return False
        if message.status is not MessageStatus.CONFIRMED:
            message = message.model_copy(update={"status": MessageStatus.CONFIRMED})
        added = self._insert(message)
        # A message from a peer means that peer has stopped typing.
        self._typing.remove(message.user_id)
        if added:
            self._changed()
        else:
            logger.debug("Ignoring duplicate insert for message %s", message.id)
        return added

    # -- Initial load --

    async def load_initial(self) -> None:
        """Seed the view from the store, replacing what is there.

        Confirmed messages already in the view when the load starts are
        replaced by the loaded rows. Local sends that were in flight and
        messages merged while the load was running are kept.
        """
        replaced = {m.id for m in self._messages if m.status is MessageStatus.CONFIRMED}
        try:
            loaded = await self._store.list_messages()
        except Exception:
            logger.exception("Loading messages failed")
            return
        if self._closed:
            return

        seen: set[str] = set()
        messages: list[ChatMessage] = []
        for message in loaded:
            if message.id not in seen:
                seen.add(message.id)
                messages.append(message)
        messages.extend(m for m in self._messages if m.id not in seen and m.id not in replaced)
        messages.sort(key=_sent_at)
        self._messages = messages
        self._changed()

    def close(self) -> None:
        self._closed = True

    def _insert(self, message: ChatMessage) -> bool:
        if any(m.id == message.id for m in self._messages):
            return False
        self._messages.append(message)
        self._messages.sort(key=_sent_at)
        return True

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()


def _sent_at(message: ChatMessage) -> datetime:
    return message.sent_at
