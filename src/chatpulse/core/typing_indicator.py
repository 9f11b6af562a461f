"""Typing indicators: debounced broadcast out, expiring aggregation in.

The sender re-broadcasts ``typing`` on every keystroke and sends
``stop_typing`` once it has been quiet for ``sender_debounce_seconds``.
Receivers drop a peer that has not refreshed within
``receiver_expiry_seconds``, which is always the longer of the two, so a
lost ``stop_typing`` heals on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from chatpulse.core.timeouts import SENDER_DEBOUNCE_KEY, TimeoutRegistry, receiver_expiry_key
from chatpulse.models.config import ChatConfig
from chatpulse.models.enums import BroadcastEvent
from chatpulse.models.events import StopTypingPayload, TypingPayload, TypingUser
from chatpulse.models.session import Session

logger = logging.getLogger("chatpulse.typing")

BroadcastFn = Callable[[str, dict[str, Any]], Awaitable[None]]


class TypingCoordinator:
    """Tracks which peers are typing and announces the local user's typing."""

    def __init__(
        self,
        session: Session,
        registry: TimeoutRegistry,
        broadcast: BroadcastFn,
        config: ChatConfig | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._session = session
        self._registry = registry
        self._broadcast = broadcast
        self._config = config or ChatConfig()
        self._on_change = on_change
        self._typing: dict[str, TypingUser] = {}

    @property
    def typing_users(self) -> tuple[TypingUser, ...]:
        return tuple(self._typing.values())

    def is_typing(self, user_id: str) -> bool:
        return user_id in self._typing

    # -- Sender side --

    async def notify_typing(self) -> None:
        """Broadcast ``typing`` now and (re)arm the quiet-period timer."""
        self._registry.set(
            SENDER_DEBOUNCE_KEY,
            self._config.sender_debounce_seconds,
            self._debounce_elapsed,
        )
        payload = TypingPayload.for_session(self._session)
        await self._send(BroadcastEvent.TYPING, payload.to_wire())

    async def notify_stop_typing(self) -> None:
        self._registry.clear(SENDER_DEBOUNCE_KEY)
        payload = StopTypingPayload(user_id=self._session.user_id)
        await self._send(BroadcastEvent.STOP_TYPING, payload.to_wire())

    async def _debounce_elapsed(self) -> None:
        # A keystroke handled after the timer fired re-armed the debounce;
        # the newer timer owns the stop.
        if self._registry.active(SENDER_DEBOUNCE_KEY):
            return
        await self.notify_stop_typing()

    async def handle_input_change(self, text: str) -> None:
        if text:
            await self.notify_typing()
        else:
            await self.notify_stop_typing()

    async def handle_blur(self) -> None:
        await self.notify_stop_typing()

    async def _send(self, event: BroadcastEvent, payload: dict[str, Any]) -> None:
        try:
            await self._broadcast(event.value, payload)
        except Exception as exc:
            logger.warning("Broadcast of %s failed: %s", event.value, exc)

    # -- Receiver side --

    def handle_typing(self, raw: Mapping[str, Any]) -> None:
        try:
            payload = TypingPayload.model_validate(raw)
        except ValidationError:
            logger.debug("Dropping malformed typing payload: %r", raw)
            return
        if payload.user_id == self._session.user_id:
            return
        if not payload.is_typing:
            self.remove(payload.user_id)
            return

        user_id = payload.user_id
        self._typing[user_id] = TypingUser(
            user_id=user_id,
            display_name=payload.user_name,
            avatar_url=payload.user_avatar,
            email=payload.user_email,
            last_seen_at=datetime.now(UTC),
        )
        self._registry.set(
            receiver_expiry_key(user_id),
            self._config.receiver_expiry_seconds,
            lambda: self._expire(user_id),
        )
        self._changed()

    def handle_stop_typing(self, raw: Mapping[str, Any]) -> None:
        try:
            payload = StopTypingPayload.model_validate(raw)
        except ValidationError:
            logger.debug("Dropping malformed stop_typing payload: %r", raw)
            return
        if payload.user_id == self._session.user_id:
            return
        self.remove(payload.user_id)

    def remove(self, user_id: str) -> bool:
        """Drop *user_id* from the typing set and cancel its expiry timer."""
        self._registry.clear(receiver_expiry_key(user_id))
        if self._typing.pop(user_id, None) is None:
            return False
        self._changed()
        return True

    def clear(self) -> None:
        for user_id in self._typing:
            self._registry.clear(receiver_expiry_key(user_id))
        self._registry.clear(SENDER_DEBOUNCE_KEY)
        had_entries = bool(self._typing)
        self._typing.clear()
        if had_entries:
            self._changed()

    def _expire(self, user_id: str) -> None:
        if self.remove(user_id):
            logger.debug("Typing indicator for %s expired", user_id)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
