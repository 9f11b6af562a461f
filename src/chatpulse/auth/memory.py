"""In-memory auth provider for development and testing."""

from __future__ import annotations

import logging
from uuid import uuid4

from chatpulse.auth.base import AuthProvider, SessionCallback
from chatpulse.core.subscriptions import Subscription
from chatpulse.models.session import Session

logger = logging.getLogger("chatpulse.auth")


class InMemoryAuthProvider(AuthProvider):
    """Holds a session set directly by the application or a test."""

    def __init__(self, session: Session | None = None) -> None:
        self._session = session
        self._listeners: dict[str, SessionCallback] = {}

    async def get_current_session(self) -> Session | None:
        return self._session

    def on_session_change(self, callback: SessionCallback) -> Subscription:
        listener_id = uuid4().hex
        self._listeners[listener_id] = callback

        def _detach() -> None:
            self._listeners.pop(listener_id, None)

        return Subscription(_detach, name=f"session-change:{listener_id}")

    async def sign_in(self, session: Session) -> None:
        await self.set_session(session)

    async def sign_out(self) -> None:
        await self.set_session(None)

    async def set_session(self, session: Session | None) -> None:
        """Replace the session and notify every listener."""
        self._session = session
        for listener_id, callback in list(self._listeners.items()):
            try:
                await callback(session)
            except Exception:
                logger.exception("Error in session listener %s", listener_id)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
