"""Abstract base class for the auth collaborator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any

from chatpulse.core.subscriptions import Subscription
from chatpulse.models.session import Session

SessionCallback = Callable[[Session | None], Coroutine[Any, Any, None]]


class AuthProvider(ABC):
    """Supplies the signed-in session and reports changes to it."""

    @abstractmethod
    async def get_current_session(self) -> Session | None:
        """Return the current session, or ``None`` when signed out."""
        ...

    @abstractmethod
    def on_session_change(self, callback: SessionCallback) -> Subscription:
        """Register *callback* for every session change (sign-in, sign-out, refresh)."""
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session."""
        ...
