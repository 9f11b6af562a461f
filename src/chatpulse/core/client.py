"""ChatClient - binds channel sessions to the auth provider."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from chatpulse.auth.base import AuthProvider
from chatpulse.core.session import ChannelSession, StateListener
from chatpulse.core.subscriptions import Subscription
from chatpulse.models.config import ChatConfig
from chatpulse.models.message import ChatMessage
from chatpulse.models.session import Session
from chatpulse.models.state import ChatState
from chatpulse.store.base import MessageStore
from chatpulse.transport.base import RealtimeTransport

logger = logging.getLogger("chatpulse.client")


class ChatClient:
    """Keeps exactly one ``ChannelSession`` alive per signed-in user.

    Session changes are handled one at a time. When the user id changes
    (including sign-out) the old channel session is closed completely
    before a new one is opened, so two channels are never live at once.

    Example::

        client = ChatClient(auth, store, transport)
        client.on_change(render)
        await client.start()
        await client.input_changed("hel")
        await client.send()
    """

    def __init__(
        self,
        auth: AuthProvider,
        store: MessageStore,
        transport: RealtimeTransport,
        config: ChatConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._auth = auth
        self._store = store
        self._transport = transport
        self._config = config or ChatConfig()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._active: ChannelSession | None = None
        self._active_listener: Subscription | None = None
        self._auth_subscription: Subscription | None = None
        self._listeners: dict[int, StateListener] = {}
        self._next_listener_id = 0
        self._started = False
        self._closed = False

    @property
    def session(self) -> Session | None:
        return self._active.session if self._active is not None else None

    @property
    def channel_session(self) -> ChannelSession | None:
        return self._active

    @property
    def state(self) -> ChatState:
        return self._active.state if self._active is not None else ChatState()

    def on_change(self, listener: StateListener) -> Subscription:
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._listeners[listener_id] = listener

        def _detach() -> None:
            self._listeners.pop(listener_id, None)

        return Subscription(_detach, name=f"client-listener:{listener_id}")

    # -- Lifecycle --

    async def start(self) -> None:
        """Follow the auth provider, opening a channel for the current session."""
        if self._started or self._closed:
            return
        self._started = True
        self._auth_subscription = self._auth.on_session_change(self._on_session_change)
        try:
            session = await self._auth.get_current_session()
        except Exception:
            logger.exception("Reading the current session failed")
            session = None
        await self._on_session_change(session)

    async def sign_out(self) -> None:
        """Tear down the channel session and sign out of the auth provider."""
        async with self._lock:
            await self._teardown()
        try:
            await self._auth.sign_out()
        except Exception as exc:
            logger.error("Sign out error: %s", exc)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None
        async with self._lock:
            await self._teardown()
        self._listeners.clear()

    # -- UI entry points --

    async def send(self, body: str | None = None) -> ChatMessage | None:
        if self._active is None:
            return None
        return await self._active.send(body)

    async def input_changed(self, text: str) -> None:
        if self._active is not None:
            await self._active.input_changed(text)

    async def blur(self) -> None:
        if self._active is not None:
            await self._active.blur()

    # -- Internals --

    async def _on_session_change(self, session: Session | None) -> None:
        async with self._lock:
            if self._closed:
                return
            current = self._active
            if (
                session is not None
                and current is not None
                and current.session.user_id == session.user_id
            ):
                logger.debug("Session refreshed for %s, keeping channel", session.user_id)
                return

            await self._teardown()
            if session is None:
                return

            channel_session = ChannelSession(
                session,
                self._transport,
                self._store,
                self._config,
                clock=self._clock,
            )
            self._active = channel_session
            self._active_listener = channel_session.on_change(self._emit)
            logger.info("Opening channel session for %s", session.user_id)
            await channel_session.open()

    async def _teardown(self) -> None:
        current, self._active = self._active, None
        if current is None:
            return
        if self._active_listener is not None:
            self._active_listener.unsubscribe()
            self._active_listener = None
        await current.close()
        self._emit(ChatState())

    def _emit(self, state: ChatState) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener(state)
            except Exception:
                logger.exception("Error in client state listener")
