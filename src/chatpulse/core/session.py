"""Channel session: one realtime channel bound to one signed-in session.

Lifecycle::

    DISCONNECTED -> CONNECTING -> SUBSCRIBED -> DISCONNECTED

A ``ChannelSession`` owns every piece of per-session state (timers,
typing set, presence set, message view) and is discarded after
``close()``. A new session always gets a new instance.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from chatpulse.core.presence import PresenceTracker
from chatpulse.core.reconciler import MessageReconciler
from chatpulse.core.subscriptions import Subscription, SubscriptionGroup
from chatpulse.core.timeouts import TimeoutRegistry
from chatpulse.core.typing_indicator import TypingCoordinator
from chatpulse.errors import ChannelClosedError
from chatpulse.models.config import ChatConfig
from chatpulse.models.enums import BroadcastEvent, ChannelState, SubscribeStatus
from chatpulse.models.events import PresenceInfo, StopTypingPayload
from chatpulse.models.message import ChatMessage
from chatpulse.models.session import Session
from chatpulse.models.state import ChatState
from chatpulse.store.base import MessageStore
from chatpulse.transport.base import RealtimeChannel, RealtimeTransport

logger = logging.getLogger("chatpulse.session")

StateListener = Callable[[ChatState], None]


class ChannelSession:
    """Wires presence, typing and messages to one realtime channel."""

    def __init__(
        self,
        session: Session,
        transport: RealtimeTransport,
        store: MessageStore,
        config: ChatConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._transport = transport
        self._store = store
        self._config = config or ChatConfig()
        self._registry = TimeoutRegistry()
        self._presence = PresenceTracker()
        self._typing = TypingCoordinator(
            session,
            self._registry,
            self._broadcast,
            self._config,
            on_change=self._publish,
        )
        reconciler_kwargs: dict[str, Any] = {"on_change": self._publish}
        if clock is not None:
            reconciler_kwargs["clock"] = clock
        self._reconciler = MessageReconciler(session, store, self._typing, **reconciler_kwargs)
        self._subscriptions = SubscriptionGroup()
        self._listeners: dict[int, StateListener] = {}
        self._next_listener_id = 0
        self._channel: RealtimeChannel | None = None
        self._channel_state = ChannelState.DISCONNECTED
        self._opened = False
        self._alive = True

    # -- Queries --

    @property
    def session(self) -> Session:
        return self._session

    @property
    def channel_state(self) -> ChannelState:
        return self._channel_state

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def presence(self) -> PresenceTracker:
        return self._presence

    @property
    def typing(self) -> TypingCoordinator:
        return self._typing

    @property
    def reconciler(self) -> MessageReconciler:
        return self._reconciler

    @property
    def registry(self) -> TimeoutRegistry:
        return self._registry

    @property
    def state(self) -> ChatState:
        if not self._alive:
            return ChatState()
        return ChatState(
            channel_state=self._channel_state,
            session=self._session,
            messages=self._reconciler.messages,
            typing_users=self._typing.typing_users,
            online_users=self._presence.online,
            draft=self._reconciler.draft,
        )

    def on_change(self, listener: StateListener) -> Subscription:
        """Call *listener* with a fresh ``ChatState`` after every change."""
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._listeners[listener_id] = listener

        def _detach() -> None:
            self._listeners.pop(listener_id, None)

        return Subscription(_detach, name=f"state-listener:{listener_id}")

    # -- Lifecycle --

    async def open(self) -> None:
        """Open the room channel, subscribe, and load the message history."""
        if self._opened or not self._alive:
            return
        self._opened = True
        self._set_channel_state(ChannelState.CONNECTING)

        channel = self._transport.open_channel(
            self._config.room_name, presence_key=self._session.user_id
        )
        self._channel = channel
        self._subscriptions.add(channel.on_presence_sync(self._on_presence_sync))
        self._subscriptions.add(channel.on_broadcast(BroadcastEvent.TYPING, self._on_typing))
        self._subscriptions.add(
            channel.on_broadcast(BroadcastEvent.STOP_TYPING, self._on_stop_typing)
        )
        self._subscriptions.add(self._store.on_insert(self._on_insert))

        try:
            await channel.subscribe(self._on_status)
        except Exception as exc:
            logger.error("Subscribing to %s failed: %s", self._config.room_name, exc)
            self._set_channel_state(ChannelState.DISCONNECTED)

        await self._reconciler.load_initial()

    async def close(self) -> None:
        """Tear the session down. Safe to call more than once."""
        if not self._alive:
            return
        self._alive = False
        self._reconciler.close()
        channel, self._channel = self._channel, None

        if channel is not None and not channel.closed:
            payload = StopTypingPayload(user_id=self._session.user_id)
            try:
                await channel.send(BroadcastEvent.STOP_TYPING, payload.to_wire())
            except Exception as exc:
                logger.debug("Final stop_typing on %s not sent: %s", channel.name, exc)

        self._registry.clear_all()
        self._typing.clear()
        self._presence.clear()
        self._subscriptions.close()

        if channel is not None:
            try:
                await channel.close()
            except Exception:
                logger.exception("Error closing channel %s", channel.name)
        self._set_channel_state(ChannelState.DISCONNECTED)
        logger.info("Closed channel session for %s", self._session.user_id)
        self._listeners.clear()

    # -- UI entry points --

    async def send(self, body: str | None = None) -> ChatMessage | None:
        if not self._alive:
            return None
        return await self._reconciler.send(body)

    async def input_changed(self, text: str) -> None:
        """Record the new draft and broadcast typing state accordingly."""
        if not self._alive:
            return
        self._reconciler.set_draft(text)
        await self._typing.handle_input_change(text)

    async def blur(self) -> None:
        if self._alive:
            await self._typing.handle_blur()

    async def notify_typing(self) -> None:
        if self._alive:
            await self._typing.notify_typing()

    async def notify_stop_typing(self) -> None:
        if self._alive:
            await self._typing.notify_stop_typing()

    # -- Transport callbacks --

    async def _on_status(self, status: SubscribeStatus, error: Exception | None) -> None:
        if not self._alive:
            return
        logger.debug("Subscription status %s on %s", status, self._config.room_name)
        if status is SubscribeStatus.SUBSCRIBED:
            self._set_channel_state(ChannelState.SUBSCRIBED)
            await self._track_self()
        else:
            if status is SubscribeStatus.CLOSED:
                logger.info("Channel %s closed by transport", self._config.room_name)
            else:
                logger.error(
                    "Channel %s subscription failed (%s): %s",
                    self._config.room_name,
                    status,
                    error,
                )
            # Presence from a dead channel is stale.
            self._presence.clear()
            if self._channel_state is ChannelState.DISCONNECTED:
                self._publish()
            else:
                self._set_channel_state(ChannelState.DISCONNECTED)

    async def _track_self(self) -> None:
        channel = self._channel
        if channel is None:
            return
        try:
            await channel.track(PresenceInfo.for_session(self._session).to_wire())
        except Exception as exc:
            logger.error("Error tracking presence on %s: %s", channel.name, exc)

    async def _on_presence_sync(self, snapshot: dict[str, dict[str, Any]]) -> None:
        if not self._alive:
            return
        self._presence.sync(snapshot)
        self._publish()

    async def _on_typing(self, payload: dict[str, Any]) -> None:
        if self._alive:
            self._typing.handle_typing(payload)

    async def _on_stop_typing(self, payload: dict[str, Any]) -> None:
        if self._alive:
            self._typing.handle_stop_typing(payload)

    async def _on_insert(self, message: ChatMessage) -> None:
        if self._alive:
            self._reconciler.handle_remote_insert(message)

    # -- Helpers --

    async def _broadcast(self, event: str, payload: dict[str, Any]) -> None:
        channel = self._channel
        if channel is None or channel.closed:
            raise ChannelClosedError(f"no open channel for {self._session.user_id}")
        await channel.send(event, payload)

    def _set_channel_state(self, state: ChannelState) -> None:
        if state is self._channel_state:
            return
        self._channel_state = state
        self._publish()

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners.values()):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Error in state listener")
