"""In-memory realtime transport using asyncio mailboxes."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from chatpulse.core.subscriptions import Subscription
from chatpulse.errors import ChannelClosedError, TransportError
from chatpulse.models.enums import SubscribeStatus
from chatpulse.transport.base import (
    BroadcastCallback,
    PresenceSyncCallback,
    RealtimeChannel,
    RealtimeTransport,
    StatusCallback,
)

logger = logging.getLogger("chatpulse.transport")


@dataclass(frozen=True)
class BroadcastRecord:
    """A broadcast as it was sent, kept for inspection."""

    channel: str
    sender: str
    event: str
    payload: dict[str, Any]


class InMemoryTransport(RealtimeTransport):
    """In-process transport connecting every channel opened with the same name.

    Suitable for single-process deployments and tests. Broadcasts are not
    echoed back to the sending channel. Each channel delivers its events
    in order from a background task.

    Attributes:
        subscribe_status: Status reported to newly subscribing channels.
            Set to ``CHANNEL_ERROR`` or ``TIMED_OUT`` to simulate failures.
        history: Every broadcast sent through this transport.
    """

    def __init__(
        self,
        max_queue_size: int = 1000,
        subscribe_status: SubscribeStatus = SubscribeStatus.SUBSCRIBED,
    ) -> None:
        self._max_queue_size = max_queue_size
        self.subscribe_status = subscribe_status
        self.history: list[BroadcastRecord] = []
        self._members: dict[str, set[_MemoryChannel]] = {}
        self._presence: dict[str, dict[str, dict[str, Any]]] = {}
        self._closed = False

    def open_channel(self, name: str, *, presence_key: str) -> RealtimeChannel:
        if self._closed:
            raise TransportError("transport is closed")
        return _MemoryChannel(self, name, presence_key, self._max_queue_size)

    async def close(self) -> None:
        """Close every channel and clean up."""
        self._closed = True
        for members in list(self._members.values()):
            for channel in list(members):
                await channel.close()
        self._members.clear()
        self._presence.clear()

    def presence_state(self, name: str) -> dict[str, dict[str, Any]]:
        return dict(self._presence.get(name, {}))

    def member_count(self, name: str) -> int:
        return len(self._members.get(name, ()))

    def broadcasts(
        self, event: str | None = None, sender: str | None = None
    ) -> list[BroadcastRecord]:
        return [
            r
            for r in self.history
            if (event is None or r.event == event) and (sender is None or r.sender == sender)
        ]

    # -- Internal operations used by channels --

    def _join(self, channel: _MemoryChannel) -> None:
        self._members.setdefault(channel.name, set()).add(channel)
        channel._post_presence(self.presence_state(channel.name))

    def _leave(self, channel: _MemoryChannel, untrack: bool) -> None:
        members = self._members.get(channel.name)
        if members:
            members.discard(channel)
            if not members:
                del self._members[channel.name]
        if untrack:
            presence = self._presence.get(channel.name, {})
            presence.pop(channel.presence_key, None)
            self._sync(channel.name)

    def _track(self, channel: _MemoryChannel, info: dict[str, Any]) -> None:
        self._presence.setdefault(channel.name, {})[channel.presence_key] = dict(info)
        self._sync(channel.name)

    def _sync(self, name: str) -> None:
        snapshot = self.presence_state(name)
        for member in list(self._members.get(name, ())):
            member._post_presence(snapshot)

    def _broadcast(self, sender: _MemoryChannel, event: str, payload: dict[str, Any]) -> None:
        self.history.append(BroadcastRecord(sender.name, sender.presence_key, event, dict(payload)))
        for member in list(self._members.get(sender.name, ())):
            if member is not sender:
                member._post_broadcast(event, dict(payload))


class _MemoryChannel(RealtimeChannel):
    def __init__(
        self,
        transport: InMemoryTransport,
        name: str,
        presence_key: str,
        max_queue_size: int,
    ) -> None:
        super().__init__(name, presence_key)
        self._transport = transport
        self._mailbox = _Mailbox(f"{name}:{presence_key}", max_queue_size)
        self._presence_listeners: dict[str, PresenceSyncCallback] = {}
        self._broadcast_listeners: dict[str, dict[str, BroadcastCallback]] = {}
        self._status_callback: StatusCallback | None = None
        self._joined = False
        self._tracked = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on_presence_sync(self, callback: PresenceSyncCallback) -> Subscription:
        listener_id = uuid4().hex
        self._presence_listeners[listener_id] = callback

        def _detach() -> None:
            self._presence_listeners.pop(listener_id, None)

        return Subscription(_detach, name=f"{self.name}:presence")

    def on_broadcast(self, event: str, callback: BroadcastCallback) -> Subscription:
        listener_id = uuid4().hex
        self._broadcast_listeners.setdefault(event, {})[listener_id] = callback

        def _detach() -> None:
            self._broadcast_listeners.get(event, {}).pop(listener_id, None)

        return Subscription(_detach, name=f"{self.name}:broadcast:{event}")

    async def send(self, event: str, payload: dict[str, Any]) -> None:
        if self._closed:
            raise ChannelClosedError(f"channel {self.name} is closed")
        if not self._joined:
            raise TransportError(f"channel {self.name} is not subscribed")
        self._transport._broadcast(self, event, payload)

    async def track(self, info: dict[str, Any]) -> None:
        if self._closed:
            raise ChannelClosedError(f"channel {self.name} is closed")
        if not self._joined:
            raise TransportError(f"channel {self.name} is not subscribed")
        self._tracked = True
        self._transport._track(self, info)

    async def subscribe(self, callback: StatusCallback) -> None:
        if self._closed:
            raise ChannelClosedError(f"channel {self.name} is closed")
        self._status_callback = callback
        self._mailbox.start()
        status = self._transport.subscribe_status
        if status is SubscribeStatus.SUBSCRIBED:
            self._joined = True
            self._mailbox.post(lambda: self._deliver_status(status, None))
            self._transport._join(self)
        else:
            error = TransportError(f"subscribe to {self.name} failed: {status.value}")
            self._mailbox.post(lambda: self._deliver_status(status, error))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._joined:
            self._joined = False
            self._transport._leave(self, untrack=self._tracked)
        self._presence_listeners.clear()
        self._broadcast_listeners.clear()
        self._status_callback = None
        await self._mailbox.stop()

    def _post_presence(self, snapshot: dict[str, dict[str, Any]]) -> None:
        self._mailbox.post(lambda: self._deliver_presence(snapshot))

    def _post_broadcast(self, event: str, payload: dict[str, Any]) -> None:
        self._mailbox.post(lambda: self._deliver_broadcast(event, payload))

    async def _deliver_status(self, status: SubscribeStatus, error: Exception | None) -> None:
        if self._status_callback is not None:
            await self._status_callback(status, error)

    async def _deliver_presence(self, snapshot: dict[str, dict[str, Any]]) -> None:
        for callback in list(self._presence_listeners.values()):
            await callback(snapshot)

    async def _deliver_broadcast(self, event: str, payload: dict[str, Any]) -> None:
        for callback in list(self._broadcast_listeners.get(event, {}).values()):
            await callback(payload)


class _Mailbox:
    """Ordered delivery queue drained by a background task."""

    def __init__(self, name: str, max_queue_size: int) -> None:
        self.name = name
        self._queue: deque[Callable[[], Awaitable[None]]] = deque()
        self._max_queue_size = max_queue_size
        self._event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    def post(self, delivery: Callable[[], Awaitable[None]]) -> None:
        """Queue a delivery, dropping the oldest if full."""
        if self._stopped:
            return
        while len(self._queue) >= self._max_queue_size:
            self._queue.popleft()
            logger.warning("Mailbox %s full, dropped oldest event", self.name)
        self._queue.append(delivery)
        self._event.set()

    def start(self) -> None:
        if self._task is None and not self._stopped:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        self._stopped = True
        self._queue.clear()
        self._event.set()
        if self._task is not None:
            if self._task is not asyncio.current_task():
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task
            self._task = None

    async def _run(self) -> None:
        while not self._stopped:
            await self._event.wait()
            self._event.clear()

            while self._queue and not self._stopped:
                delivery = self._queue.popleft()
                try:
                    await delivery()
                except Exception:
                    logger.exception("Error delivering event on %s", self.name)
