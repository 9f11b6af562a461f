"""Abstract base classes for realtime pub/sub transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any

from chatpulse.core.subscriptions import Subscription
from chatpulse.models.enums import SubscribeStatus

PresenceSyncCallback = Callable[[dict[str, dict[str, Any]]], Coroutine[Any, Any, None]]
BroadcastCallback = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
StatusCallback = Callable[[SubscribeStatus, Exception | None], Coroutine[Any, Any, None]]


class RealtimeChannel(ABC):
    """One named pub/sub channel as seen by a single client.

    Listeners are registered before ``subscribe()``; each registration
    returns a ``Subscription`` that detaches it.
    """

    def __init__(self, name: str, presence_key: str) -> None:
        self.name = name
        self.presence_key = presence_key

    @abstractmethod
    def on_presence_sync(self, callback: PresenceSyncCallback) -> Subscription:
        """Register for presence snapshots, keyed by presence key."""
        ...

    @abstractmethod
    def on_broadcast(self, event: str, callback: BroadcastCallback) -> Subscription:
        """Register for broadcast events named *event*."""
        ...

    @abstractmethod
    async def send(self, event: str, payload: dict[str, Any]) -> None:
        """Broadcast *payload* under *event* to the other subscribers.

        Raises:
            TransportError: If the broadcast could not be sent.
        """
        ...

    @abstractmethod
    async def track(self, info: dict[str, Any]) -> None:
        """Announce this client's presence with *info*."""
        ...

    @abstractmethod
    async def subscribe(self, callback: StatusCallback) -> None:
        """Join the channel; *callback* receives every status change."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Leave the channel and release its resources."""
        ...

    @property
    @abstractmethod
    def closed(self) -> bool: ...


class RealtimeTransport(ABC):
    """Factory for realtime channels.

    Implement this to plug in a hosted realtime service or a websocket
    gateway. The library ships with ``InMemoryTransport`` for
    single-process deployments and tests.
    """

    @abstractmethod
    def open_channel(self, name: str, *, presence_key: str) -> RealtimeChannel:
        """Create a channel handle for *name* with presence keyed by *presence_key*."""
        ...

    async def close(self) -> None:
        """Clean up resources.

        Override this method in subclasses that need cleanup.
        The default implementation does nothing.
        """
        return None
