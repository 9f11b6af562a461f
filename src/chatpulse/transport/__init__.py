"""Realtime channel transport."""

from chatpulse.transport.base import (
    BroadcastCallback,
    PresenceSyncCallback,
    RealtimeChannel,
    RealtimeTransport,
    StatusCallback,
)
from chatpulse.transport.memory import InMemoryTransport

__all__ = [
    "BroadcastCallback",
    "InMemoryTransport",
    "PresenceSyncCallback",
    "RealtimeChannel",
    "RealtimeTransport",
    "StatusCallback",
]
