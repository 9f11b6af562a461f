"""All string enums for chatpulse."""

from __future__ import annotations

from enum import StrEnum, unique


@unique
class MessageStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


@unique
class ChannelState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


@unique
class SubscribeStatus(StrEnum):
    """Subscription statuses reported by a realtime channel."""

    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


@unique
class BroadcastEvent(StrEnum):
    TYPING = "typing"
    STOP_TYPING = "stop_typing"
