"""Data models."""

from chatpulse.models.config import ChatConfig
from chatpulse.models.enums import BroadcastEvent, ChannelState, MessageStatus, SubscribeStatus
from chatpulse.models.events import PresenceInfo, StopTypingPayload, TypingPayload, TypingUser
from chatpulse.models.message import ChatMessage, PendingSend
from chatpulse.models.session import Session
from chatpulse.models.state import ChatState

__all__ = [
    "BroadcastEvent",
    "ChannelState",
    "ChatConfig",
    "ChatMessage",
    "ChatState",
    "MessageStatus",
    "PendingSend",
    "PresenceInfo",
    "Session",
    "StopTypingPayload",
    "SubscribeStatus",
    "TypingPayload",
    "TypingUser",
]
