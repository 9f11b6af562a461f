"""chatpulse - async presence, typing and optimistic-message coordination for a chat room."""

from chatpulse._version import __version__
from chatpulse.auth import AuthProvider, InMemoryAuthProvider, SessionCallback
from chatpulse.core.client import ChatClient
from chatpulse.core.presence import PresenceTracker
from chatpulse.core.reconciler import MessageReconciler
from chatpulse.core.session import ChannelSession, StateListener
from chatpulse.core.subscriptions import Subscription, SubscriptionGroup
from chatpulse.core.timeouts import TimeoutRegistry
from chatpulse.core.typing_indicator import TypingCoordinator
from chatpulse.errors import ChannelClosedError, ChatPulseError, StoreError, TransportError
from chatpulse.models import (
    BroadcastEvent,
    ChannelState,
    ChatConfig,
    ChatMessage,
    ChatState,
    MessageStatus,
    PendingSend,
    PresenceInfo,
    Session,
    StopTypingPayload,
    SubscribeStatus,
    TypingPayload,
    TypingUser,
)
from chatpulse.store import InMemoryMessageStore, InsertCallback, MessageStore
from chatpulse.transport import (
    BroadcastCallback,
    InMemoryTransport,
    PresenceSyncCallback,
    RealtimeChannel,
    RealtimeTransport,
    StatusCallback,
)

__all__ = [
    "AuthProvider",
    "BroadcastCallback",
    "BroadcastEvent",
    "ChannelClosedError",
    "ChannelSession",
    "ChannelState",
    "ChatClient",
    "ChatConfig",
    "ChatMessage",
    "ChatPulseError",
    "ChatState",
    "InMemoryAuthProvider",
    "InMemoryMessageStore",
    "InMemoryTransport",
    "InsertCallback",
    "MessageReconciler",
    "MessageStatus",
    "MessageStore",
    "PendingSend",
    "PresenceInfo",
    "PresenceSyncCallback",
    "PresenceTracker",
    "RealtimeChannel",
    "RealtimeTransport",
    "Session",
    "SessionCallback",
    "StateListener",
    "StatusCallback",
    "StopTypingPayload",
    "StoreError",
    "SubscribeStatus",
    "Subscription",
    "SubscriptionGroup",
    "TimeoutRegistry",
    "TransportError",
    "TypingCoordinator",
    "TypingPayload",
    "TypingUser",
    "__version__",
]
