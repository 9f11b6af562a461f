"""Immutable snapshot of everything a renderer needs."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from chatpulse.models.enums import ChannelState
from chatpulse.models.events import TypingUser
from chatpulse.models.message import ChatMessage
from chatpulse.models.session import Session


class ChatState(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel_state: ChannelState = ChannelState.DISCONNECTED
    session: Session | None = None
    messages: tuple[ChatMessage, ...] = ()
    typing_users: tuple[TypingUser, ...] = ()
    online_users: frozenset[str] = frozenset()
    draft: str = ""
