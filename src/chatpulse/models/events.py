"""Broadcast and presence payloads exchanged over the realtime channel.

Payload field names follow the camelCase wire shape; Python attributes
are snake_case and the models accept either.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chatpulse.models.session import Session


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class TypingPayload(_WireModel):
    user_id: str = Field(alias="userId", min_length=1)
    user_email: str | None = Field(default=None, alias="userEmail")
    user_name: str = Field(default="User", alias="userName")
    user_avatar: str = Field(default="", alias="userAvatar")
    is_typing: bool = Field(default=True, alias="isTyping")

    @classmethod
    def for_session(cls, session: Session, is_typing: bool = True) -> TypingPayload:
        return cls(
            user_id=session.user_id,
            user_email=session.email,
            user_name=session.display_name,
            user_avatar=session.avatar_url,
            is_typing=is_typing,
        )


class StopTypingPayload(_WireModel):
    user_id: str = Field(alias="userId", min_length=1)


class PresenceInfo(_WireModel):
    """What a client announces about itself when it tracks presence."""

    user: str
    name: str
    email: str | None = None
    avatar: str = ""

    @classmethod
    def for_session(cls, session: Session) -> PresenceInfo:
        return cls(
            user=session.user_id,
            name=session.display_name,
            email=session.email,
            avatar=session.avatar_url,
        )


class TypingUser(BaseModel):
    """A peer currently shown as typing."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    display_name: str
    avatar_url: str = ""
    email: str | None = None
    last_seen_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
