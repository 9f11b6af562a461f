"""Chat message models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatpulse.models.enums import MessageStatus
from chatpulse.models.session import Session


class ChatMessage(BaseModel):
    """A chat message in the room.

    ``id`` is generated by the authoring client and is the only key used
    for de-duplication.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    display_name: str
    avatar_url: str = ""
    body: str
    sent_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: MessageStatus = MessageStatus.CONFIRMED

    @field_validator("sent_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        # Naive timestamps are UTC so that every sent_at is comparable.
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)

    @classmethod
    def compose(cls, session: Session, body: str, sent_at: datetime) -> ChatMessage:
        """Create a pending message authored by *session*."""
        return cls(
            user_id=session.user_id,
            display_name=session.display_name,
            avatar_url=session.avatar_url,
            body=body,
            sent_at=sent_at,
            status=MessageStatus.PENDING,
        )


@dataclass(frozen=True)
class PendingSend:
    """An optimistic message awaiting its store write."""

    id: str
    original_body: str
