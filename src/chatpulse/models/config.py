"""Coordination settings."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class ChatConfig(BaseModel):
    """Room name and typing-indicator timing.

    The receiver expiry must be longer than the sender debounce so that a
    peer typing continuously never drops out of the typing set between
    re-broadcasts, while a lost ``stop_typing`` still heals on its own.
    """

    room_name: str = Field(default="room_one", min_length=1)
    sender_debounce_seconds: float = Field(default=1.0, gt=0.0)
    receiver_expiry_seconds: float = Field(default=3.0, gt=0.0)

    @model_validator(mode="after")
    def _validate_windows(self) -> ChatConfig:
        if self.receiver_expiry_seconds <= self.sender_debounce_seconds:
            msg = (
                "receiver_expiry_seconds must be greater than sender_debounce_seconds "
                f"(got {self.receiver_expiry_seconds} <= {self.sender_debounce_seconds})"
            )
            raise ValueError(msg)
        return self
