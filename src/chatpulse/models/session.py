"""Authenticated session model."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

DEFAULT_DISPLAY_NAME = "User"


class Session(BaseModel):
    """Identity of the signed-in user.

    Sessions are immutable and replaced wholesale whenever the auth
    provider reports a change. ``None`` in place of a session means the
    user is signed out.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    display_name: str = DEFAULT_DISPLAY_NAME
    email: str | None = None
    avatar_url: str = ""

    @classmethod
    def from_user_metadata(cls, user_id: str, metadata: Mapping[str, Any] | None) -> Session:
        """Build a session from an OAuth-style ``user_metadata`` mapping.

        The display name falls back from ``full_name`` to ``name`` to
        ``"User"``; the avatar from ``avatar_url`` to ``avatar`` to an
        empty string.
        """
        meta = metadata or {}
        return cls(
            user_id=user_id,
            display_name=meta.get("full_name") or meta.get("name") or DEFAULT_DISPLAY_NAME,
            email=meta.get("email"),
            avatar_url=meta.get("avatar_url") or meta.get("avatar") or "",
        )
