"""Exception hierarchy shared by the core and its backends."""

from __future__ import annotations


class ChatPulseError(Exception):
    """Base exception for all chatpulse errors."""


class StoreError(ChatPulseError):
    """The message store rejected or failed an operation."""


class TransportError(ChatPulseError):
    """The realtime transport failed to deliver or subscribe."""


class ChannelClosedError(TransportError):
    """Operation attempted on a channel that is already closed."""
