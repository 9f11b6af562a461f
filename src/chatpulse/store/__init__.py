"""Persistent message store."""

from chatpulse.store.base import InsertCallback, MessageStore
from chatpulse.store.memory import InMemoryMessageStore

__all__ = ["InMemoryMessageStore", "InsertCallback", "MessageStore"]
