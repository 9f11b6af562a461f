"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from chatpulse.core.timeouts import TimeoutRegistry
from chatpulse.core.typing_indicator import TypingCoordinator
from chatpulse.errors import StoreError, TransportError
from chatpulse.models.config import ChatConfig
from chatpulse.models.message import ChatMessage
from chatpulse.models.session import Session
from chatpulse.store.memory import InMemoryMessageStore
from chatpulse.transport.memory import InMemoryTransport

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class RecordingBroadcast:
    """Stands in for a channel's send(), recording every broadcast."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.fail = False

    async def __call__(self, event: str, payload: dict[str, Any]) -> None:
        if self.fail:
            raise TransportError("broadcast failed")
        self.sent.append((event, payload))

    def events(self) -> list[str]:
        return [event for event, _ in self.sent]


class FailingStore(InMemoryMessageStore):
    """Store whose writes fail, either by raising or by returning False."""

    def __init__(self, raise_error: bool = True) -> None:
        super().__init__()
        self.raise_error = raise_error
        self.attempts: list[ChatMessage] = []

    async def insert_message(self, message: ChatMessage) -> bool:
        self.attempts.append(message)
        if self.raise_error:
            raise StoreError("insert rejected")
        return False


class GatedStore(InMemoryMessageStore):
    """Store whose writes wait until ``release()`` is called."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.fail = False

    def release(self, fail: bool = False) -> None:
        self.fail = fail
        self.gate.set()

    async def insert_message(self, message: ChatMessage) -> bool:
        await self.gate.wait()
        if self.fail:
            raise StoreError("insert rejected")
        return await super().insert_message(message)


class GatedListStore(InMemoryMessageStore):
    """Store whose listing snapshots the rows, then waits for ``release()``."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.listing = asyncio.Event()

    def release(self) -> None:
        self.gate.set()

    async def list_messages(self) -> list[ChatMessage]:
        rows = await super().list_messages()
        self.listing.set()
        await self.gate.wait()
        return rows


@pytest.fixture
def advance() -> Callable[[int], Coroutine[Any, Any, None]]:
    """Yield control to let pending tasks run without real delay.

    Replaces ``await asyncio.sleep(0.05)`` patterns with zero-delay
    event loop yields::

        await advance()       # 5 yields (default)
        await advance(10)     # 10 yields for heavier workloads
    """

    async def _advance(n: int = 5) -> None:
        for _ in range(n):
            await asyncio.sleep(0)

    return _advance


@pytest.fixture
def alice() -> Session:
    return Session(
        user_id="u-alice",
        display_name="Alice",
        email="alice@example.com",
        avatar_url="https://example.com/alice.png",
    )


@pytest.fixture
def bob() -> Session:
    return Session(user_id="u-bob", display_name="Bob", email="bob@example.com")


@pytest.fixture
def fast_config() -> ChatConfig:
    """Typing windows scaled down so timer tests run quickly."""
    return ChatConfig(sender_debounce_seconds=0.05, receiver_expiry_seconds=0.15)


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def registry() -> TimeoutRegistry:
    return TimeoutRegistry()


@pytest.fixture
def broadcast() -> RecordingBroadcast:
    return RecordingBroadcast()


@pytest.fixture
def coordinator(
    alice: Session,
    registry: TimeoutRegistry,
    broadcast: RecordingBroadcast,
    fast_config: ChatConfig,
) -> TypingCoordinator:
    return TypingCoordinator(alice, registry, broadcast, fast_config)


@pytest.fixture
def make_message() -> Callable[..., ChatMessage]:
    def _make(
        user_id: str = "u-bob",
        body: str = "hello",
        offset: float = 0.0,
        **kwargs: Any,
    ) -> ChatMessage:
        return ChatMessage(
            user_id=user_id,
            display_name=kwargs.pop("display_name", user_id),
            body=body,
            sent_at=T0 + timedelta(seconds=offset),
            **kwargs,
        )

    return _make
