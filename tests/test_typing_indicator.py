"""Tests for TypingCoordinator."""

from __future__ import annotations

import asyncio
import logging
import time

import pytest

from chatpulse.core.timeouts import SENDER_DEBOUNCE_KEY, TimeoutRegistry, receiver_expiry_key
from chatpulse.core.typing_indicator import TypingCoordinator
from chatpulse.models.config import ChatConfig
from chatpulse.models.session import Session
from tests.conftest import RecordingBroadcast

BOB_TYPING = {"userId": "u-bob", "userName": "Bob", "userAvatar": "", "isTyping": True}


class TestSenderSide:
    async def test_notify_typing_broadcasts_immediately(
        self, coordinator: TypingCoordinator, broadcast: RecordingBroadcast
    ) -> None:
        await coordinator.notify_typing()
        assert broadcast.events() == ["typing"]
        _, payload = broadcast.sent[0]
        assert payload["userId"] == "u-alice"
        assert payload["userName"] == "Alice"
        assert payload["isTyping"] is True

    async def test_every_keystroke_rebroadcasts(
        self, coordinator: TypingCoordinator, broadcast: RecordingBroadcast
    ) -> None:
        for _ in range(3):
            await coordinator.notify_typing()
        assert broadcast.events() == ["typing", "typing", "typing"]

    async def test_stop_after_quiet_period(
        self,
        coordinator: TypingCoordinator,
        broadcast: RecordingBroadcast,
        registry: TimeoutRegistry,
    ) -> None:
        await coordinator.notify_typing()
        assert registry.active(SENDER_DEBOUNCE_KEY)

        await asyncio.sleep(0.12)

        assert broadcast.events() == ["typing", "stop_typing"]
        assert broadcast.sent[1][1] == {"userId": "u-alice"}
        assert not registry.active(SENDER_DEBOUNCE_KEY)

    async def test_keystroke_after_timer_fired_suppresses_stale_stop(
        self,
        coordinator: TypingCoordinator,
        broadcast: RecordingBroadcast,
        registry: TimeoutRegistry,
    ) -> None:
        await coordinator.notify_typing()
        # The debounce timer has fired and queued its stop, but that task
        # has not run yet when the next keystroke arrives.
        registry.clear(SENDER_DEBOUNCE_KEY)
        stale_stop = asyncio.ensure_future(coordinator._debounce_elapsed())
        await coordinator.notify_typing()
        await stale_stop

        assert broadcast.events() == ["typing", "typing"]
        assert registry.active(SENDER_DEBOUNCE_KEY)

    async def test_continuous_typing_never_interleaves_stop(
        self, coordinator: TypingCoordinator, broadcast: RecordingBroadcast
    ) -> None:
        # Keystrokes arrive faster than the 0.05s debounce.
        for _ in range(6):
            await coordinator.notify_typing()
            await asyncio.sleep(0.02)
        assert "stop_typing" not in broadcast.events()

        await asyncio.sleep(0.1)
        assert broadcast.events().count("stop_typing") == 1
        assert broadcast.events()[-1] == "stop_typing"

    async def test_pause_sends_exactly_one_stop(
        self, coordinator: TypingCoordinator, broadcast: RecordingBroadcast
    ) -> None:
        await coordinator.notify_typing()
        # Pause well past the debounce window.
        await asyncio.sleep(0.06 * 4)
        assert broadcast.events().count("stop_typing") == 1

    async def test_explicit_stop_cancels_debounce(
        self,
        coordinator: TypingCoordinator,
        broadcast: RecordingBroadcast,
        registry: TimeoutRegistry,
    ) -> None:
        await coordinator.notify_typing()
        await coordinator.notify_stop_typing()
        assert not registry.active(SENDER_DEBOUNCE_KEY)

        await asyncio.sleep(0.1)
        assert broadcast.events() == ["typing", "stop_typing"]

    async def test_input_change_and_blur(
        self, coordinator: TypingCoordinator, broadcast: RecordingBroadcast
    ) -> None:
        await coordinator.handle_input_change("h")
        await coordinator.handle_input_change("")
        await coordinator.handle_input_change("hi")
        await coordinator.handle_blur()
        assert broadcast.events() == ["typing", "stop_typing", "typing", "stop_typing"]

    async def test_broadcast_failure_is_logged_not_raised(
        self,
        coordinator: TypingCoordinator,
        broadcast: RecordingBroadcast,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        broadcast.fail = True
        with caplog.at_level(logging.WARNING, logger="chatpulse.typing"):
            await coordinator.notify_typing()
            await coordinator.notify_stop_typing()
        assert len([r for r in caplog.records if "failed" in r.getMessage()]) == 2


class TestReceiverSide:
    async def test_typing_adds_peer(self, coordinator: TypingCoordinator) -> None:
        coordinator.handle_typing(BOB_TYPING)
        users = coordinator.typing_users
        assert [u.user_id for u in users] == ["u-bob"]
        assert users[0].display_name == "Bob"
        assert coordinator.is_typing("u-bob")

    async def test_self_is_never_added(self, coordinator: TypingCoordinator) -> None:
        coordinator.handle_typing({"userId": "u-alice", "userName": "Alice", "isTyping": True})
        assert coordinator.typing_users == ()

    async def test_self_stop_is_ignored(self, coordinator: TypingCoordinator) -> None:
        coordinator.handle_typing(BOB_TYPING)
        coordinator.handle_stop_typing({"userId": "u-alice"})
        assert coordinator.is_typing("u-bob")

    async def test_stop_removes_peer_and_timer(
        self, coordinator: TypingCoordinator, registry: TimeoutRegistry
    ) -> None:
        coordinator.handle_typing(BOB_TYPING)
        assert registry.active(receiver_expiry_key("u-bob"))

        coordinator.handle_stop_typing({"userId": "u-bob"})

        assert coordinator.typing_users == ()
        assert not registry.active(receiver_expiry_key("u-bob"))

    async def test_typing_false_removes_peer(self, coordinator: TypingCoordinator) -> None:
        coordinator.handle_typing(BOB_TYPING)
        coordinator.handle_typing({**BOB_TYPING, "isTyping": False})
        assert coordinator.typing_users == ()

    async def test_entry_expires_after_receiver_window(
        self, coordinator: TypingCoordinator
    ) -> None:
        coordinator.handle_typing(BOB_TYPING)
        started = time.monotonic()
        while coordinator.is_typing("u-bob") and time.monotonic() - started < 1.0:
            await asyncio.sleep(0.005)
        elapsed = time.monotonic() - started

        assert not coordinator.is_typing("u-bob")
        assert 0.145 <= elapsed < 0.4

    async def test_refresh_resets_expiry(self, coordinator: TypingCoordinator) -> None:
        coordinator.handle_typing(BOB_TYPING)
        first_seen = coordinator.typing_users[0].last_seen_at
        await asyncio.sleep(0.1)
        coordinator.handle_typing(BOB_TYPING)
        await asyncio.sleep(0.1)

        # 0.2s after the first signal but only 0.1s after the refresh.
        assert coordinator.is_typing("u-bob")
        assert coordinator.typing_users[0].last_seen_at > first_seen

        await asyncio.sleep(0.15)
        assert not coordinator.is_typing("u-bob")

    @pytest.mark.parametrize(
        "payload",
        [{}, {"userName": "Nobody"}, {"userId": ""}, {"userId": None}],
    )
    async def test_malformed_payloads_ignored(
        self, coordinator: TypingCoordinator, payload: dict[str, object]
    ) -> None:
        coordinator.handle_typing(payload)
        coordinator.handle_stop_typing(payload)
        assert coordinator.typing_users == ()

    async def test_remove_unknown_user(self, coordinator: TypingCoordinator) -> None:
        assert coordinator.remove("u-nobody") is False

    async def test_clear(
        self, coordinator: TypingCoordinator, registry: TimeoutRegistry
    ) -> None:
        coordinator.handle_typing(BOB_TYPING)
        coordinator.handle_typing({"userId": "u-carol", "userName": "Carol"})
        await coordinator.notify_typing()

        coordinator.clear()

        assert coordinator.typing_users == ()
        assert len(registry) == 0

    async def test_on_change_notified(
        self, alice: Session, registry: TimeoutRegistry, broadcast: RecordingBroadcast
    ) -> None:
        changes: list[int] = []
        coordinator = TypingCoordinator(
            alice,
            registry,
            broadcast,
            ChatConfig(sender_debounce_seconds=0.05, receiver_expiry_seconds=0.15),
            on_change=lambda: changes.append(1),
        )
        coordinator.handle_typing(BOB_TYPING)
        coordinator.handle_stop_typing({"userId": "u-bob"})
        coordinator.handle_stop_typing({"userId": "u-bob"})
        assert len(changes) == 2
