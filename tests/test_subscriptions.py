"""Tests for Subscription and SubscriptionGroup."""

from __future__ import annotations

import logging

import pytest

from chatpulse.core.subscriptions import Subscription, SubscriptionGroup


class TestSubscription:
    def test_unsubscribe_detaches_once(self) -> None:
        calls: list[int] = []
        sub = Subscription(lambda: calls.append(1))
        assert sub.active

        sub.unsubscribe()
        sub.unsubscribe()

        assert calls == [1]
        assert not sub.active


class TestSubscriptionGroup:
    def test_close_releases_all_in_reverse_order(self) -> None:
        order: list[str] = []
        group = SubscriptionGroup()
        group.add(Subscription(lambda: order.append("first")))
        group.add(Subscription(lambda: order.append("second")))
        assert len(group) == 2

        group.close()

        assert order == ["second", "first"]
        assert len(group) == 0

    def test_close_continues_past_failures(self, caplog: pytest.LogCaptureFixture) -> None:
        released: list[str] = []

        def fail() -> None:
            raise RuntimeError("detach failed")

        group = SubscriptionGroup()
        group.add(Subscription(lambda: released.append("ok")))
        group.add(Subscription(fail, name="broken"))

        with caplog.at_level(logging.ERROR, logger="chatpulse.subscriptions"):
            group.close()

        assert released == ["ok"]
        assert any("broken" in r.getMessage() for r in caplog.records)
