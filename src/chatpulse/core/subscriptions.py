"""Explicit listener registrations and their disposal."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger("chatpulse.subscriptions")


class Subscription:
    """Handle returned by every listener registration.

    ``unsubscribe()`` detaches the listener and is safe to call more than
    once.
    """

    def __init__(self, detach: Callable[[], None], name: str = "") -> None:
        self._detach: Callable[[], None] | None = detach
        self.name = name

    @property
    def active(self) -> bool:
        return self._detach is not None

    def unsubscribe(self) -> None:
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()


class SubscriptionGroup:
    """Disposer list: collects subscriptions and releases them together."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def add(self, subscription: Subscription) -> Subscription:
        self._subscriptions.append(subscription)
        return subscription

    def close(self) -> None:
        """Unsubscribe everything, continuing past individual failures."""
        subscriptions, self._subscriptions = self._subscriptions, []
        for sub in reversed(subscriptions):
            try:
                sub.unsubscribe()
            except Exception:
                logger.exception("Failed to release subscription %s", sub.name or sub)

    def __len__(self) -> int:
        return len(self._subscriptions)
