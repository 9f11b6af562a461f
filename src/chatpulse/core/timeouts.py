"""Keyed timer bookkeeping for debounce and expiry."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger("chatpulse.timeouts")

TimeoutCallback = Callable[[], Awaitable[Any] | Any]

SENDER_DEBOUNCE_KEY = "sender-debounce"


def receiver_expiry_key(user_id: str) -> str:
    return f"receiver-expiry:{user_id}"


class TimeoutRegistry:
    """At most one live timer per key.

    ``set()`` cancels whatever timer is already armed under the key before
    installing the new one, so a superseded timer can never fire. Callbacks
    may be plain functions or coroutine functions; coroutines run as tasks
    owned by the registry and are cancelled by ``clear_all()``.

    Must be used from within a running event loop.
    """

    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Future[Any]] = set()

    def set(self, key: str, delay: float, callback: TimeoutCallback) -> None:
        """Arm *callback* to run after *delay* seconds under *key*."""
        self.clear(key)
        loop = asyncio.get_running_loop()
        self._handles[key] = loop.call_later(delay, self._fire, key, callback)

    def clear(self, key: str) -> None:
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def clear_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def active(self, key: str) -> bool:
        return key in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def _fire(self, key: str, callback: TimeoutCallback) -> None:
        self._handles.pop(key, None)
        try:
            result = callback()
        except Exception:
            logger.exception("Timeout callback for %s failed", key)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(lambda t: self._on_task_done(key, t))

    def _on_task_done(self, key: str, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Timeout callback for %s failed", key, exc_info=exc)
