"""Online-user set driven by presence-sync snapshots."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

logger = logging.getLogger("chatpulse.presence")


class PresenceTracker:
    """Holds the set of online user ids.

    The transport is authoritative for membership: each snapshot replaces
    the set outright, nothing is merged.
    """

    def __init__(self) -> None:
        self._online: frozenset[str] = frozenset()

    @property
    def online(self) -> frozenset[str]:
        return self._online

    def sync(self, snapshot: Mapping[str, Any] | Iterable[str] | None) -> frozenset[str]:
        """Replace the online set with the keys of *snapshot*."""
        self._online = _snapshot_keys(snapshot)
        logger.debug("Presence sync: %d online", len(self._online))
        return self._online

    def clear(self) -> None:
        self._online = frozenset()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._online

    def __len__(self) -> int:
        return len(self._online)


def _snapshot_keys(snapshot: Mapping[str, Any] | Iterable[str] | None) -> frozenset[str]:
    if snapshot is None or isinstance(snapshot, (str, bytes)):
        return frozenset()
    try:
        keys = snapshot.keys() if isinstance(snapshot, Mapping) else snapshot
        return frozenset(k for k in keys if isinstance(k, str) and k)
    except TypeError:
        logger.debug("Ignoring malformed presence snapshot: %r", snapshot)
        return frozenset()
