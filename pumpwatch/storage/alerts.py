"""Token -> subscriber watch entries consumed by the market-cap monitor."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from pumpwatch.core.models import AlertSubscription
from pumpwatch.core.types import SubscriberId
from pumpwatch.core.utils import short_addr, utcnow

logger = logging.getLogger(__name__)


class AlertRegistry:
    """Maps a token address to the subscribers watching its market cap.

    Invariant: an entry exists if and only if its subscriber set is
    non-empty. Every compound check-then-delete below is free of ``await``
    and therefore atomic on the event loop.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, AlertSubscription] = {}

    @staticmethod
    def _key(token: str) -> str:
        return token.lower()

    def __len__(self) -> int:
        return len(self._entries)

    def enroll(self, token: str, subscriber_id: SubscriberId) -> bool:
        """Add *subscriber_id* to the token's watchers. Returns True if new."""
        key = self._key(token)
        entry = self._entries.get(key)
        if entry is None:
            entry = AlertSubscription(last_touched_at=self._clock())
            self._entries[key] = entry
        if subscriber_id in entry.subscribers:
            return False
        entry.subscribers.add(subscriber_id)
        logger.info(
            "Subscriber %d watching market cap of %s", subscriber_id, short_addr(key)
        )
        return True

    def unenroll(self, token: str, subscriber_id: SubscriberId) -> bool:
        """Remove one watcher; drops the entry once nobody is left."""
        key = self._key(token)
        entry = self._entries.get(key)
        if entry is None or subscriber_id not in entry.subscribers:
            return False
        entry.subscribers.discard(subscriber_id)
        if not entry.subscribers:
            del self._entries[key]
            logger.info("Market-cap watch on %s removed", short_addr(key))
        return True

    def clear_all(self, subscriber_id: SubscriberId) -> int:
        """Remove a subscriber from every entry. Returns entries touched."""
        removed = 0
        for key in list(self._entries):
            entry = self._entries[key]
            if subscriber_id not in entry.subscribers:
                continue
            entry.subscribers.discard(subscriber_id)
            removed += 1
            if not entry.subscribers:
                del self._entries[key]
        if removed:
            logger.info(
                "Subscriber %d removed from %d market-cap watch(es)",
                subscriber_id,
                removed,
            )
        return removed

    def enroll_everywhere(self, subscriber_id: SubscriberId) -> int:
        """Watch every token already tracked. Returns new enrolments."""
        added = 0
        for entry in self._entries.values():
            if subscriber_id not in entry.subscribers:
                entry.subscribers.add(subscriber_id)
                added += 1
        return added

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_watched(self, token: str) -> bool:
        return self._key(token) in self._entries

    def tokens(self) -> list[str]:
        return list(self._entries)

    def subscribers_of(self, token: str) -> list[SubscriberId]:
        entry = self._entries.get(self._key(token))
        return list(entry.subscribers) if entry else []

    def tokens_for(self, subscriber_id: SubscriberId) -> list[tuple[str, datetime]]:
        return [
            (key, entry.last_touched_at)
            for key, entry in self._entries.items()
            if subscriber_id in entry.subscribers
        ]

    def count_for(self, subscriber_id: SubscriberId) -> int:
        return sum(1 for e in self._entries.values() if subscriber_id in e.subscribers)
