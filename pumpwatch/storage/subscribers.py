"""In-memory subscriber identities and their preferences."""

from __future__ import annotations

import logging
import math

from pumpwatch.core.models import SubscriberPrefs
from pumpwatch.core.types import Language, SubscriberId

logger = logging.getLogger(__name__)


class SubscriberRegistry:
    """Opted-in subscribers plus a lazily created preferences map.

    All mutations are synchronous, so they are visible to the very next
    fanout or market-cap cycle and can never interleave with each other
    on the event loop.
    """

    def __init__(self) -> None:
        self._subscribers: set[SubscriberId] = set()
        self._prefs: dict[SubscriberId, SubscriberPrefs] = {}

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber_id: object) -> bool:
        return subscriber_id in self._subscribers

    def subscribe(self, subscriber_id: SubscriberId) -> SubscriberPrefs:
        """Opt a subscriber in; idempotent."""
        if subscriber_id not in self._subscribers:
            self._subscribers.add(subscriber_id)
            logger.info("Subscriber %d opted in (%d total)", subscriber_id, len(self))
        return self.prefs(subscriber_id)

    def unsubscribe(self, subscriber_id: SubscriberId) -> bool:
        """Stop deployment pushes; preferences are kept for a later opt-in."""
        if subscriber_id not in self._subscribers:
            return False
        self._subscribers.discard(subscriber_id)
        logger.info("Subscriber %d opted out (%d total)", subscriber_id, len(self))
        return True

    def is_subscribed(self, subscriber_id: SubscriberId) -> bool:
        return subscriber_id in self._subscribers

    def subscribers(self) -> list[SubscriberId]:
        """Snapshot safe to iterate across ``await`` points."""
        return list(self._subscribers)

    def prefs(self, subscriber_id: SubscriberId) -> SubscriberPrefs:
        prefs = self._prefs.get(subscriber_id)
        if prefs is None:
            prefs = SubscriberPrefs()
            self._prefs[subscriber_id] = prefs
        return prefs

    # ------------------------------------------------------------------
    # Preference mutations
    # ------------------------------------------------------------------

    def set_language(self, subscriber_id: SubscriberId, tag: str | None) -> Language:
        language = Language.parse(tag)
        self.prefs(subscriber_id).language = language
        return language

    def toggle_media_filter(self, subscriber_id: SubscriberId) -> bool:
        prefs = self.prefs(subscriber_id)
        prefs.require_media_link = not prefs.require_media_link
        return prefs.require_media_link

    def set_threshold(self, subscriber_id: SubscriberId, value: float | int) -> int:
        """Set a positive USD market-cap threshold (fractional part dropped)."""
        if isinstance(value, bool) or not math.isfinite(value) or value <= 0:
            raise ValueError(f"Threshold must be a positive number, got {value!r}")
        threshold = math.floor(value)
        if threshold <= 0:
            raise ValueError(f"Threshold must be at least 1, got {value!r}")
        self.prefs(subscriber_id).mc_threshold_usd = threshold
        logger.info("Subscriber %d threshold set to $%d", subscriber_id, threshold)
        return threshold

    def clear_threshold(self, subscriber_id: SubscriberId) -> None:
        self.prefs(subscriber_id).mc_threshold_usd = None
