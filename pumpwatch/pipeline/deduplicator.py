"""At-most-once gate for factory deployment events."""

from __future__ import annotations

import logging

from pumpwatch.core.models import DeploymentEvent
from pumpwatch.core.types import DedupKey
from pumpwatch.core.utils import short_addr

logger = logging.getLogger(__name__)


class Deduplicator:
    """Unbounded set of ``(address, amount)`` keys.

    A key is recorded as soon as the event is decoded, before enrichment
    or delivery, and is never removed. A delivery that later fails is
    therefore never retried.
    """

    def __init__(self) -> None:
        self._seen: set[DedupKey] = set()

    def __len__(self) -> int:
        return len(self._seen)

    def seen(self, key: DedupKey) -> bool:
        return key in self._seen

    def check_and_record(self, event: DeploymentEvent) -> bool:
        """Return True the first time an event's key is observed."""
        key = event.dedup_key
        if key in self._seen:
            logger.debug(
                "Duplicate deployment %s amount=%d ignored",
                short_addr(event.address),
                event.amount,
            )
            return False
        self._seen.add(key)
        return True
