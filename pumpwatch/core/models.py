"""Domain models used across the application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from pumpwatch.core.types import DedupKey, DeliveryStatus, Language, SubscriberId


class _Unset:
    """Marker for a metadata field the chain did not provide."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def is_unset(value: Any) -> bool:
    return value is UNSET


@dataclass(frozen=True, slots=True)
class DeploymentEvent:
    """A decoded ``Deployed(address,uint256)`` factory log."""

    address: str
    amount: int
    block_number: int
    from_block: int
    to_block: int

    @property
    def dedup_key(self) -> DedupKey:
        return (self.address.lower(), self.amount)


@dataclass(frozen=True, slots=True)
class TokenMetadata:
    """Descriptive fields of a freshly deployed token.

    Every field is independent; a failed or empty read is ``UNSET``.
    """

    symbol: Any = UNSET
    decimals: Any = UNSET
    description: Any = UNSET
    website: Any = UNSET
    telegram: Any = UNSET
    twitter: Any = UNSET

    @property
    def has_media_link(self) -> bool:
        return any(
            not is_unset(v) for v in (self.website, self.telegram, self.twitter)
        )


@dataclass(slots=True)
class SubscriberPrefs:
    """Per-subscriber notification preferences."""

    require_media_link: bool = False
    mc_threshold_usd: int | None = None
    language: Language = Language.EN


@dataclass(slots=True)
class AlertSubscription:
    """Market-cap watch entry for a single token."""

    last_touched_at: datetime
    subscribers: set[SubscriberId] = field(default_factory=set)


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Result of one send attempt to one subscriber."""

    subscriber_id: SubscriberId
    status: DeliveryStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED


@dataclass(slots=True)
class FanoutReport:
    """Aggregated per-subscriber outcomes for one dispatch batch."""

    token: str
    outcomes: list[DeliveryOutcome] = field(default_factory=list)

    def add(self, outcome: DeliveryOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, status: DeliveryStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def delivered(self) -> int:
        return self._count(DeliveryStatus.DELIVERED)

    @property
    def failed(self) -> int:
        return self._count(DeliveryStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(DeliveryStatus.SKIPPED)

    def recipients(self) -> list[SubscriberId]:
        return [o.subscriber_id for o in self.outcomes if o.ok]


@dataclass(slots=True)
class IngestReport:
    """Summary of one successfully scanned block range."""

    from_block: int
    to_block: int
    logs_fetched: int = 0
    malformed: int = 0
    duplicates: int = 0
    processed: int = 0
    fanouts: list[FanoutReport] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PoolState:
    """Raw liquidity pool state as read from chain."""

    token0: str
    token1: str
    reserve0: int
    reserve1: int


@dataclass(frozen=True, slots=True)
class MarketCapQuote:
    """Market cap of one token for one cycle, in reference-asset USD."""

    token: str
    supply: Decimal
    price: Decimal
    market_cap: Decimal


@dataclass(slots=True)
class MarketCapReport:
    """Summary of one real market-cap check cycle."""

    started_at: float
    quotes: list[MarketCapQuote] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    alerts: list[FanoutReport] = field(default_factory=list)

    @property
    def alerts_delivered(self) -> int:
        return sum(r.delivered for r in self.alerts)


@dataclass(slots=True)
class HealthStatus:
    """Application health snapshot."""

    uptime_seconds: float = 0.0
    cursor: int | None = None
    latest_block: int = 0
    subscribers: int = 0
    watched_tokens: int = 0
    events_seen: int = 0
    notifications_sent: int = 0
    alerts_sent: int = 0
    telegram_connected: bool = False
