"""Periodic market-cap polling for watched tokens.

Price comes from the token's own V2-style pool, expressed in the reference
asset, and the reference asset is taken to be worth exactly 1 USD. There is
no cooldown: a market cap that stays above a subscriber's threshold alerts
that subscriber again on every real check.
"""

from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal
from typing import Any, Callable, Protocol

from pumpwatch.core.errors import ChainReadError
from pumpwatch.core.models import (
    DeliveryOutcome,
    FanoutReport,
    MarketCapQuote,
    MarketCapReport,
    PoolState,
)
from pumpwatch.core.types import DeliveryStatus, SubscriberId
from pumpwatch.core.utils import short_addr, to_decimal_units
from pumpwatch.notifier.messages import format_market_cap_alert
from pumpwatch.storage import AlertRegistry, SubscriberRegistry

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 18
UNKNOWN_SYMBOL = "Unknown"


class MarketReader(Protocol):
    async def read_token(self, address: str, name: str) -> Any: ...

    async def get_pool_state(self, pool_address: str) -> PoolState: ...


class AlertSender(Protocol):
    async def send_alert(self, subscriber_id: SubscriberId, text: str) -> DeliveryOutcome: ...


def reference_price(pool: PoolState, reference_asset: str) -> Decimal | None:
    """Price of the pool's other token in units of *reference_asset*.

    Returns None when the reference asset is in neither slot or when either
    reserve is empty.
    """
    ref = reference_asset.lower()
    if pool.token0.lower() == ref:
        ref_reserve, token_reserve = pool.reserve0, pool.reserve1
    elif pool.token1.lower() == ref:
        ref_reserve, token_reserve = pool.reserve1, pool.reserve0
    else:
        return None
    if ref_reserve <= 0 or token_reserve <= 0:
        return None
    return Decimal(ref_reserve) / Decimal(token_reserve)


class MarketCapMonitor:
    """Recomputes market caps and alerts subscribers over their threshold.

    ``check`` may be called as often as you like; it performs a real check
    only when ``interval`` seconds have passed since the previous one.
    """

    def __init__(
        self,
        chain: MarketReader,
        alerts: AlertRegistry,
        subscribers: SubscriberRegistry,
        sender: AlertSender,
        reference_asset: str,
        interval: float = 300.0,
        max_concurrency: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._chain = chain
        self._alerts = alerts
        self._subscribers = subscribers
        self._sender = sender
        self._reference_asset = reference_asset
        self._interval = interval
        self._clock = clock
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._last_check: float | None = None
        self.checks_run = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def last_check(self) -> float | None:
        return self._last_check

    async def check(self, now: float | None = None) -> MarketCapReport | None:
        """Run one cycle unless throttled. Returns None when throttled."""
        now = self._clock() if now is None else now
        if self._last_check is not None and now - self._last_check < self._interval:
            return None
        self._last_check = now
        self.checks_run += 1

        tokens = self._alerts.tokens()
        report = MarketCapReport(started_at=now)
        if not tokens:
            logger.debug("Market-cap check: nothing watched")
            return report

        logger.info("Checking market cap of %d watched token(s)", len(tokens))
        await asyncio.gather(*(self._check_token(token, report) for token in tokens))
        logger.info(
            "Market-cap check done: quoted=%d skipped=%d failed=%d alerts=%d",
            len(report.quotes),
            len(report.skipped),
            len(report.failed),
            report.alerts_delivered,
        )
        return report

    # ------------------------------------------------------------------
    # Per-token work
    # ------------------------------------------------------------------

    async def _check_token(self, token: str, report: MarketCapReport) -> None:
        try:
            async with self._semaphore:
                quote = await self.quote(token)
                if quote is None:
                    report.skipped.append(token)
                    return
                report.quotes.append(quote)
                logger.info(
                    "Token %s market cap $%.2f", short_addr(token), quote.market_cap
                )

                due = self._due_subscribers(token, quote.market_cap)
                if not due:
                    return
                symbol = await self._symbol(token)

            report.alerts.append(await self._send_alerts(token, symbol, quote, due))
        except Exception:
            logger.exception("Market-cap check for %s failed", token)
            report.failed.append(token)

    async def quote(self, token: str) -> MarketCapQuote | None:
        """Fresh market cap for *token*, or None if it cannot be priced now."""
        supply, decimals = await asyncio.gather(
            self._total_supply(token), self._decimals(token)
        )
        try:
            pool = await self._chain.get_pool_state(token)
        except ChainReadError as exc:
            logger.info("No price for %s this cycle: %s", short_addr(token), exc)
            return None

        price = reference_price(pool, self._reference_asset)
        if price is None:
            logger.debug("Pool of %s has no usable reference reserve", short_addr(token))
            return None

        adjusted = to_decimal_units(supply, decimals)
        return MarketCapQuote(
            token=token, supply=adjusted, price=price, market_cap=adjusted * price
        )

    async def _total_supply(self, token: str) -> int:
        try:
            value = await self._chain.read_token(token, "totalSupply")
            return int(value)
        except Exception as exc:
            logger.debug("totalSupply unavailable for %s: %s", short_addr(token), exc)
            return 0

    async def _decimals(self, token: str) -> int:
        try:
            value = await self._chain.read_token(token, "decimals")
            return int(value)
        except Exception as exc:
            logger.debug("decimals unavailable for %s: %s", short_addr(token), exc)
            return DEFAULT_DECIMALS

    async def _symbol(self, token: str) -> str:
        try:
            value = await self._chain.read_token(token, "symbol")
        except Exception:
            return UNKNOWN_SYMBOL
        text = str(value).strip() if value is not None else ""
        return text or UNKNOWN_SYMBOL

    def _due_subscribers(self, token: str, market_cap: Decimal) -> list[SubscriberId]:
        due: list[SubscriberId] = []
        for subscriber_id in self._alerts.subscribers_of(token):
            threshold = self._subscribers.prefs(subscriber_id).mc_threshold_usd
            if threshold and market_cap >= threshold:
                due.append(subscriber_id)
        return due

    async def _send_alerts(
        self,
        token: str,
        symbol: str,
        quote: MarketCapQuote,
        due: list[SubscriberId],
    ) -> FanoutReport:
        batch = FanoutReport(token=token)
        for subscriber_id in due:
            try:
                prefs = self._subscribers.prefs(subscriber_id)
                threshold = prefs.mc_threshold_usd
                if not threshold:
                    # Cleared while earlier alerts in this batch were sending
                    batch.add(DeliveryOutcome(subscriber_id, DeliveryStatus.SKIPPED))
                    continue
                text = format_market_cap_alert(
                    token, symbol, quote.market_cap, threshold, prefs.language
                )
                outcome = await self._sender.send_alert(subscriber_id, text)
            except Exception as exc:
                logger.exception("Alert to %d for %s failed", subscriber_id, token)
                outcome = DeliveryOutcome(subscriber_id, DeliveryStatus.FAILED, str(exc))
            batch.add(outcome)
            if outcome.ok:
                logger.info(
                    "Market-cap alert sent to %d: %s $%.2f",
                    subscriber_id,
                    symbol,
                    quote.market_cap,
                )
        return batch
