"""Per-subscriber filtering, formatting and isolated dispatch."""

from __future__ import annotations

import asyncio
import logging

from pumpwatch.core.models import (
    DeliveryOutcome,
    DeploymentEvent,
    FanoutReport,
    TokenMetadata,
)
from pumpwatch.core.types import DeliveryStatus, SubscriberId
from pumpwatch.core.utils import short_addr
from pumpwatch.notifier.channels import NotificationChannel
from pumpwatch.notifier.messages import format_deployment
from pumpwatch.storage import AlertRegistry, SubscriberRegistry

logger = logging.getLogger(__name__)


class NotificationFanout:
    """Delivers deployment notices and market-cap alerts.

    Every send is bounded by a timeout and isolated: a failure is recorded
    as that subscriber's outcome and the loop moves on.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        subscribers: SubscriberRegistry,
        alerts: AlertRegistry,
        send_timeout: float = 10.0,
        asset_symbol: str = "OKB",
        dry_run: bool = False,
    ) -> None:
        self._channel = channel
        self._subscribers = subscribers
        self._alerts = alerts
        self._send_timeout = send_timeout
        self._asset_symbol = asset_symbol
        self._dry_run = dry_run
        self.notifications_sent = 0
        self.alerts_sent = 0

    async def _deliver(self, subscriber_id: SubscriberId, text: str) -> DeliveryOutcome:
        if self._dry_run:
            logger.info("[DRY-RUN] Would send to %d:\n%s", subscriber_id, text)
            return DeliveryOutcome(subscriber_id, DeliveryStatus.DELIVERED)
        try:
            await asyncio.wait_for(
                self._channel.send(subscriber_id, text), timeout=self._send_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Send to %d timed out after %.1fs", subscriber_id, self._send_timeout
            )
            return DeliveryOutcome(subscriber_id, DeliveryStatus.FAILED, "timeout")
        except Exception as exc:
            logger.warning("Send to %d failed: %s", subscriber_id, exc)
            return DeliveryOutcome(subscriber_id, DeliveryStatus.FAILED, str(exc))
        return DeliveryOutcome(subscriber_id, DeliveryStatus.DELIVERED)

    async def notify_deployment(
        self, event: DeploymentEvent, metadata: TokenMetadata
    ) -> FanoutReport:
        """Push one deployment to every subscriber whose filters accept it."""
        report = FanoutReport(token=event.address)

        for subscriber_id in self._subscribers.subscribers():
            prefs = self._subscribers.prefs(subscriber_id)
            if prefs.require_media_link and not metadata.has_media_link:
                report.add(DeliveryOutcome(subscriber_id, DeliveryStatus.SKIPPED))
                continue

            text = format_deployment(event, metadata, prefs.language, self._asset_symbol)
            outcome = await self._deliver(subscriber_id, text)
            report.add(outcome)
            if not outcome.ok:
                continue

            self.notifications_sent += 1
            # Threshold holders track every token they are shown
            if prefs.mc_threshold_usd:
                self._alerts.enroll(event.address, subscriber_id)

        logger.info(
            "Deployment %s: delivered=%d failed=%d skipped=%d",
            short_addr(event.address),
            report.delivered,
            report.failed,
            report.skipped,
        )
        return report

    async def send_alert(self, subscriber_id: SubscriberId, text: str) -> DeliveryOutcome:
        """Send one market-cap alert."""
        outcome = await self._deliver(subscriber_id, text)
        if outcome.ok:
            self.alerts_sent += 1
        return outcome

    async def close(self) -> None:
        await self._channel.close()
