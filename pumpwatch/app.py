"""Main application entry point: wires and runs all components.

Usage:
    python -m pumpwatch.app
    python -m pumpwatch.app --debug
    python -m pumpwatch.app --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import time
from typing import Any

from aiohttp import web
from prometheus_client import Counter, Gauge, start_http_server
from telethon import TelegramClient

from pumpwatch.chain import ChainClient
from pumpwatch.config import AppConfig
from pumpwatch.core.models import DeploymentEvent, FanoutReport, HealthStatus, TokenMetadata
from pumpwatch.core.utils import setup_logging
from pumpwatch.listener import BlockFeed, BotCommands, CommandListener
from pumpwatch.monitor import MarketCapMonitor
from pumpwatch.notifier import (
    BotApiChannel,
    NotificationChannel,
    NotificationFanout,
    TelethonChannel,
)
from pumpwatch.pipeline import Deduplicator, EventIngestor, MetadataEnricher
from pumpwatch.storage import AlertRegistry, SubscriberRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Prometheus metrics
# ---------------------------------------------------------------------------
DEPLOYMENTS_TOTAL = Counter(
    "pumpwatch_deployments_total",
    "New (non-duplicate) factory deployments processed",
)
NOTIFICATIONS_TOTAL = Counter(
    "pumpwatch_notifications_total",
    "Per-subscriber deployment notifications by outcome",
    ["status"],
)
MC_ALERTS_TOTAL = Counter(
    "pumpwatch_mc_alerts_total",
    "Market-cap alerts delivered",
)
CURSOR_GAUGE = Gauge(
    "pumpwatch_cursor_block",
    "Last fully scanned block",
)
WATCHED_GAUGE = Gauge(
    "pumpwatch_watched_tokens",
    "Tokens with at least one market-cap watcher",
)


class _MeteredFanout:
    """Records fanout outcomes as metrics before handing them back."""

    def __init__(self, fanout: NotificationFanout) -> None:
        self._fanout = fanout

    async def notify_deployment(
        self, event: DeploymentEvent, metadata: TokenMetadata
    ) -> FanoutReport:
        DEPLOYMENTS_TOTAL.inc()
        report = await self._fanout.notify_deployment(event, metadata)
        for outcome in report.outcomes:
            NOTIFICATIONS_TOTAL.labels(status=str(outcome.status)).inc()
        return report


class PumpWatchApp:
    """Top-level orchestrator: block feed -> ingestor -> enricher -> fanout, plus the market-cap loop."""

    def __init__(self, config: AppConfig, dry_run: bool = False) -> None:
        self._config = config
        self._dry_run = dry_run
        self._start_time = time.monotonic()

        # Owned stores, created once and injected everywhere
        self.subscribers = SubscriberRegistry()
        self.alerts = AlertRegistry()
        self.deduplicator = Deduplicator()

        self._chain = ChainClient(config.chain)
        self._client: TelegramClient | None = None
        self._fanout: NotificationFanout | None = None
        self._ingestor: EventIngestor | None = None
        self._monitor: MarketCapMonitor | None = None
        self._feed: BlockFeed | None = None

        # Background tasks
        self._tasks: list[asyncio.Task[Any]] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Initialize all components and begin processing."""
        logger.info("Starting PumpWatch (dry_run=%s)", self._dry_run)
        cfg = self._config

        # 1. Telegram bot session (commands in, notifications out)
        self._client = TelegramClient(
            cfg.telegram.session_name,
            cfg.telegram.api_id,
            cfg.telegram.api_hash,
            auto_reconnect=True,
            retry_delay=5,
            connection_retries=10,
        )
        await self._client.start(bot_token=cfg.telegram.bot_token)
        me = await self._client.get_me()
        logger.info("Bot authenticated as @%s (id=%d)", me.username, me.id)

        commands = BotCommands(
            self.subscribers, self.alerts, cfg.market_cap.check_interval_seconds
        )
        CommandListener(self._client, commands).register()

        # 2. Delivery
        channel: NotificationChannel
        if cfg.telegram.backend == "botapi":
            channel = BotApiChannel(cfg.telegram.bot_token, cfg.telegram.send_timeout_seconds)
        else:
            channel = TelethonChannel(self._client)
        self._fanout = NotificationFanout(
            channel,
            self.subscribers,
            self.alerts,
            send_timeout=cfg.telegram.send_timeout_seconds,
            asset_symbol=cfg.chain.reference_asset_symbol,
            dry_run=self._dry_run,
        )

        # 3. Deployment pipeline
        self._ingestor = EventIngestor(
            source=self._chain,
            deduplicator=self.deduplicator,
            enricher=MetadataEnricher(self._chain),
            sink=_MeteredFanout(self._fanout),
        )
        self._feed = BlockFeed(
            self._chain, self._on_block, poll_interval=cfg.chain.block_poll_seconds
        )

        # 4. Market-cap monitor
        self._monitor = MarketCapMonitor(
            chain=self._chain,
            alerts=self.alerts,
            subscribers=self.subscribers,
            sender=self._fanout,
            reference_asset=cfg.chain.reference_asset_address,
            interval=cfg.market_cap.check_interval_seconds,
            max_concurrency=cfg.market_cap.max_concurrency,
        )

        # 5. Prometheus metrics endpoint
        if cfg.metrics.enabled:
            start_http_server(cfg.metrics.port)
            logger.info("Prometheus metrics on :%d/metrics", cfg.metrics.port)

        # 6. Health check endpoint
        if cfg.health.enabled:
            self._tasks.append(
                asyncio.create_task(self._health_server(), name="health")
            )

        # 7. Background loops
        self._tasks.append(asyncio.create_task(self._feed.run(), name="block-feed"))
        self._tasks.append(
            asyncio.create_task(self._market_cap_loop(), name="market-cap")
        )

        logger.info(
            "PumpWatch fully started: factory=%s reference=%s mc_interval=%.0fs",
            self._chain.factory_address,
            cfg.chain.reference_asset_address,
            cfg.market_cap.check_interval_seconds,
        )

        # Block until disconnect
        await self._client.run_until_disconnected()

    async def shutdown(self) -> None:
        """Stop scheduling work; in-flight cycles are cancelled, not drained."""
        logger.info("Shutting down PumpWatch...")

        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        if self._fanout:
            await self._fanout.close()
        if self._client and self._client.is_connected():
            await self._client.disconnect()
        logger.info("Shutdown complete")

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def _on_block(self, head: int) -> None:
        assert self._ingestor is not None
        await self._ingestor.on_block(head)
        if self._ingestor.cursor.height is not None:
            CURSOR_GAUGE.set(self._ingestor.cursor.height)

    async def _market_cap_loop(self) -> None:
        """Ticks faster than the check interval; the monitor throttles itself."""
        assert self._monitor is not None
        tick = min(self._config.market_cap.tick_seconds, self._monitor.interval)

        while True:
            try:
                report = await self._monitor.check()
                if report is not None:
                    MC_ALERTS_TOTAL.inc(report.alerts_delivered)
                    WATCHED_GAUGE.set(len(self.alerts))
                await asyncio.sleep(tick)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Error in market-cap loop")
                await asyncio.sleep(5)

    # ------------------------------------------------------------------
    # Health check HTTP server
    # ------------------------------------------------------------------

    async def _health_server(self) -> None:
        """Minimal HTTP health check endpoint on configured port."""

        async def handle_health(_request: web.Request) -> web.Response:
            status = self.health()
            code = 200 if status.telegram_connected else 503
            return web.json_response(
                {
                    "status": "ok" if code == 200 else "degraded",
                    "uptime_seconds": round(status.uptime_seconds, 1),
                    "cursor": status.cursor,
                    "latest_block": status.latest_block,
                    "subscribers": status.subscribers,
                    "watched_tokens": status.watched_tokens,
                    "events_seen": status.events_seen,
                    "notifications_sent": status.notifications_sent,
                    "alerts_sent": status.alerts_sent,
                    "telegram_connected": status.telegram_connected,
                },
                status=code,
            )

        app = web.Application()
        app.router.add_get("/health", handle_health)
        app.router.add_get("/", handle_health)

        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "0.0.0.0", self._config.health.port)
        await site.start()
        logger.info("Health endpoint on :%d/health", self._config.health.port)

        # Keep running until cancelled
        try:
            while True:
                await asyncio.sleep(3600)
        except asyncio.CancelledError:
            await runner.cleanup()

    def health(self) -> HealthStatus:
        return HealthStatus(
            uptime_seconds=time.monotonic() - self._start_time,
            cursor=self._ingestor.cursor.height if self._ingestor else None,
            latest_block=self._feed.latest_block if self._feed else 0,
            subscribers=len(self.subscribers),
            watched_tokens=len(self.alerts),
            events_seen=len(self.deduplicator),
            notifications_sent=self._fanout.notifications_sent if self._fanout else 0,
            alerts_sent=self._fanout.alerts_sent if self._fanout else 0,
            telegram_connected=bool(self._client and self._client.is_connected()),
        )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="PumpWatch: factory deployment notifier with market-cap alerts"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log notifications instead of sending them",
    )
    return parser.parse_args()


async def _main() -> None:
    args = parse_args()

    config = AppConfig()

    # Override log level if --debug
    log_level = "DEBUG" if args.debug else config.log_level
    setup_logging(level=log_level, json_format=config.log_json)

    config.validate()

    app = PumpWatchApp(config=config, dry_run=args.dry_run)

    # Graceful shutdown on SIGINT / SIGTERM
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(app.shutdown()))

    try:
        await app.start()
    except (KeyboardInterrupt, SystemExit):
        pass
    finally:
        await app.shutdown()


def main() -> None:
    asyncio.run(_main())


if __name__ == "__main__":
    main()
