"""Block cursor and factory log ingestion."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from pumpwatch.core.errors import ChainReadError
from pumpwatch.core.models import DeploymentEvent, FanoutReport, IngestReport, TokenMetadata
from pumpwatch.core.utils import short_addr
from pumpwatch.pipeline.deduplicator import Deduplicator
from pumpwatch.pipeline.enricher import MetadataEnricher

logger = logging.getLogger(__name__)


class LogSource(Protocol):
    async def get_deployment_logs(self, from_block: int, to_block: int) -> list[Any]: ...

    def decode_deployment(
        self, log: Any, from_block: int, to_block: int
    ) -> DeploymentEvent: ...


class DeploymentSink(Protocol):
    async def notify_deployment(
        self, event: DeploymentEvent, metadata: TokenMetadata
    ) -> FanoutReport: ...


class ChainCursor:
    """Last fully scanned block height. Only ever moves forward."""

    def __init__(self) -> None:
        self._height: int | None = None

    @property
    def height(self) -> int | None:
        return self._height

    @property
    def initialized(self) -> bool:
        return self._height is not None

    def initialize(self, head: int) -> None:
        """Start just below the first observed head; nothing older is scanned."""
        if self._height is None:
            self._height = head - 1

    def next_range(self, head: int) -> tuple[int, int] | None:
        """Inclusive range still to scan, or None when there is nothing new."""
        if self._height is None:
            return None
        start = self._height + 1
        if start > head:
            return None
        return start, head

    def advance(self, height: int) -> None:
        if self._height is not None and height <= self._height:
            return
        self._height = height


class EventIngestor:
    """Turns block-height signals into enriched, fanned-out deployments.

    The cursor is advanced only after a successful log query; a failed
    query leaves it untouched so the next signal re-scans a wider range.
    Per-event failures after the query never hold the cursor back.
    """

    def __init__(
        self,
        source: LogSource,
        deduplicator: Deduplicator,
        enricher: MetadataEnricher,
        sink: DeploymentSink,
        cursor: ChainCursor | None = None,
    ) -> None:
        self._source = source
        self._dedup = deduplicator
        self._enricher = enricher
        self._sink = sink
        self.cursor = cursor or ChainCursor()
        self._lock = asyncio.Lock()

    async def on_block(self, head: int) -> IngestReport | None:
        """Handle one head signal. Heights may repeat or skip."""
        async with self._lock:
            if not self.cursor.initialized:
                self.cursor.initialize(head)
                logger.info("Cursor initialised at block %d (no backfill)", head - 1)

            scan = self.cursor.next_range(head)
            if scan is None:
                return None
            from_block, to_block = scan

            try:
                logs = await self._source.get_deployment_logs(from_block, to_block)
            except ChainReadError as exc:
                logger.warning(
                    "Log query for blocks %d-%d failed, will retry on next block: %s",
                    from_block,
                    to_block,
                    exc,
                )
                return None

            report = IngestReport(
                from_block=from_block, to_block=to_block, logs_fetched=len(logs)
            )
            for log in logs:
                await self._handle_log(log, report)

            self.cursor.advance(to_block)
            if report.logs_fetched:
                logger.info(
                    "Blocks %d-%d: %d log(s), %d new, %d duplicate, %d malformed",
                    from_block,
                    to_block,
                    report.logs_fetched,
                    report.processed,
                    report.duplicates,
                    report.malformed,
                )
            return report

    async def _handle_log(self, log: Any, report: IngestReport) -> None:
        try:
            event = self._source.decode_deployment(log, report.from_block, report.to_block)
        except Exception as exc:
            report.malformed += 1
            logger.warning("Dropping malformed factory log: %s", exc)
            return

        if not self._dedup.check_and_record(event):
            report.duplicates += 1
            return

        report.processed += 1
        logger.info(
            "New deployment %s dev_buy=%d at block %d",
            short_addr(event.address),
            event.amount,
            event.block_number,
        )
        try:
            metadata = await self._enricher.enrich(event.address)
            report.fanouts.append(await self._sink.notify_deployment(event, metadata))
        except Exception:
            logger.exception("Processing deployment %s failed", event.address)
