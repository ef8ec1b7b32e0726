"""Polls the chain head and signals each new height."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

from pumpwatch.core.errors import ChainReadError

logger = logging.getLogger(__name__)

BlockCallback = Callable[[int], Awaitable[Any]]


class HeadSource(Protocol):
    async def get_block_number(self) -> int: ...


class BlockFeed:
    """Cheap ``eth_blockNumber`` poller.

    The callback is awaited inline, so a slow scan delays the next poll
    instead of overlapping with it. Heights that did not change since the
    last poll are not re-signalled.
    """

    def __init__(
        self,
        source: HeadSource,
        on_block: BlockCallback,
        poll_interval: float = 3.0,
    ) -> None:
        self._source = source
        self._on_block = on_block
        self._poll_interval = poll_interval
        self.latest_block = 0

    async def poll_once(self) -> int | None:
        """Fetch the head and signal it if it changed. Returns the head."""
        try:
            head = await self._source.get_block_number()
        except ChainReadError as exc:
            logger.warning("Block poll failed: %s", exc)
            return None

        if head == self.latest_block:
            return head
        self.latest_block = head
        logger.debug("New head %d", head)
        try:
            await self._on_block(head)
        except Exception:
            logger.exception("Block handler failed for head %d", head)
        return head

    async def run(self) -> None:
        logger.info("Block feed started (interval: %.1fs)", self._poll_interval)
        while True:
            try:
                await self.poll_once()
                await asyncio.sleep(self._poll_interval)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Error in block feed loop")
                await asyncio.sleep(5)
