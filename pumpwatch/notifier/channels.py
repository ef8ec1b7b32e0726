"""Outbound notification channels.

A channel delivers one HTML message to one subscriber and raises on
failure. Isolation and timeouts live in the fanout.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import aiohttp
from telethon import TelegramClient

from pumpwatch.core.errors import DeliveryError
from pumpwatch.core.types import SubscriberId

logger = logging.getLogger(__name__)

_BOT_API = "https://api.telegram.org/bot{token}/sendMessage"


class NotificationChannel(ABC):
    """Contract for all delivery backends."""

    @abstractmethod
    async def send(self, subscriber_id: SubscriberId, text: str) -> None:
        """Deliver *text*; raise on any failure."""
        ...

    async def close(self) -> None:
        """Release resources."""


class TelethonChannel(NotificationChannel):
    """Sends through the bot's own Telethon session."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def send(self, subscriber_id: SubscriberId, text: str) -> None:
        await self._client.send_message(
            subscriber_id, text, parse_mode="html", link_preview=False
        )


class BotApiChannel(NotificationChannel):
    """Sends via the Telegram Bot HTTPS API."""

    def __init__(self, token: str, timeout_seconds: float = 10.0) -> None:
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def send(self, subscriber_id: SubscriberId, text: str) -> None:
        session = await self._get_session()
        url = _BOT_API.format(token=self._token)
        payload = {
            "chat_id": subscriber_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        async with session.post(url, json=payload) as resp:
            if resp.status != 200:
                body = await resp.text()
                logger.error("Bot API error %d: %s", resp.status, body)
                raise DeliveryError(f"Bot API {resp.status}: {body}")
