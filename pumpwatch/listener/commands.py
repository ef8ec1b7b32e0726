"""Bot commands that opt users in and edit their preferences.

``BotCommands`` maps a command to a reply and holds no Telegram state;
``CommandListener`` wires it to a Telethon bot client.
"""

from __future__ import annotations

import logging
import re

from telethon import TelegramClient, events
from telethon.errors import FloodWaitError

from pumpwatch.core.types import Language, SubscriberId
from pumpwatch.notifier.messages import (
    format_alert_list,
    format_status,
    format_threshold_set,
)
from pumpwatch.storage import AlertRegistry, SubscriberRegistry

logger = logging.getLogger(__name__)

_COMMAND_PATTERN = re.compile(r"^/(\w+)(?:@\w+)?\s*(.*)$", re.DOTALL)
_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _t(language: Language, en: str, zh: str) -> str:
    return zh if language is Language.ZH else en


class BotCommands:
    """Command handlers over the subscriber and alert registries."""

    def __init__(
        self,
        subscribers: SubscriberRegistry,
        alerts: AlertRegistry,
        check_interval_seconds: float = 300.0,
    ) -> None:
        self._subscribers = subscribers
        self._alerts = alerts
        self._interval = check_interval_seconds

    def handle(self, subscriber_id: SubscriberId, text: str) -> str | None:
        """Dispatch one command message. Returns the reply, or None."""
        match = _COMMAND_PATTERN.match(text.strip())
        if not match:
            return None
        name, arg = match.group(1).lower(), match.group(2).strip()
        handler = getattr(self, f"cmd_{name}", None)
        if handler is None:
            return None
        return handler(subscriber_id, arg)

    def _lang(self, subscriber_id: SubscriberId) -> Language:
        return self._subscribers.prefs(subscriber_id).language

    def cmd_start(self, subscriber_id: SubscriberId, arg: str) -> str:
        self._subscribers.subscribe(subscriber_id)
        return _t(
            self._lang(subscriber_id),
            "Subscribed. New token deployments will be pushed here.\n"
            "/lang en|zh, /media, /mc &lt;usd&gt;, /mc off, /mc_status, /alerts",
            "已订阅，新代币上线会推送到这里。\n"
            "/lang en|zh, /media, /mc &lt;美元&gt;, /mc off, /mc_status, /alerts",
        )

    def cmd_stop(self, subscriber_id: SubscriberId, arg: str) -> str:
        self._subscribers.unsubscribe(subscriber_id)
        return _t(self._lang(subscriber_id), "Unsubscribed.", "已取消订阅。")

    def cmd_lang(self, subscriber_id: SubscriberId, arg: str) -> str:
        language = self._subscribers.set_language(subscriber_id, arg)
        return _t(language, "Language: English", "语言：中文")

    def cmd_media(self, subscriber_id: SubscriberId, arg: str) -> str:
        enabled = self._subscribers.toggle_media_filter(subscriber_id)
        language = self._lang(subscriber_id)
        if enabled:
            return _t(language, "Media link requirement: On", "媒体链接要求: 已开启")
        return _t(language, "Media link requirement: Off", "媒体链接要求: 已关闭")

    def cmd_mc(self, subscriber_id: SubscriberId, arg: str) -> str:
        language = self._lang(subscriber_id)
        if arg.lower() in ("off", "clear"):
            self._subscribers.clear_threshold(subscriber_id)
            return _t(language, "MC threshold cleared", "已清除市值阈值")
        try:
            threshold = self._subscribers.set_threshold(subscriber_id, float(arg))
        except ValueError:
            return _t(language, "Please enter a positive integer", "请输入正整数")
        added = self._alerts.enroll_everywhere(subscriber_id)
        return format_threshold_set(threshold, added, language)

    def cmd_mc_status(self, subscriber_id: SubscriberId, arg: str) -> str:
        prefs = self._subscribers.prefs(subscriber_id)
        return format_status(
            prefs.mc_threshold_usd,
            prefs.require_media_link,
            self._alerts.count_for(subscriber_id),
            self._interval,
            prefs.language,
        )

    def cmd_alerts(self, subscriber_id: SubscriberId, arg: str) -> str:
        return format_alert_list(
            self._alerts.tokens_for(subscriber_id), self._lang(subscriber_id)
        )

    def cmd_unwatch(self, subscriber_id: SubscriberId, arg: str) -> str:
        language = self._lang(subscriber_id)
        if not _ADDRESS_PATTERN.match(arg):
            return _t(language, "Usage: /unwatch &lt;token address&gt;", "用法: /unwatch &lt;代币地址&gt;")
        if self._alerts.unenroll(arg, subscriber_id):
            return _t(language, "Alert removed", "已移除提醒")
        return _t(language, "You are not watching that token", "您没有订阅该代币")

    def cmd_clear_alerts(self, subscriber_id: SubscriberId, arg: str) -> str:
        removed = self._alerts.clear_all(subscriber_id)
        return _t(
            self._lang(subscriber_id),
            f"Cleared {removed} alert(s)",
            f"已清空 {removed} 个提醒",
        )


class CommandListener:
    """Routes incoming private ``/command`` messages to ``BotCommands``."""

    def __init__(self, client: TelegramClient, commands: BotCommands) -> None:
        self._client = client
        self._commands = commands

    def register(self) -> None:
        self._client.add_event_handler(
            self._handle_event,
            events.NewMessage(incoming=True, func=lambda e: e.is_private, pattern=r"^/"),
        )
        logger.info("Command handler registered")

    async def _handle_event(self, event: events.NewMessage.Event) -> None:
        try:
            reply = self._commands.handle(event.sender_id, event.raw_text or "")
            if reply:
                await event.respond(reply, parse_mode="html")
        except FloodWaitError as e:
            logger.warning("Telegram flood-wait: sleeping %d seconds", e.seconds)
            import asyncio

            await asyncio.sleep(e.seconds)
        except Exception:
            logger.exception("Error handling command from %s", event.sender_id)
