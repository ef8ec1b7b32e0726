"""Localized HTML message templates."""

from __future__ import annotations

import html
from datetime import datetime
from decimal import Decimal
from typing import Any

from pumpwatch.core.models import DeploymentEvent, TokenMetadata, is_unset
from pumpwatch.core.types import Language
from pumpwatch.core.utils import format_units, utcnow

_UNSET_TEXT = {Language.EN: "N/A", Language.ZH: "无"}

# Dev buys are always paid in the 18-decimal native asset
DEV_BUY_DECIMALS = 18

_DEPLOYMENT_LABELS = {
    Language.EN: (
        "🚀 <b>New PumpToken Deployed</b>",
        "Contract",
        "Symbol",
        "Decimals",
        "Dev Buy",
        "Description",
        "Website",
        "TG",
        "Twitter",
    ),
    Language.ZH: (
        "🚀 <b>新 PumpToken 上线</b>",
        "合约",
        "名称",
        "小数",
        "Dev 买入",
        "简介",
        "官网",
        "TG",
        "Twitter",
    ),
}


def _text(value: Any, language: Language) -> str:
    if is_unset(value):
        return _UNSET_TEXT[language]
    return html.escape(str(value))


def format_deployment(
    event: DeploymentEvent,
    metadata: TokenMetadata,
    language: Language,
    asset_symbol: str = "OKB",
) -> str:
    (
        title,
        contract,
        symbol,
        decimals,
        dev_buy,
        description,
        website,
        telegram,
        twitter,
    ) = _DEPLOYMENT_LABELS[language]
    amount = format_units(event.amount, DEV_BUY_DECIMALS)
    lines = [
        title,
        f"{contract}: <code>{event.address}</code>",
        f"{symbol}: {_text(metadata.symbol, language)}",
        f"{decimals}: {_text(metadata.decimals, language)}",
        f"{dev_buy}: <b>{amount} {html.escape(asset_symbol)}</b>",
        f"{description}: {_text(metadata.description, language)}",
        f"{website}: {_text(metadata.website, language)}",
        f"{telegram}: {_text(metadata.telegram, language)}",
        f"{twitter}: {_text(metadata.twitter, language)}",
    ]
    return "\n".join(lines)


def format_market_cap_alert(
    token: str,
    symbol: str,
    market_cap: Decimal,
    threshold: int,
    language: Language,
) -> str:
    mc = f"{market_cap:.2f}"
    sym = html.escape(symbol)
    if language is Language.ZH:
        return (
            f"🚨 <b>市值提醒</b>\n\n"
            f"代币: {sym}\n"
            f"合约: <code>{token}</code>\n"
            f"当前市值: <b>${mc}</b>\n"
            f"您的阈值: <b>${threshold}</b>\n\n"
            f"💡 代币市值已达到您设定的提醒阈值！"
        )
    return (
        f"🚨 <b>Market Cap Alert</b>\n\n"
        f"Token: {sym}\n"
        f"Contract: <code>{token}</code>\n"
        f"Current MC: <b>${mc}</b>\n"
        f"Your threshold: <b>${threshold}</b>\n\n"
        f"💡 Token market cap has reached your alert threshold!"
    )


# ---------------------------------------------------------------------------
# Command replies
# ---------------------------------------------------------------------------


def format_status(
    threshold: int | None,
    require_media_link: bool,
    alert_count: int,
    interval_seconds: float,
    language: Language,
) -> str:
    minutes = max(1, round(interval_seconds / 60))
    if language is Language.ZH:
        threshold_text = f"${threshold}" if threshold else "未设置"
        media_text = "已开启" if require_media_link else "已关闭"
        return (
            f"📊 市值提醒状态\n\n"
            f"阈值: {threshold_text}\n"
            f"媒体链接要求: {media_text}\n"
            f"订阅代币数: {alert_count}\n"
            f"检查间隔: {minutes}分钟"
        )
    threshold_text = f"${threshold}" if threshold else "Not set"
    media_text = "On" if require_media_link else "Off"
    return (
        f"📊 Market Cap Alert Status\n\n"
        f"Threshold: {threshold_text}\n"
        f"Require media link: {media_text}\n"
        f"Subscribed tokens: {alert_count}\n"
        f"Check interval: {minutes} minutes"
    )


def format_alert_list(
    entries: list[tuple[str, datetime]],
    language: Language,
    limit: int = 10,
    now: datetime | None = None,
) -> str:
    now = now or utcnow()
    if not entries:
        if language is Language.ZH:
            return (
                "📊 市值提醒管理\n\n您还没有订阅任何代币的市值提醒。\n\n"
                "💡 设置市值阈值后，新推送的代币会自动添加到提醒列表。"
            )
        return (
            "📊 Market Cap Alerts\n\nYou haven't subscribed to any token alerts yet.\n\n"
            "💡 After setting a market cap threshold, newly pushed tokens are "
            "added to the alert list automatically."
        )

    if language is Language.ZH:
        lines = [f"📊 市值提醒管理\n\n您当前订阅了 {len(entries)} 个代币的市值提醒：\n"]
    else:
        lines = [f"📊 Market Cap Alerts\n\nYou are subscribed to {len(entries)} token alert(s):\n"]

    for i, (token, touched) in enumerate(entries[:limit], start=1):
        minutes = int((now - touched).total_seconds() // 60)
        ago = f"{minutes} 分钟前" if language is Language.ZH else f"{minutes} min ago"
        lines.append(f"{i}. <code>{token}</code> ({ago})")

    extra = len(entries) - limit
    if extra > 0:
        lines.append(
            f"\n... 还有 {extra} 个代币" if language is Language.ZH else f"\n... and {extra} more tokens"
        )
    return "\n".join(lines)


def format_threshold_set(threshold: int, added: int, language: Language) -> str:
    if language is Language.ZH:
        text = f"已设置市值阈值: ${threshold}"
        if added:
            text += f"\n已自动订阅 {added} 个已推送代币的市值提醒"
        return text
    text = f"MC threshold set: ${threshold}"
    if added:
        text += f"\nAutomatically subscribed to {added} pushed tokens for MC alerts"
    return text
