"""Shared utility helpers."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal


def utcnow() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging for the application."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        fmt = (
            '{"time":"%(asctime)s","level":"%(levelname)s",'
            '"logger":"%(name)s","message":"%(message)s"}'
        )
    else:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s"

    logging.basicConfig(
        level=numeric_level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    # Silence noisy third-party loggers
    logging.getLogger("telethon").setLevel(logging.WARNING)
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def short_addr(address: str, keep: int = 10) -> str:
    """Shorten an address for log lines."""
    if len(address) <= keep:
        return address
    return address[:keep] + "..."


def format_units(value: int, decimals: int = 18) -> str:
    """Render an integer amount of base units as a fixed-point string.

    Always keeps at least one fractional digit: ``10**18 -> "1.0"``,
    ``5 * 10**17 -> "0.5"``.
    """
    negative = value < 0
    whole, frac = divmod(abs(value), 10**decimals)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0") if decimals else ""
    text = f"{whole}.{frac_text or '0'}"
    return f"-{text}" if negative else text


def to_decimal_units(value: int, decimals: int) -> Decimal:
    """Scale base units down by ``10**decimals`` without float rounding."""
    return Decimal(value).scaleb(-decimals)
