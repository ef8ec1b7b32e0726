"""Shared type aliases and enumerations."""

from __future__ import annotations

from enum import Enum


class Language(str, Enum):
    """Supported notification languages."""

    EN = "en"
    ZH = "zh"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, tag: str | None) -> "Language":
        """Anything that is not ``zh`` falls back to English."""
        if tag and tag.strip().lower() == cls.ZH.value:
            return cls.ZH
        return cls.EN


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"

    def __str__(self) -> str:
        return self.value


# Telegram user ids are plain integers.
SubscriberId = int

# (lower-cased token address, dev-buy amount in base units)
DedupKey = tuple[str, int]
