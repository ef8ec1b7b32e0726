"""Core models, types, and utilities."""

from pumpwatch.core.errors import ChainReadError, DeliveryError
from pumpwatch.core.models import (
    UNSET,
    DeploymentEvent,
    DeliveryOutcome,
    FanoutReport,
    SubscriberPrefs,
    TokenMetadata,
)
from pumpwatch.core.types import DeliveryStatus, Language

__all__ = [
    "UNSET",
    "ChainReadError",
    "DeliveryError",
    "DeploymentEvent",
    "DeliveryOutcome",
    "DeliveryStatus",
    "FanoutReport",
    "Language",
    "SubscriberPrefs",
    "TokenMetadata",
]
