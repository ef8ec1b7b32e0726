"""In-memory stores injected into the pipeline at startup."""

from pumpwatch.storage.alerts import AlertRegistry
from pumpwatch.storage.subscribers import SubscriberRegistry

__all__ = ["AlertRegistry", "SubscriberRegistry"]
