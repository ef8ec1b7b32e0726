"""Deployment ingestion pipeline: cursor, dedup and enrichment."""

from pumpwatch.pipeline.deduplicator import Deduplicator
from pumpwatch.pipeline.enricher import MetadataEnricher
from pumpwatch.pipeline.ingestor import ChainCursor, EventIngestor

__all__ = ["ChainCursor", "Deduplicator", "EventIngestor", "MetadataEnricher"]
