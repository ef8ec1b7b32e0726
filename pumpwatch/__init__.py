"""PumpWatch: factory deployment watcher with market-cap alerts."""

__version__ = "0.1.0"
