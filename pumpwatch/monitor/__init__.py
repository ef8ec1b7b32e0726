"""Market-cap threshold monitoring."""

from pumpwatch.monitor.market_cap import MarketCapMonitor, reference_price

__all__ = ["MarketCapMonitor", "reference_price"]
