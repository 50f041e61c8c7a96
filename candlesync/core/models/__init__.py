"""Core data models."""

from candlesync.core.models.market import Bar, CandleSeries, TradingSession, as_utc, sort_bars, utc_now

__all__ = ["Bar", "CandleSeries", "TradingSession", "as_utc", "sort_bars", "utc_now"]
