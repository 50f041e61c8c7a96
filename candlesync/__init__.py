"""candlesync - incremental OHLC candle synchronisation across cache and database tiers."""

from candlesync.core.data.cache import CandleCache
from candlesync.core.data.repositories import CandleRepository
from candlesync.core.data.storage import CandleDatabase
from candlesync.core.models import Bar
from candlesync.core.services.candles import IncrementalCandleUpdater, normalize_candles
from candlesync.core.services.database_provider import DatabaseCandleProvider, DatabasePriceProvider

__version__ = "0.1.0"

__all__ = [
    "Bar",
    "CandleCache",
    "CandleDatabase",
    "CandleRepository",
    "DatabaseCandleProvider",
    "DatabasePriceProvider",
    "IncrementalCandleUpdater",
    "normalize_candles",
]
