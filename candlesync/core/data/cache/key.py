"""缓存键生成."""

from candlesync.core.services.symbol_normalization import compact_symbol

CACHE_KEY_PREFIX = "candles"
LOCK_KEY_PREFIX = "candles:sync"


def candle_cache_key(symbol: str, interval: str) -> str:
    """Key of the series record, e.g. ``candles:EURUSD:5min``.

    Every variant of a pair (``EUR/USD``, ``eur-usd``, ``EUR USD``) maps to
    the same key.
    """
    return f"{CACHE_KEY_PREFIX}:{compact_symbol(symbol)}:{interval}"


def sync_lock_name(symbol: str, interval: str) -> str:
    """Name of the lease serialising syncs of one pair/interval."""
    return f"{LOCK_KEY_PREFIX}:{compact_symbol(symbol)}:{interval}"
