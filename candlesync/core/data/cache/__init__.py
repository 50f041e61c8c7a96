"""缓存系统实现模块."""

from candlesync.core.data.cache.base import CacheStrategy
from candlesync.core.data.cache.candle_cache import CandleCache, CandleCacheContract
from candlesync.core.data.cache.duckdb import SimpleDuckDBCache
from candlesync.core.data.cache.key import candle_cache_key, sync_lock_name
from candlesync.core.data.cache.memory import ThreadSafeInMemoryCache
from candlesync.core.data.cache.redis import RedisCache

__all__ = [
    "CacheStrategy",
    "CandleCache",
    "CandleCacheContract",
    "ThreadSafeInMemoryCache",
    "SimpleDuckDBCache",
    "RedisCache",
    "candle_cache_key",
    "sync_lock_name",
]
