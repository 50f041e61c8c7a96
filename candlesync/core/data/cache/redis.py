"""Redis-backed cache strategy."""

from __future__ import annotations

from redis import Redis
from redis.exceptions import RedisError

from candlesync.core.data.cache.base import CacheStrategy
from candlesync.core.exceptions import CacheError
from candlesync.core.logging import get_logger

log = get_logger(__name__)


class RedisCache(CacheStrategy):
    """
    Cache strategy storing values as plain Redis strings.

    ``ttl > 0`` uses ``SETEX``; anything else a bare ``SET`` with no expiry.
    Read failures are logged and reported as a miss, write failures raise
    :class:`CacheError`.
    """

    name = "redis"

    def __init__(self, client: Redis | None = None, *, url: str = "redis://localhost:6379/0") -> None:
        self._redis = client if client is not None else Redis.from_url(url, decode_responses=True)

    @property
    def client(self) -> Redis:
        return self._redis

    def get(self, key: str) -> str | None:
        try:
            value = self._redis.get(key)
        except RedisError as exc:
            log.warning("redis cache read failed", key=key, error=str(exc))
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl: int) -> None:
        try:
            if ttl > 0:
                self._redis.setex(key, ttl, value)
            else:
                self._redis.set(key, value)
        except RedisError as exc:
            raise CacheError(f"Failed to write cache key {key}: {exc}", cache_type=self.name) from exc

    def delete(self, key: str) -> bool:
        return bool(self._redis.delete(key))

    def clear(self) -> None:
        # Only our own keys; the database may be shared with other services.
        for key in self._redis.scan_iter(match="candles:*"):
            self._redis.delete(key)

    def get_ttl(self, key: str) -> int | None:
        remaining = self._redis.ttl(key)
        if remaining is None or remaining == -2:
            return None
        return int(remaining)
