"""进程内缓存后端, 单进程部署和测试默认使用."""

import time
from collections import OrderedDict
from collections.abc import Callable
from threading import Lock
from typing import NamedTuple

from .base import CacheStrategy


class _Entry(NamedTuple):
    value: str
    expires_at: float | None  # None: no expiry


class ThreadSafeInMemoryCache(CacheStrategy):
    """Bounded LRU map of serialized candle series.

    The least recently read or written key is evicted once ``max_size`` keys
    are stored. Expired keys are dropped lazily when touched.
    """

    name = "memory"

    def __init__(self, max_size: int = 1000, clock: Callable[[], float] | None = None):
        self.max_size = max_size
        self._clock = clock or time.time
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = Lock()

    def _live(self, key: str) -> _Entry | None:
        # caller holds the lock
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: str, ttl: int) -> None:
        entry = _Entry(value, self._clock() + ttl if ttl > 0 else None)
        with self._lock:
            self._entries.pop(key, None)
            while self._entries and len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_ttl(self, key: str) -> int | None:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return None
            if entry.expires_at is None:
                return -1
            return max(0, int(entry.expires_at - self._clock()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def size(self) -> int:
        return len(self)
