"""Incremental candle synchronisation.

The updater keeps one full, strictly ordered series per (symbol, interval)
in the cache. The first sync bootstraps the series from the provider; later
syncs fetch only a short tail, merge it over the cached series and write the
result back. Bars that were not cached before are also written to the
durable store, restricted to the trading session.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from candlesync.core.data.cache import CandleCacheContract, sync_lock_name
from candlesync.core.data.repositories import CandleRepository
from candlesync.core.locks import InMemoryLockManager, LockManager
from candlesync.core.logging import get_logger, log_context
from candlesync.core.models import Bar, sort_bars
from candlesync.core.providers import PriceProvider

log = get_logger(__name__)

DEFAULT_BUCKET_MINUTES = 5
_MINUTES_RE = re.compile(r"(\d+)min")


class CandleUpdaterContract(ABC):
    """Anything that can hand back a synchronised candle series."""

    @abstractmethod
    def sync(
        self,
        symbol: str,
        interval: str,
        bootstrap_limit: int,
        overlap_bars: int = 2,
        tail_fetch_limit: int = 200,
    ) -> list[Bar]:
        """Return the series for ``symbol``/``interval``, oldest first."""


# ---------------------------------------------------------------------------
# payload normalisation


def _parse_time(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, int | float) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def _number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _row_to_bar(row: Any) -> Bar | None:
    if isinstance(row, Bar):
        return row
    if not isinstance(row, Mapping):
        return None

    ts = _parse_time(row.get("time") or row.get("datetime"))
    if ts is None:
        return None

    prices = [_number(row.get(field)) for field in ("open", "high", "low", "close")]
    if any(price is None for price in prices):
        return None
    open_, high, low, close = prices
    return Bar(ts=ts, open=open_, high=high, low=low, close=close, volume=_number(row.get("volume")))


def _payload_rows(raw: Any) -> Iterable[Any]:
    if isinstance(raw, Mapping):
        rows = raw.get("prices")
    elif isinstance(raw, list | tuple):
        rows = raw
    else:
        rows = getattr(raw, "prices", None)
    if not isinstance(rows, list | tuple):
        return ()
    return rows


def normalize_candles(raw: Any) -> list[Bar]:
    """Turn a provider payload into bars, oldest first.

    Understood shapes:

    * a list of :class:`Bar`
    * a mapping (or any object) whose ``prices`` holds rows
    * a flat list of row mappings keyed by ``time``/``datetime`` with
      ``open``/``high``/``low``/``close`` and optional ``volume``

    Rows without all four prices or with an unparsable timestamp are
    dropped. Numeric strings are accepted.
    """
    if not raw:
        return []
    bars = [bar for bar in map(_row_to_bar, _payload_rows(raw)) if bar is not None]
    return sort_bars(bars)


# ---------------------------------------------------------------------------
# merge helpers


def interval_bucket_minutes(interval: str) -> int:
    """Bucket width used when timestamps are normalised."""
    if "30" in interval:
        return 30
    match = _MINUTES_RE.search(interval)
    if match:
        return int(match.group(1)) or DEFAULT_BUCKET_MINUTES
    return DEFAULT_BUCKET_MINUTES


def dedup_key(ts: datetime, bucket_minutes: int | None = None) -> datetime:
    if bucket_minutes is None:
        return ts
    return ts.replace(minute=ts.minute - ts.minute % bucket_minutes, second=0, microsecond=0)


def merge_series(
    fresh: list[Bar],
    cached: list[Bar],
    bucket_minutes: int | None = None,
) -> list[Bar]:
    """Fresh bars first, first occurrence per key wins, result sorted ascending."""
    seen: set[datetime] = set()
    merged: list[Bar] = []
    for bar in [*fresh, *cached]:
        key = dedup_key(bar.ts, bucket_minutes)
        if key in seen:
            continue
        seen.add(key)
        merged.append(bar)
    return sort_bars(merged)


# ---------------------------------------------------------------------------
# updater


class IncrementalCandleUpdater(CandleUpdaterContract):
    """Cache-first incremental updater.

    同一 (symbol, interval) 的同步通过命名锁串行执行; 提供商失败原样抛出,
    此时缓存和数据库都未被修改. 数据库写入是尽力而为的: 失败只记录警告.
    """

    def __init__(
        self,
        provider: PriceProvider,
        cache: CandleCacheContract,
        repository: CandleRepository | None = None,
        locks: LockManager | None = None,
        cache_ttl: int = 3600,
        lock_ttl: int = 60,
        lock_wait: int = 10,
        normalize_timestamps: bool = False,
        provider_name: str | None = None,
    ):
        self.provider = provider
        self.cache = cache
        self.repository = repository
        self.locks = locks or InMemoryLockManager()
        self.cache_ttl = cache_ttl
        self.lock_ttl = lock_ttl
        self.lock_wait = lock_wait
        self.normalize_timestamps = normalize_timestamps
        self.provider_name = provider_name or getattr(provider, "name", None)

    def sync(
        self,
        symbol: str,
        interval: str,
        bootstrap_limit: int,
        overlap_bars: int = 2,
        tail_fetch_limit: int = 200,
    ) -> list[Bar]:
        with log_context(symbol=symbol, interval=interval):
            with self.locks.hold(sync_lock_name(symbol, interval), self.lock_ttl, self.lock_wait):
                cached = self.cache.get(symbol, interval)
                if not cached:
                    return self._bootstrap(symbol, interval, bootstrap_limit)
                return self._incremental(symbol, interval, cached, tail_fetch_limit)

    def _fetch(self, symbol: str, interval: str, outputsize: int) -> list[Bar]:
        raw = self.provider.get_candles(symbol, {"interval": interval, "outputsize": outputsize})
        return normalize_candles(raw)

    def _bootstrap(self, symbol: str, interval: str, bootstrap_limit: int) -> list[Bar]:
        fetched = self._fetch(symbol, interval, bootstrap_limit)
        bucket = interval_bucket_minutes(interval) if self.normalize_timestamps else None
        bars = merge_series(fetched, [], bucket)
        log.info("Bootstrapping candle cache", fetched=len(fetched), kept=len(bars), limit=bootstrap_limit)

        self.cache.put(symbol, interval, bars, self.cache_ttl)
        self._persist(symbol, interval, bars)
        return bars

    def _incremental(self, symbol: str, interval: str, cached: list[Bar], tail_fetch_limit: int) -> list[Bar]:
        cached = sort_bars(cached)
        fresh = self._fetch(symbol, interval, tail_fetch_limit)
        if not fresh:
            log.debug("Tail fetch returned nothing, keeping cached series", cached=len(cached))
            return cached

        bucket = interval_bucket_minutes(interval) if self.normalize_timestamps else None
        merged = merge_series(fresh, cached, bucket)

        cached_ts = {bar.ts for bar in cached}
        new_bars = [bar for bar in merged if bar.ts not in cached_ts]

        self.cache.put(symbol, interval, merged, self.cache_ttl)
        log.info(
            "Merged candle tail",
            cached=len(cached),
            fetched=len(fresh),
            new=len(new_bars),
            total=len(merged),
        )
        self._persist(symbol, interval, new_bars)
        return merged

    def _persist(self, symbol: str, interval: str, bars: list[Bar]) -> None:
        if self.repository is None or not bars:
            return
        self.repository.persist(symbol, interval, bars, self.provider_name)
