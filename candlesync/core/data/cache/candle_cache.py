"""Candle series cache: one versioned JSON record per (symbol, interval)."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from candlesync.core.data.cache.base import CacheStrategy
from candlesync.core.data.cache.key import candle_cache_key
from candlesync.core.data.cache.memory import ThreadSafeInMemoryCache
from candlesync.core.models import Bar

RECORD_VERSION = 1


class CandleCacheContract(ABC):
    """Storage contract the updater relies on."""

    @abstractmethod
    def get(self, symbol: str, interval: str) -> list[Bar] | None:
        """Cached series oldest to newest, or None on miss."""

    @abstractmethod
    def put(self, symbol: str, interval: str, bars: list[Bar], ttl_seconds: int = 0) -> None:
        """Replace the cached series wholesale."""

    @abstractmethod
    def tail_ts(self, symbol: str, interval: str) -> datetime | None:
        """Timestamp of the newest cached bar."""


def _encode(bars: list[Bar]) -> str:
    payload_bars = [
        {
            "ts": bar.ts.isoformat(),
            "open": bar.open,
            "high": bar.high,
            "low": bar.low,
            "close": bar.close,
            "volume": bar.volume,
        }
        for bar in bars
    ]
    return json.dumps({"v": RECORD_VERSION, "bars": payload_bars})


def _bar_rows(raw: str) -> list[Any] | None:
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        return None
    # Bare lists predate the versioned envelope.
    rows = decoded.get("bars") if isinstance(decoded, dict) else decoded
    if not isinstance(rows, list):
        return None
    return rows


def _parse_ts(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _float(row: dict[str, Any], field: str) -> float:
    try:
        return float(row.get(field) or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _decode_bar(row: Any) -> Bar | None:
    if not isinstance(row, dict):
        return None
    ts = _parse_ts(row.get("ts"))
    if ts is None:
        return None
    volume = row.get("volume")
    try:
        volume = float(volume) if volume is not None else None
    except (TypeError, ValueError):
        volume = None
    return Bar(
        ts=ts,
        open=_float(row, "open"),
        high=_float(row, "high"),
        low=_float(row, "low"),
        close=_float(row, "close"),
        volume=volume,
    )


class CandleCache(CandleCacheContract):
    """Candle series cache on top of any :class:`CacheStrategy`."""

    def __init__(self, backend: CacheStrategy | None = None):
        # An empty backend is falsy (it defines __len__).
        self.backend = backend if backend is not None else ThreadSafeInMemoryCache()

    def get(self, symbol: str, interval: str) -> list[Bar] | None:
        raw = self.backend.get(candle_cache_key(symbol, interval))
        if raw is None:
            return None
        rows = _bar_rows(raw)
        if rows is None:
            return None
        return [bar for bar in map(_decode_bar, rows) if bar is not None]

    def put(self, symbol: str, interval: str, bars: list[Bar], ttl_seconds: int = 0) -> None:
        self.backend.set(candle_cache_key(symbol, interval), _encode(bars), ttl_seconds)

    def tail_ts(self, symbol: str, interval: str) -> datetime | None:
        """Newest timestamp among the bars :meth:`get` would return."""
        bars = self.get(symbol, interval)
        if not bars:
            return None
        return max(bar.ts for bar in bars)

    def forget(self, symbol: str, interval: str) -> bool:
        return self.backend.delete(candle_cache_key(symbol, interval))
