"""Tests for the cache-first incremental candle updater."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from candlesync.core.data.cache import CandleCache, ThreadSafeInMemoryCache, candle_cache_key, sync_lock_name
from candlesync.core.data.repositories import CandleRepository
from candlesync.core.data.storage import CandleDatabase
from candlesync.core.exceptions import LockTimeoutError, ProviderError
from candlesync.core.locks import InMemoryLockManager
from candlesync.core.models import Bar
from candlesync.core.providers import PriceProvider
from candlesync.core.services.candles import IncrementalCandleUpdater

BASE = datetime(2024, 3, 4, 10, 0, tzinfo=UTC)


def bar_at(ts: datetime, close: float = 1.1) -> Bar:
    return Bar(ts=ts, open=close, high=close + 0.001, low=close - 0.001, close=close, volume=100.0)


def bar(index: int, close: float = 1.1) -> Bar:
    """The ``index``-th five minute bar after ``BASE``."""
    return bar_at(BASE + timedelta(minutes=5 * index), close)


class StubProvider(PriceProvider):
    name = "stub"

    def __init__(self, *payloads: Any) -> None:
        self.payloads = list(payloads)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get_candles(self, symbol: str, params: Mapping[str, Any]) -> Any:
        self.calls.append((symbol, dict(params)))
        payload = self.payloads.pop(0) if self.payloads else []
        if isinstance(payload, Exception):
            raise payload
        return payload


@pytest.fixture
def backend() -> ThreadSafeInMemoryCache:
    return ThreadSafeInMemoryCache(max_size=100)


@pytest.fixture
def cache(backend: ThreadSafeInMemoryCache) -> CandleCache:
    return CandleCache(backend)


def timestamps(bars: list[Bar]) -> list[datetime]:
    return [b.ts for b in bars]


class TestBootstrap:
    def test_empty_cache_fetches_bootstrap_window(self, cache, repository):
        provider = StubProvider([bar(2), bar(0), bar(1)])
        updater = IncrementalCandleUpdater(provider, cache, repository)

        result = updater.sync("EUR/USD", "5min", 150)

        assert timestamps(result) == timestamps([bar(0), bar(1), bar(2)])
        assert provider.calls == [("EUR/USD", {"interval": "5min", "outputsize": 150})]
        assert cache.get("EUR/USD", "5min") == result
        assert repository.count("EUR/USD", "5min") == 3

    def test_bootstrap_writes_cache_with_ttl(self, cache, backend):
        updater = IncrementalCandleUpdater(StubProvider([bar(0)]), cache, cache_ttl=3600)

        updater.sync("EUR/USD", "5min", 10)

        ttl = backend.get_ttl(candle_cache_key("EUR/USD", "5min"))
        assert ttl is not None
        assert 0 < ttl <= 3600

    def test_empty_bootstrap_payload_caches_empty_series(self, cache):
        updater = IncrementalCandleUpdater(StubProvider([]), cache)

        assert updater.sync("EUR/USD", "5min", 10) == []
        assert cache.get("EUR/USD", "5min") == []

    def test_duplicate_bootstrap_rows_keep_first(self, cache, repository):
        provider = StubProvider([bar(0, close=1.0), bar(0, close=2.0), bar(1)])
        updater = IncrementalCandleUpdater(provider, cache, repository)

        result = updater.sync("EUR/USD", "5min", 150)

        assert timestamps(result) == timestamps([bar(0), bar(1)])
        assert result[0].close == 1.0
        assert cache.get("EUR/USD", "5min") == result
        stored = repository.recent("EUR/USD", "5min", 10)
        assert timestamps(stored) == timestamps(result)
        assert stored[0].close == 1.0


class TestIncrementalMerge:
    def test_overlap_takes_fresh_values(self, cache):
        cache.put("EUR/USD", "5min", [bar(i, close=1.0) for i in range(1, 6)], 0)
        provider = StubProvider([bar(i, close=2.0) for i in range(3, 9)])
        updater = IncrementalCandleUpdater(provider, cache)

        result = updater.sync("EUR/USD", "5min", 150, tail_fetch_limit=20)

        assert timestamps(result) == [bar(i).ts for i in range(1, 9)]
        assert [b.close for b in result] == [1.0, 1.0, 2.0, 2.0, 2.0, 2.0, 2.0, 2.0]
        assert provider.calls == [("EUR/USD", {"interval": "5min", "outputsize": 20})]
        assert cache.get("EUR/USD", "5min") == result

    def test_only_new_bars_are_persisted(self, cache, repository):
        cache.put("EUR/USD", "5min", [bar(i) for i in range(1, 6)], 0)
        updater = IncrementalCandleUpdater(StubProvider([bar(i) for i in range(3, 9)]), cache, repository)

        updater.sync("EUR/USD", "5min", 150)

        stored = repository.recent("EUR/USD", "5min", 100)
        assert timestamps(stored) == [bar(i).ts for i in range(6, 9)]

    def test_unsorted_cache_is_reordered(self, cache):
        cache.put("EUR/USD", "5min", [bar(3), bar(1), bar(2)], 0)
        updater = IncrementalCandleUpdater(StubProvider([bar(4)]), cache)

        result = updater.sync("EUR/USD", "5min", 150)

        assert timestamps(result) == [bar(i).ts for i in range(1, 5)]

    def test_empty_tail_returns_cached_without_writes(self, cache, backend, repository):
        cache.put("EUR/USD", "5min", [bar(2), bar(1)], 0)
        raw_before = backend.get(candle_cache_key("EUR/USD", "5min"))
        updater = IncrementalCandleUpdater(StubProvider({"prices": []}), cache, repository)

        result = updater.sync("EUR/USD", "5min", 150)

        assert timestamps(result) == [bar(1).ts, bar(2).ts]
        assert backend.get(candle_cache_key("EUR/USD", "5min")) == raw_before
        assert repository.count("EUR/USD", "5min") == 0

    def test_repeated_sync_is_idempotent(self, cache, repository):
        fresh = [bar(i) for i in range(3, 6)]
        cache.put("EUR/USD", "5min", [bar(i) for i in range(0, 4)], 0)
        updater = IncrementalCandleUpdater(StubProvider(list(fresh), list(fresh)), cache, repository)

        first = updater.sync("EUR/USD", "5min", 150)
        second = updater.sync("EUR/USD", "5min", 150)

        assert first == second
        assert cache.get("EUR/USD", "5min") == second
        assert repository.count("EUR/USD", "5min") == 2

    def test_series_is_strictly_increasing(self, cache):
        cache.put("EUR/USD", "5min", [bar(0), bar(2), bar(4)], 0)
        updater = IncrementalCandleUpdater(StubProvider([bar(4), bar(3), bar(1), bar(5)]), cache)

        result = updater.sync("EUR/USD", "5min", 150)

        stamps = timestamps(result)
        assert all(earlier < later for earlier, later in zip(stamps, stamps[1:], strict=False))
        assert len(stamps) == 6


class TestTimestampNormalisation:
    def test_off_grid_bar_replaces_bucket_when_enabled(self, cache):
        cached = bar_at(BASE)
        fresh = bar_at(BASE + timedelta(minutes=2), close=1.2)
        cache.put("EUR/USD", "5min", [cached], 0)
        updater = IncrementalCandleUpdater(StubProvider([fresh]), cache, normalize_timestamps=True)

        assert updater.sync("EUR/USD", "5min", 150) == [fresh]

    def test_off_grid_bar_is_kept_when_disabled(self, cache):
        cached = bar_at(BASE)
        fresh = bar_at(BASE + timedelta(minutes=2), close=1.2)
        cache.put("EUR/USD", "5min", [cached], 0)
        updater = IncrementalCandleUpdater(StubProvider([fresh]), cache)

        assert updater.sync("EUR/USD", "5min", 150) == [cached, fresh]

    def test_thirty_minute_buckets(self, cache):
        cached = bar_at(BASE)
        fresh = bar_at(BASE + timedelta(minutes=20), close=1.3)
        cache.put("EUR/USD", "30min", [cached], 0)
        updater = IncrementalCandleUpdater(StubProvider([fresh]), cache, normalize_timestamps=True)

        assert updater.sync("EUR/USD", "30min", 30) == [fresh]


class TestTradingSession:
    def test_only_session_bars_reach_database(self, cache, repository):
        day = datetime(2024, 3, 4, tzinfo=UTC)
        bars = [
            bar_at(day.replace(hour=6, minute=55)),
            bar_at(day.replace(hour=7, minute=0)),
            bar_at(day.replace(hour=22, minute=55)),
            bar_at(day.replace(hour=23, minute=0)),
        ]
        updater = IncrementalCandleUpdater(StubProvider(bars), cache, repository)

        result = updater.sync("EUR/USD", "5min", 150)

        assert len(result) == 4
        assert len(cache.get("EUR/USD", "5min")) == 4
        stored = repository.recent("EUR/USD", "5min", 10)
        assert [b.ts.hour for b in stored] == [7, 22]


class TestFailureHandling:
    def test_database_failure_does_not_fail_sync(self, cache):
        database = CandleDatabase(":memory:")
        repository = CandleRepository(database)
        database.close()
        updater = IncrementalCandleUpdater(StubProvider([bar(0), bar(1)]), cache, repository)

        result = updater.sync("EUR/USD", "5min", 150)

        assert len(result) == 2
        assert cache.get("EUR/USD", "5min") == result

    def test_provider_failure_propagates_without_writes(self, cache, backend):
        cache.put("EUR/USD", "5min", [bar(0)], 0)
        raw_before = backend.get(candle_cache_key("EUR/USD", "5min"))
        locks = InMemoryLockManager()
        provider = StubProvider(ProviderError("upstream down", provider_name="stub"))
        updater = IncrementalCandleUpdater(provider, cache, locks=locks)

        with pytest.raises(ProviderError):
            updater.sync("EUR/USD", "5min", 150)

        assert backend.get(candle_cache_key("EUR/USD", "5min")) == raw_before
        assert not locks.is_locked(sync_lock_name("EUR/USD", "5min"))

    def test_bootstrap_provider_failure_leaves_cache_empty(self, cache):
        updater = IncrementalCandleUpdater(StubProvider(RuntimeError("boom")), cache)

        with pytest.raises(RuntimeError):
            updater.sync("EUR/USD", "5min", 150)

        assert cache.get("EUR/USD", "5min") is None

    def test_lock_timeout_has_no_side_effects(self, cache):
        locks = InMemoryLockManager()
        held = locks.acquire(sync_lock_name("EUR-USD", "5min"), ttl=60, wait=0)
        assert held is not None
        provider = StubProvider([bar(0)])
        updater = IncrementalCandleUpdater(provider, cache, locks=locks, lock_wait=0.05)

        with pytest.raises(LockTimeoutError) as excinfo:
            updater.sync("EUR/USD", "5min", 150)

        assert excinfo.value.lock_name == "candles:sync:EURUSD:5min"
        assert provider.calls == []
        assert cache.get("EUR/USD", "5min") is None

    def test_lock_is_released_after_success(self, cache):
        locks = InMemoryLockManager()
        updater = IncrementalCandleUpdater(StubProvider([bar(0)]), cache, locks=locks)

        updater.sync("EUR/USD", "5min", 150)

        assert not locks.is_locked(sync_lock_name("EUR/USD", "5min"))


@pytest.mark.parametrize("variant", ["EURUSD", "EUR-USD", "eur usd", " eur/usd "])
def test_symbol_variants_share_cache_and_rows(cache, repository, variant):
    updater = IncrementalCandleUpdater(StubProvider([bar(0), bar(1)]), cache, repository)
    written = updater.sync("EUR/USD", "5min", 150)

    assert cache.get(variant, "5min") == written
    assert timestamps(repository.recent(variant, "5min", 10)) == timestamps(written)
