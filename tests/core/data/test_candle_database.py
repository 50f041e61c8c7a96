"""Tests for the DuckDB candle store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import duckdb
import pytest

from candlesync.core.data.storage import CandleDatabase, CandleRecord, create_candle_tables, table_exists
from candlesync.core.exceptions import PersistenceError
from candlesync.core.models import Bar

BASE = datetime(2024, 3, 4, 10, 0, tzinfo=UTC)


def record(index: int, close: float = 1.1, pair: str = "EURUSD", interval: str = "5min", volume=100) -> CandleRecord:
    return CandleRecord(
        pair=pair,
        interval=interval,
        timestamp=BASE + timedelta(minutes=5 * index),
        open=Decimal(str(close)),
        high=Decimal(str(close)),
        low=Decimal(str(close)),
        close=Decimal(str(close)),
        volume=volume,
        provider="test",
    )


class TestSchema:
    def test_candles_table_created(self, database):
        assert table_exists(database.connection)
        assert not table_exists(database.connection, "missing_table")

    def test_schema_creation_is_idempotent(self, database):
        create_candle_tables(database.connection)
        create_candle_tables(database.connection)

        assert table_exists(database.connection)

    def test_unique_key_rejects_duplicate_rows(self, database):
        insert = (
            'INSERT INTO candles (pair, "interval", timestamp, open, high, low, close) '
            "VALUES ('EURUSD', '5min', TIMESTAMP '2024-03-04 10:00:00', 1, 1, 1, 1)"
        )
        database.connection.execute(insert)

        with pytest.raises(duckdb.ConstraintException):
            database.connection.execute(insert)


class TestUpsert:
    def test_insert_then_update(self, database):
        first = database.upsert_candles([record(i, close=1.1) for i in range(3)])
        second = database.upsert_candles([record(i, close=1.2) for i in range(2, 5)])

        assert (first.inserted, first.updated) == (3, 0)
        assert (second.inserted, second.updated) == (2, 1)
        assert second.written == 3
        assert database.count(["EURUSD"], "5min") == 5

        rows = database.query_candles(["EURUSD"], "5min")
        closes = {row.timestamp: float(row.close) for row in rows}
        assert closes[datetime(2024, 3, 4, 10, 10)] == pytest.approx(1.2)
        assert closes[datetime(2024, 3, 4, 10, 5)] == pytest.approx(1.1)

    def test_repeated_upsert_is_idempotent(self, database):
        batch = [record(i) for i in range(4)]

        database.upsert_candles(batch)
        database.upsert_candles(batch)

        assert database.count(["EURUSD"], "5min") == 4

    def test_duplicate_keys_in_one_batch_keep_last(self, database):
        result = database.upsert_candles([record(0, close=1.1), record(0, close=1.3)])

        assert result.inserted == 1
        assert float(database.latest_for("EURUSD", "5min").close) == pytest.approx(1.3)

    def test_empty_batch_is_a_no_op(self, database):
        result = database.upsert_candles([])

        assert result.written == 0

    def test_timestamps_are_stored_as_naive_utc(self, database):
        local = datetime(2024, 3, 4, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        bar = Bar(ts=local, open=1.1, high=1.1, low=1.1, close=1.1)
        database.upsert_candles([CandleRecord.from_bar(bar, "EURUSD", "5min")])

        stored = database.connection.execute("SELECT timestamp FROM candles").fetchone()[0]

        assert stored == datetime(2024, 3, 4, 10, 0)
        assert database.latest_for("EURUSD", "5min").to_bar().ts == BASE

    def test_prices_are_rounded_to_five_decimals(self, database):
        database.upsert_candles([record(0, close=1.123456)])

        assert database.latest_for("EURUSD", "5min").close == Decimal("1.12346")

    def test_missing_volume_is_stored_as_null(self, database):
        database.upsert_candles([record(0, volume=None)])

        latest = database.latest_for("EURUSD", "5min")
        assert latest.volume is None
        assert latest.to_bar().volume is None

    def test_closed_database_raises_persistence_error(self):
        database = CandleDatabase(":memory:")
        database.close()

        with pytest.raises(PersistenceError):
            database.upsert_candles([record(0)])


class TestQueries:
    @pytest.fixture(autouse=True)
    def _seed(self, database):
        database.upsert_candles([record(i) for i in range(6)])
        database.upsert_candles([record(i, pair="EUR/USD") for i in range(6, 8)])
        database.upsert_candles([record(i, interval="30min") for i in range(2)])

    def test_query_orders_newest_first_and_limits(self, database):
        rows = database.query_candles(["EURUSD"], "5min", limit=2)

        assert [row.timestamp for row in rows] == [datetime(2024, 3, 4, 10, 25), datetime(2024, 3, 4, 10, 20)]

    def test_query_spans_several_pairs(self, database):
        rows = database.query_candles(["EURUSD", "EUR/USD"], "5min")

        assert len(rows) == 8
        assert rows[0].pair == "EUR/USD"

    def test_distinct_timestamps_dedups_before_limit(self, database):
        database.upsert_candles([record(i, pair="EUR/USD") for i in range(4, 6)])

        plain = database.query_candles(["EURUSD", "EUR/USD"], "5min", limit=4)
        distinct = database.query_candles(["EURUSD", "EUR/USD"], "5min", limit=4, distinct_timestamps=True)

        assert len({row.timestamp for row in plain}) == 3
        naive = BASE.replace(tzinfo=None)
        assert [row.timestamp for row in distinct] == [naive + timedelta(minutes=5 * i) for i in (7, 6, 5, 4)]

    def test_query_time_window(self, database):
        rows = database.query_candles(
            ["EURUSD"], "5min", start=BASE + timedelta(minutes=5), end=BASE + timedelta(minutes=15)
        )

        assert len(rows) == 3

    def test_query_without_pairs_is_empty(self, database):
        assert database.query_candles([], "5min") == []

    def test_count_filters(self, database):
        assert database.count() == 10
        assert database.count(["EURUSD"]) == 8
        assert database.count(["EURUSD"], "30min") == 2
        assert database.count(["EURUSD", "EUR/USD"], "5min", start=BASE + timedelta(minutes=25)) == 3

    def test_latest_for_unknown_pair(self, database):
        assert database.latest_for("GBPUSD", "5min") is None
