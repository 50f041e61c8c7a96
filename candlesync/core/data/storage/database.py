"""K线数据库管理器."""

from __future__ import annotations

import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

import duckdb
from duckdb import DuckDBPyConnection

from candlesync.core.exceptions import PersistenceError

from .duckdb_factory import CandleDuckDBFactory, DuckDBFactoryConfig
from .models import CandleRecord
from .schema import create_candle_tables

_COLUMNS = 'pair, "interval", timestamp, open, high, low, close, volume, provider, created_at, updated_at'

_INSERT_IGNORE = """
    INSERT INTO candles (pair, "interval", timestamp, open, high, low, close, volume, provider, created_at, updated_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT DO NOTHING
"""

_UPDATE_OHLCV = """
    UPDATE candles
    SET open = ?, high = ?, low = ?, close = ?, volume = ?, updated_at = ?
    WHERE pair = ? AND "interval" = ? AND timestamp = ?
"""


@dataclass(frozen=True, slots=True)
class UpsertResult:
    inserted: int = 0
    updated: int = 0

    @property
    def written(self) -> int:
        return self.inserted + self.updated


class CandleDatabase:
    """``candles`` 表的读写接口.

    写入只做插入或更新, 从不删除. 所有语句通过同一连接串行执行.
    """

    def __init__(self, db_path: str = ":memory:", factory: CandleDuckDBFactory | None = None):
        self.factory = factory or CandleDuckDBFactory(DuckDBFactoryConfig(database=db_path))
        self.db_path = str(self.factory.config.database)
        self._lock = threading.RLock()
        self.connection: DuckDBPyConnection | None = self.factory.create_connection()
        create_candle_tables(self.connection)

    def close(self) -> None:
        """关闭数据库连接."""
        with self._lock:
            if self.connection is not None:
                self.connection.close()
                self.connection = None

    def _conn(self) -> DuckDBPyConnection:
        if self.connection is None:
            raise PersistenceError("Database connection is closed", operation="connect")
        return self.connection

    @contextmanager
    def transaction(self) -> Iterator[DuckDBPyConnection]:
        """事务上下文管理器."""
        with self._lock:
            conn = self._conn()
            conn.execute("BEGIN TRANSACTION")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def upsert_candles(self, records: Sequence[CandleRecord]) -> UpsertResult:
        """Insert ignoring key conflicts, then update OHLCV of rows that already existed."""
        if not records:
            return UpsertResult()

        batch: dict[tuple[str, str, datetime], CandleRecord] = {}
        for record in records:
            batch[(record.pair, record.interval, record.storage_timestamp())] = record

        now = datetime.now(UTC).replace(tzinfo=None)
        try:
            with self.transaction() as conn:
                existing = self._existing_keys(conn, batch)
                conn.executemany(
                    _INSERT_IGNORE,
                    [
                        [pair, interval, ts, *_prices(r), r.volume, r.provider, now, now]
                        for (pair, interval, ts), r in batch.items()
                    ],
                )
                updates = [
                    [*_prices(r), r.volume, now, pair, interval, ts]
                    for (pair, interval, ts), r in batch.items()
                    if (pair, interval, ts) in existing
                ]
                if updates:
                    conn.executemany(_UPDATE_OHLCV, updates)
        except duckdb.Error as exc:
            raise PersistenceError(f"Candle upsert failed: {exc}", operation="upsert") from exc

        return UpsertResult(inserted=len(batch) - len(updates), updated=len(updates))

    def _existing_keys(
        self, conn: DuckDBPyConnection, batch: dict[tuple[str, str, datetime], CandleRecord]
    ) -> set[tuple[str, str, datetime]]:
        groups: dict[tuple[str, str], list[datetime]] = {}
        for pair, interval, ts in batch:
            groups.setdefault((pair, interval), []).append(ts)

        found: set[tuple[str, str, datetime]] = set()
        for (pair, interval), stamps in groups.items():
            rows = conn.execute(
                'SELECT timestamp FROM candles WHERE pair = ? AND "interval" = ? AND timestamp BETWEEN ? AND ?',
                [pair, interval, min(stamps), max(stamps)],
            ).fetchall()
            found.update((pair, interval, row[0]) for row in rows)
        return found

    def query_candles(
        self,
        pairs: Sequence[str],
        interval: str,
        limit: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        distinct_timestamps: bool = False,
    ) -> list[CandleRecord]:
        """Most recent rows first.

        With ``distinct_timestamps`` only one row per timestamp is returned
        (the most recently updated one) before ``limit`` is applied, so rows
        stored under several spellings of a pair count once.
        """
        if not pairs:
            return []

        where = [f"pair IN ({', '.join('?' for _ in pairs)})", '"interval" = ?']
        params: list[object] = [*pairs, interval]
        if start is not None:
            where.append("timestamp >= ?")
            params.append(_naive_utc(start))
        if end is not None:
            where.append("timestamp <= ?")
            params.append(_naive_utc(end))

        query = f"SELECT {_COLUMNS} FROM candles WHERE {' AND '.join(where)}"
        if distinct_timestamps:
            query += " QUALIFY row_number() OVER (PARTITION BY timestamp ORDER BY updated_at DESC, pair) = 1"
        query += " ORDER BY timestamp DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(int(limit))

        try:
            with self._lock:
                conn = self._conn()
                rows = conn.execute(query, params).fetchall()
                columns = [desc[0] for desc in conn.description]
        except duckdb.Error as exc:
            raise PersistenceError(f"Candle query failed: {exc}", operation="query") from exc

        return [CandleRecord.from_row(dict(zip(columns, row, strict=False))) for row in rows]

    def latest_for(self, pair: str, interval: str) -> CandleRecord | None:
        """获取最新一根K线."""
        records = self.query_candles([pair], interval, limit=1)
        return records[0] if records else None

    def count(
        self,
        pairs: Sequence[str] | None = None,
        interval: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        where: list[str] = []
        params: list[object] = []
        if pairs:
            where.append(f"pair IN ({', '.join('?' for _ in pairs)})")
            params.extend(pairs)
        if interval:
            where.append('"interval" = ?')
            params.append(interval)
        if start is not None:
            where.append("timestamp >= ?")
            params.append(_naive_utc(start))
        if end is not None:
            where.append("timestamp <= ?")
            params.append(_naive_utc(end))

        query = "SELECT COUNT(*) FROM candles"
        if where:
            query += " WHERE " + " AND ".join(where)
        try:
            with self._lock:
                row = self._conn().execute(query, params).fetchone()
        except duckdb.Error as exc:
            raise PersistenceError(f"Candle count failed: {exc}", operation="count") from exc
        return int(row[0]) if row else 0

    def __enter__(self) -> CandleDatabase:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _prices(record: CandleRecord) -> list[float]:
    return [float(record.open), float(record.high), float(record.low), float(record.close)]
