"""DuckDB缓存实现."""

import threading
import time

import duckdb
from duckdb import DuckDBPyConnection

from candlesync.core.data.cache.base import CacheStrategy
from candlesync.core.data.storage.duckdb_factory import CandleDuckDBFactory, DuckDBFactoryConfig
from candlesync.core.exceptions import CacheError
from candlesync.core.logging import get_logger

log = get_logger(__name__)


class SimpleDuckDBCache(CacheStrategy):
    """基于DuckDB的持久化缓存."""

    name = "duckdb"

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._lock = threading.RLock()
        self._conn: DuckDBPyConnection | None = None
        self._init_database()

    def _init_database(self) -> None:
        self._conn = CandleDuckDBFactory(DuckDBFactoryConfig(database=self.db_path)).create_connection()
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS cache (
                key VARCHAR PRIMARY KEY,
                value VARCHAR NOT NULL,
                expiry DOUBLE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_cache_expiry ON cache(expiry)")

    def _connection(self) -> DuckDBPyConnection:
        if self._conn is None:
            raise CacheError("DuckDB cache connection is closed", cache_type=self.name)
        return self._conn

    def get(self, key: str) -> str | None:
        try:
            with self._lock:
                row = self._connection().execute(
                    "SELECT value FROM cache WHERE key = ? AND (expiry IS NULL OR expiry > ?)",
                    [key, time.time()],
                ).fetchone()
        except duckdb.Error as exc:
            log.warning("duckdb cache read failed", key=key, error=str(exc))
            return None
        return row[0] if row else None

    def set(self, key: str, value: str, ttl: int) -> None:
        expiry = time.time() + ttl if ttl > 0 else None
        try:
            with self._lock:
                self._connection().execute(
                    "INSERT OR REPLACE INTO cache (key, value, expiry) VALUES (?, ?, ?)",
                    [key, value, expiry],
                )
        except duckdb.Error as exc:
            raise CacheError(f"Failed to write cache key {key}: {exc}", cache_type=self.name) from exc

    def delete(self, key: str) -> bool:
        with self._lock:
            existed = self._connection().execute("SELECT 1 FROM cache WHERE key = ?", [key]).fetchone()
            self._connection().execute("DELETE FROM cache WHERE key = ?", [key])
        return existed is not None

    def clear(self) -> None:
        with self._lock:
            self._connection().execute("DELETE FROM cache")

    def get_ttl(self, key: str) -> int | None:
        with self._lock:
            row = self._connection().execute(
                "SELECT expiry FROM cache WHERE key = ? AND (expiry IS NULL OR expiry > ?)",
                [key, time.time()],
            ).fetchone()
        if row is None:
            return None
        if row[0] is None:
            return -1
        return max(0, int(row[0] - time.time()))

    def cleanup_expired(self) -> int:
        """清理过期缓存项."""
        now = time.time()
        with self._lock:
            conn = self._connection()
            count = conn.execute(
                "SELECT COUNT(*) FROM cache WHERE expiry IS NOT NULL AND expiry <= ?", [now]
            ).fetchone()
            conn.execute("DELETE FROM cache WHERE expiry IS NOT NULL AND expiry <= ?", [now])
        return int(count[0]) if count else 0

    def is_connected(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        """关闭数据库连接."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
