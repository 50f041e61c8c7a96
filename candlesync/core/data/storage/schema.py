"""数据库表结构和初始化."""

from duckdb import DuckDBPyConnection

CANDLES_TABLE = "candles"

CANDLES_DDL = """
    CREATE TABLE IF NOT EXISTS candles (
        pair VARCHAR NOT NULL,
        "interval" VARCHAR NOT NULL,
        timestamp TIMESTAMP NOT NULL,
        open DECIMAL(18, 5) NOT NULL,
        high DECIMAL(18, 5) NOT NULL,
        low DECIMAL(18, 5) NOT NULL,
        close DECIMAL(18, 5) NOT NULL,
        volume BIGINT,
        provider VARCHAR,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT candles_unique_key UNIQUE (pair, "interval", timestamp)
    )
"""

INDEXES = (
    'CREATE INDEX IF NOT EXISTS idx_candles_pair_interval ON candles(pair, "interval")',
    "CREATE INDEX IF NOT EXISTS idx_candles_timestamp ON candles(timestamp)",
)


def create_candle_tables(conn: DuckDBPyConnection) -> None:
    """创建K线表及索引 (幂等)."""
    conn.execute(CANDLES_DDL)
    for statement in INDEXES:
        conn.execute(statement)


def table_exists(conn: DuckDBPyConnection, table: str = CANDLES_TABLE) -> bool:
    row = conn.execute(
        "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
        [table],
    ).fetchone()
    return bool(row and row[0])
