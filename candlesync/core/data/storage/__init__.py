"""数据库存储模块."""

from candlesync.core.data.storage.database import CandleDatabase, UpsertResult
from candlesync.core.data.storage.duckdb_factory import CandleDuckDBFactory, DuckDBFactoryConfig
from candlesync.core.data.storage.models import CandleRecord
from candlesync.core.data.storage.schema import CANDLES_TABLE, create_candle_tables, table_exists

__all__ = [
    "CANDLES_TABLE",
    "CandleDatabase",
    "CandleDuckDBFactory",
    "CandleRecord",
    "DuckDBFactoryConfig",
    "UpsertResult",
    "create_candle_tables",
    "table_exists",
]
