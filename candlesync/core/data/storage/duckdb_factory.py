"""DuckDB connections for the candle store."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

import duckdb
from duckdb import DuckDBPyConnection

MEMORY = ":memory:"


def _literal(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


@dataclass(frozen=True)
class DuckDBFactoryConfig:
    """Where the candle store lives and which settings each connection gets."""

    database: str | Path = MEMORY
    read_only: bool = False
    settings: Mapping[str, object] = field(default_factory=lambda: {"threads": 1})

    @property
    def is_memory(self) -> bool:
        return str(self.database) == MEMORY


class CandleDuckDBFactory:
    """Opens DuckDB connections; file databases get their directory created first."""

    def __init__(self, config: DuckDBFactoryConfig | None = None) -> None:
        self.config = config or DuckDBFactoryConfig()

    def create_connection(self) -> DuckDBPyConnection:
        if not self.config.is_memory and not self.config.read_only:
            Path(self.config.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        database = MEMORY if self.config.is_memory else str(Path(self.config.database).expanduser())
        conn = duckdb.connect(database=database, read_only=self.config.read_only)
        for name, value in self.config.settings.items():
            conn.execute(f"SET {name} = {_literal(value)}")
        return conn

    @contextmanager
    def connection(self) -> Iterator[DuckDBPyConnection]:
        conn = self.create_connection()
        try:
            yield conn
        finally:
            conn.close()


__all__ = ["CandleDuckDBFactory", "DuckDBFactoryConfig"]
