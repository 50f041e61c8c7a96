"""K线仓储实现."""

from __future__ import annotations

from datetime import datetime

from candlesync.core.data.storage import CandleDatabase, CandleRecord, UpsertResult
from candlesync.core.exceptions import PersistenceError
from candlesync.core.logging import get_logger
from candlesync.core.models import Bar, TradingSession, sort_bars
from candlesync.core.services.symbol_normalization import compact_symbol, symbol_variants

log = get_logger(__name__)


class CandleRepository:
    """Durable candle store used for backtests.

    Only bars inside the trading session reach the table; rows are keyed by
    the compact pair code (``EURUSD``) and read back across every symbol
    variant so rows written under older spellings are still found.
    """

    def __init__(self, database: CandleDatabase, session: TradingSession | None = None):
        self.database = database
        self.session = session or TradingSession()

    def in_session(self, bars: list[Bar]) -> list[Bar]:
        return [bar for bar in bars if self.session.contains(bar.ts)]

    def store(self, symbol: str, interval: str, bars: list[Bar], provider: str | None = None) -> UpsertResult:
        """Upsert session bars; database errors propagate as :class:`PersistenceError`."""
        eligible = self.in_session(bars)
        skipped = len(bars) - len(eligible)
        if skipped:
            log.info(
                "Filtered out candles outside market hours",
                symbol=symbol,
                interval=interval,
                filtered_count=skipped,
            )
        if not eligible:
            return UpsertResult()

        pair = compact_symbol(symbol)
        records = [CandleRecord.from_bar(bar, pair, interval, provider) for bar in eligible]
        return self.database.upsert_candles(records)

    def persist(self, symbol: str, interval: str, bars: list[Bar], provider: str | None = None) -> UpsertResult | None:
        """Best-effort :meth:`store`: failures are logged and swallowed, returning None."""
        try:
            return self.store(symbol, interval, bars, provider)
        except PersistenceError as exc:
            log.warning(
                "Failed to persist candles to database",
                symbol=symbol,
                interval=interval,
                error=exc.message,
                bar_count=len(bars),
            )
            return None

    def recent(self, symbol: str, interval: str, limit: int) -> list[Bar]:
        """Newest ``limit`` bars across all symbol variants, oldest first."""
        records = self.database.query_candles(symbol_variants(symbol), interval, limit=limit, distinct_timestamps=True)
        return _to_series(records)

    def between(self, symbol: str, interval: str, start: datetime, end: datetime) -> list[Bar]:
        records = self.database.query_candles(
            symbol_variants(symbol), interval, start=start, end=end, distinct_timestamps=True
        )
        return _to_series(records)

    def count(self, symbol: str, interval: str, start: datetime | None = None, end: datetime | None = None) -> int:
        return self.database.count(symbol_variants(symbol), interval, start=start, end=end)


def _to_series(records: list[CandleRecord]) -> list[Bar]:
    return sort_bars([record.to_bar() for record in records])
