"""Read-only candle access straight from the durable store."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from candlesync.core.data.repositories import CandleRepository
from candlesync.core.exceptions import PersistenceError
from candlesync.core.logging import get_logger
from candlesync.core.models import Bar
from candlesync.core.providers import PriceProvider
from candlesync.core.services.candles import CandleUpdaterContract

log = get_logger(__name__)


class DatabaseCandleProvider(CandleUpdaterContract):
    """Serves candles from the ``candles`` table for backtests.

    No lock, no cache and no upstream calls: every symbol variant is queried
    and the newest ``max(bootstrap_limit, overlap_bars + tail_fetch_limit)``
    bars are returned oldest first. A failed read yields an empty series.
    """

    def __init__(self, repository: CandleRepository):
        self.repository = repository

    def sync(
        self,
        symbol: str,
        interval: str,
        bootstrap_limit: int,
        overlap_bars: int = 0,
        tail_fetch_limit: int = 0,
    ) -> list[Bar]:
        limit = max(bootstrap_limit, overlap_bars + tail_fetch_limit)
        if limit <= 0:
            return []
        try:
            return self.repository.recent(symbol, interval, limit)
        except PersistenceError as exc:
            log.warning(
                "Database candle read failed",
                symbol=symbol,
                interval=interval,
                error=exc.message,
            )
            return []


class DatabasePriceProvider(PriceProvider):
    """Adapts :class:`DatabaseCandleProvider` to the provider interface."""

    name = "database"

    def __init__(self, candles: DatabaseCandleProvider):
        self.candles = candles

    def get_candles(self, symbol: str, params: Mapping[str, Any]) -> list[Bar]:
        return self.candles.sync(
            symbol,
            params.get("interval", "5min"),
            int(params.get("outputsize", 150)),
            int(params.get("overlap", 0)),
            int(params.get("outputsize", 0)),
        )
