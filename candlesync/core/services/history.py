"""Historical backfill of the durable candle store."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from candlesync.core.data.repositories import CandleRepository
from candlesync.core.logging import get_logger, log_context
from candlesync.core.models import utc_now
from candlesync.core.providers import PriceProvider
from candlesync.core.services.candles import normalize_candles

log = get_logger(__name__)

SEED_INTERVALS = ("5min", "30min")
MAX_RECORDS_PER_CALL = 4800  # upstream caps at 5000, keep a buffer
MAX_DAYS_PER_CHUNK = 90
CHUNK_OUTPUTSIZE = 5000
RATE_LIMIT_SECONDS = 2.5
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def records_per_day(interval: str) -> int:
    # 15 session hours at 12 or 2 bars per hour
    return 180 if interval == "5min" else 30


def days_per_chunk(interval: str) -> int:
    return min(MAX_DAYS_PER_CHUNK, MAX_RECORDS_PER_CALL // records_per_day(interval))


def date_chunks(interval: str, start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
    """Split ``[start, end]`` into session-aligned windows small enough for one fetch."""
    step = timedelta(days=days_per_chunk(interval))
    chunks: list[tuple[datetime, datetime]] = []
    current = start
    while current < end:
        chunk_end = min(current + step, end)
        chunks.append(
            (
                current.replace(hour=7, minute=0, second=0, microsecond=0),
                chunk_end.replace(hour=22, minute=0, second=0, microsecond=0),
            )
        )
        current = (chunk_end + timedelta(days=1)).replace(hour=7, minute=0, second=0, microsecond=0)
    return chunks


def _years_back(value: datetime, years: int) -> datetime:
    try:
        return value.replace(year=value.year - years)
    except ValueError:
        # 29 February
        return value.replace(year=value.year - years, day=28)


@dataclass
class SeedReport:
    """Outcome of seeding one pair."""

    pair: str
    inserted: dict[str, int] = field(default_factory=dict)
    existing: dict[str, int] = field(default_factory=dict)
    failed_chunks: int = 0

    @property
    def total_inserted(self) -> int:
        return sum(self.inserted.values())


class HistorySeeder:
    """Backfills several years of session candles, one date chunk per upstream call."""

    def __init__(
        self,
        provider: PriceProvider,
        repository: CandleRepository,
        sleep: Callable[[float], None] = time.sleep,
        rate_limit_seconds: float = RATE_LIMIT_SECONDS,
    ):
        self.provider = provider
        self.repository = repository
        self._sleep = sleep
        self.rate_limit_seconds = rate_limit_seconds
        self.provider_name = getattr(provider, "name", None)

    def seed(
        self,
        pair: str,
        years: int = 3,
        intervals: Sequence[str] = SEED_INTERVALS,
        rate_limit: bool = True,
        now: datetime | None = None,
    ) -> SeedReport:
        report = SeedReport(pair=pair)
        end = (now or utc_now()).replace(hour=22, minute=0, second=0, microsecond=0)
        start = _years_back(end, years).replace(hour=7)

        for interval in intervals:
            with log_context(symbol=pair, interval=interval):
                existing = self.repository.count(pair, interval, start, end)
                inserted, failed = self._seed_interval(pair, interval, start, end, rate_limit)
                report.existing[interval] = existing
                report.inserted[interval] = inserted
                report.failed_chunks += failed
                log.info(
                    "Historical candle seeding completed",
                    period=f"{years} years",
                    inserted=inserted,
                    existing_skipped=existing,
                    failed_chunks=failed,
                )
        return report

    def _seed_interval(
        self, pair: str, interval: str, start: datetime, end: datetime, rate_limit: bool
    ) -> tuple[int, int]:
        inserted = 0
        failed = 0
        for index, (chunk_start, chunk_end) in enumerate(date_chunks(interval, start, end)):
            if index > 0 and rate_limit:
                self._sleep(self.rate_limit_seconds)

            params = {
                "interval": interval,
                "outputsize": CHUNK_OUTPUTSIZE,
                "start_date": chunk_start.strftime(_DATE_FORMAT),
                "end_date": chunk_end.strftime(_DATE_FORMAT),
                "timezone": "UTC",
            }
            try:
                bars = normalize_candles(self.provider.get_candles(pair, params))
                if bars:
                    inserted += self.repository.store(pair, interval, bars, self.provider_name).inserted
            except Exception as exc:
                failed += 1
                log.warning(
                    "Candle seeding chunk failed",
                    chunk_start=params["start_date"],
                    chunk_end=params["end_date"],
                    error=str(exc),
                )
        return inserted, failed
