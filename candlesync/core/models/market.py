"""Market data value types."""

from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Bar(BaseModel):
    """单根K线 (OHLCV).

    ``ts`` is the bar open time and is always held in UTC: naive datetimes are
    taken to be UTC already, aware ones are converted.
    """

    model_config = ConfigDict(frozen=True)

    ts: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float | None = None

    @field_validator("ts")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_serializer("ts", when_used="json")
    def serialize_ts(self, value: datetime) -> str:
        """Serialize the timestamp to an ISO-8601 string."""
        return value.isoformat()

    def __lt__(self, other: "Bar") -> bool:
        return self.ts < other.ts


CandleSeries = list[Bar]


@dataclass(frozen=True, slots=True)
class TradingSession:
    """UTC hour window, both ends inclusive (07:00-22:59 by default)."""

    start_hour: int = 7
    end_hour: int = 22

    def contains(self, ts: datetime) -> bool:
        return self.start_hour <= as_utc(ts).hour <= self.end_hour


def sort_bars(bars: list[Bar]) -> list[Bar]:
    """Return ``bars`` ordered oldest to newest."""
    return sorted(bars, key=lambda bar: bar.ts)


def utc_now() -> datetime:
    return datetime.now(UTC)
