"""数据库存储模型."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from candlesync.core.models import Bar, as_utc


class CandleRecord(BaseModel):
    """``candles`` 表中的一行."""

    pair: str
    interval: str
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int | None = None
    provider: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_bar(cls, bar: Bar, pair: str, interval: str, provider: str | None = None) -> "CandleRecord":
        return cls(
            pair=pair,
            interval=interval,
            timestamp=bar.ts,
            open=Decimal(str(bar.open)),
            high=Decimal(str(bar.high)),
            low=Decimal(str(bar.low)),
            close=Decimal(str(bar.close)),
            volume=int(bar.volume) if bar.volume is not None else None,
            provider=provider,
        )

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CandleRecord":
        return cls(**row)

    def to_bar(self) -> Bar:
        """Stored timestamps are naive UTC."""
        return Bar(
            ts=as_utc(self.timestamp),
            open=float(self.open),
            high=float(self.high),
            low=float(self.low),
            close=float(self.close),
            volume=float(self.volume) if self.volume else None,
        )

    def storage_timestamp(self) -> datetime:
        return as_utc(self.timestamp).replace(tzinfo=None)
