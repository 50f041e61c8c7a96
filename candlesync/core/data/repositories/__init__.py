"""仓储模块."""

from candlesync.core.data.repositories.candle import CandleRepository

__all__ = ["CandleRepository"]
