"""
K线健康检查路由
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from candlesync.core.data.cache import CandleCacheContract
from candlesync.core.health import candle_health
from candlesync.core.logging import get_logger

router = APIRouter()

log = get_logger(__name__)


def get_candle_cache(request: Request) -> CandleCacheContract:
    return request.app.state.candle_cache


@router.get("/candles/health/{pair}")
def candle_health_check(pair: str, cache: CandleCacheContract = Depends(get_candle_cache)) -> dict[str, Any]:
    """
    K线缓存新鲜度检查

    5分钟K线尾部缺失或超过360秒即视为 stale.
    """
    report = candle_health(pair, cache)
    log.info("Candle health check completed", symbol=pair, status=report["status"])
    return report
