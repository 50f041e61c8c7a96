"""Candle freshness check."""

from datetime import datetime
from typing import Any

from candlesync.core.data.cache import CandleCacheContract
from candlesync.core.models import as_utc, utc_now

# A 5-minute tail older than this is considered stale.
STALE_AFTER_SECONDS = 360


def candle_health(pair: str, cache: CandleCacheContract, now: datetime | None = None) -> dict[str, Any]:
    """Report the cached 5min/30min tails for ``pair`` and whether the 5min series is fresh."""
    five = cache.tail_ts(pair, "5min")
    thirty = cache.tail_ts(pair, "30min")
    now = as_utc(now) if now is not None else utc_now()

    status = "ok"
    if five is None or (now - five).total_seconds() > STALE_AFTER_SECONDS:
        status = "stale"

    return {
        "pair": pair,
        "5m_tail": five.isoformat() if five else None,
        "30m_tail": thirty.isoformat() if thirty else None,
        "now_utc": now.isoformat(),
        "status": status,
    }
