"""Price provider abstraction."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


class PriceProvider(ABC):
    """Upstream source of raw candle payloads.

    ``params`` may carry ``interval``, ``outputsize``, ``start_date``,
    ``end_date`` and ``timezone``. The returned payload is deliberately
    loose; see :func:`candlesync.core.services.candles.normalize_candles`
    for the shapes that are understood.
    """

    name: str = "provider"

    @abstractmethod
    def get_candles(self, symbol: str, params: Mapping[str, Any]) -> Any:
        """Fetch candles for ``symbol``; raise on hard failure."""
