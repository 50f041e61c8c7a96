"""指数退避重试, 用于包装价格提供商调用."""

import random
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from candlesync.core.exceptions import ProviderError, RateLimitError
from candlesync.core.logging import get_logger
from candlesync.core.providers.base import PriceProvider

T = TypeVar("T")

log = get_logger(__name__)


@dataclass
class RetryConfig:
    """重试配置.

    ``give_up_on`` wins over ``retry_on``: a rate-limited upstream is not
    hammered again within the same sync.
    """

    max_attempts: int = 3
    base_delay: float = 1.0  # 秒
    max_delay: float = 60.0
    jitter: bool = True
    exponential_base: float = 2.0
    retry_on: tuple[type[BaseException], ...] = (ProviderError,)
    give_up_on: tuple[type[BaseException], ...] = (RateLimitError,)

    def delay_for(self, retry_number: int) -> float:
        """Pause before retry ``retry_number`` (0 for the first retry)."""
        if retry_number < 0:
            return 0.0
        delay = self.base_delay * self.exponential_base**retry_number
        if self.jitter:
            spread = min(delay * 0.1, 1.0)
            delay += random.uniform(-spread, spread)
        return max(0.0, min(delay, self.max_delay))

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(error, self.retry_on) and not isinstance(error, self.give_up_on)


@dataclass
class RetryRecord:
    """What happened during the last :meth:`ExponentialBackoffRetry.execute` call."""

    attempts: int = 0
    delays: list[float] = field(default_factory=list)
    succeeded: bool = False
    last_error: BaseException | None = None

    @property
    def total_delay(self) -> float:
        return sum(self.delays)


class ExponentialBackoffRetry:
    """Calls a function until it succeeds, fails permanently or runs out of attempts."""

    def __init__(self, config: RetryConfig | None = None, sleep: Callable[[float], None] = time.sleep):
        self.config = config or RetryConfig()
        self._sleep = sleep
        self.last_run = RetryRecord()

    def execute(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        record = self.last_run = RetryRecord()
        while True:
            record.attempts += 1
            try:
                result = func(*args, **kwargs)
            except Exception as error:
                record.last_error = error
                if not self.config.is_retryable(error) or record.attempts >= self.config.max_attempts:
                    raise
                delay = self.config.delay_for(record.attempts - 1)
                log.debug("retrying after failure", attempt=record.attempts, delay=round(delay, 3), error=str(error))
                self._sleep(delay)
                record.delays.append(delay)
            else:
                record.succeeded = True
                return result


class RetryingPriceProvider(PriceProvider):
    """Wraps a provider so transient :class:`ProviderError` failures are retried."""

    def __init__(
        self,
        provider: PriceProvider,
        config: RetryConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.config = config or RetryConfig()
        self._sleep = sleep
        self.name = getattr(provider, "name", type(provider).__name__)

    def get_candles(self, symbol: str, params: Mapping[str, Any]) -> Any:
        return ExponentialBackoffRetry(self.config, sleep=self._sleep).execute(self.provider.get_candles, symbol, params)
