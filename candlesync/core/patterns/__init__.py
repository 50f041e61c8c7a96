"""Resilience helpers."""

from candlesync.core.patterns.retry import ExponentialBackoffRetry, RetryConfig, RetryingPriceProvider, RetryRecord

__all__ = ["ExponentialBackoffRetry", "RetryConfig", "RetryRecord", "RetryingPriceProvider"]
