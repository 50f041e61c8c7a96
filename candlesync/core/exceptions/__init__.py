"""Exception handling module."""

from candlesync.core.exceptions.base import (
    CacheError,
    CandleSyncError,
    ConfigurationError,
    LockTimeoutError,
    PersistenceError,
    ProviderError,
    RateLimitError,
)

__all__ = [
    "CandleSyncError",
    "ProviderError",
    "RateLimitError",
    "LockTimeoutError",
    "CacheError",
    "PersistenceError",
    "ConfigurationError",
]
