"""Wire an updater from configuration."""

from __future__ import annotations

import importlib

from redis import Redis

from candlesync.core.config.settings import CandleSyncConfig
from candlesync.core.data.cache import (
    CacheStrategy,
    CandleCache,
    RedisCache,
    SimpleDuckDBCache,
    ThreadSafeInMemoryCache,
)
from candlesync.core.data.repositories import CandleRepository
from candlesync.core.data.storage import CandleDatabase
from candlesync.core.exceptions import ConfigurationError
from candlesync.core.locks import InMemoryLockManager, LockManager, RedisLockManager
from candlesync.core.models import TradingSession
from candlesync.core.patterns.retry import RetryConfig, RetryingPriceProvider
from candlesync.core.providers import PriceProvider
from candlesync.core.services.candles import IncrementalCandleUpdater


def build_cache_backend(config: CandleSyncConfig, redis_client: Redis | None = None) -> CacheStrategy:
    backend = config.cache.backend
    if backend == "redis":
        return RedisCache(redis_client, url=config.cache.redis_url)
    if backend == "duckdb":
        return SimpleDuckDBCache(config.cache.duckdb_path)
    return ThreadSafeInMemoryCache(max_size=config.cache.memory_size)


def build_lock_manager(config: CandleSyncConfig, redis_client: Redis | None = None) -> LockManager:
    if config.locks.backend == "redis":
        return RedisLockManager(redis_client, url=config.locks.redis_url)
    return InMemoryLockManager()


def build_repository(config: CandleSyncConfig, database: CandleDatabase | None = None) -> CandleRepository:
    session = TradingSession(config.sync.session_start_hour, config.sync.session_end_hour)
    return CandleRepository(database or CandleDatabase(config.database.path), session)


def build_retry_config(config: CandleSyncConfig) -> RetryConfig:
    return RetryConfig(
        max_attempts=max(1, config.providers.max_retries),
        base_delay=config.providers.backoff_factor,
        max_delay=float(config.providers.max_backoff),
    )


def build_updater(
    config: CandleSyncConfig,
    provider: PriceProvider,
    *,
    database: CandleDatabase | None = None,
    redis_client: Redis | None = None,
) -> IncrementalCandleUpdater:
    """Build an updater whose cache, locks, store and retry policy follow ``config``."""
    return IncrementalCandleUpdater(
        provider=RetryingPriceProvider(provider, build_retry_config(config)),
        cache=CandleCache(build_cache_backend(config, redis_client)),
        repository=build_repository(config, database),
        locks=build_lock_manager(config, redis_client),
        cache_ttl=config.cache.ttl,
        lock_ttl=config.locks.ttl,
        lock_wait=config.locks.wait,
        normalize_timestamps=config.sync.normalize_timestamps,
        provider_name=getattr(provider, "name", None),
    )


def load_provider(config: CandleSyncConfig) -> PriceProvider:
    """Instantiate the provider named by ``providers.factory`` (``"module:callable"``)."""
    target = config.providers.factory
    if not target:
        raise ConfigurationError("No price provider configured", field="providers.factory")
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ConfigurationError(
            f"Provider factory must look like 'module:callable', got {target!r}", field="providers.factory"
        )
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(
            f"Cannot load provider factory {target!r}: {exc}", field="providers.factory"
        ) from exc
    provider = factory()
    if not isinstance(provider, PriceProvider):
        raise ConfigurationError(f"{target!r} did not return a PriceProvider", field="providers.factory")
    return provider
