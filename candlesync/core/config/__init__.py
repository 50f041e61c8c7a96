"""Configuration management module."""

from candlesync.core.config.cache import CacheConfig
from candlesync.core.config.factory import (
    build_cache_backend,
    build_lock_manager,
    build_repository,
    build_updater,
    load_provider,
)
from candlesync.core.config.logging import LoggingConfig
from candlesync.core.config.settings import (
    CandleSyncConfig,
    ConfigManager,
    DatabaseConfig,
    LockConfig,
    ProviderConfig,
    SyncConfig,
    load_config_from_env,
)

__all__ = [
    "CandleSyncConfig",
    "ConfigManager",
    "load_config_from_env",
    "CacheConfig",
    "LockConfig",
    "SyncConfig",
    "DatabaseConfig",
    "ProviderConfig",
    "LoggingConfig",
    "build_cache_backend",
    "build_lock_manager",
    "build_repository",
    "build_updater",
    "load_provider",
]
