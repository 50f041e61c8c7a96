"""配置管理模块 - 处理candlesync的配置"""

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from candlesync.core.config.cache import CacheConfig
from candlesync.core.config.logging import LoggingConfig
from candlesync.core.exceptions import ConfigurationError
from candlesync.core.logging import get_logger

log = get_logger(__name__)

MIN_LOCK_TTL = 5
MIN_LOCK_WAIT = 1


@dataclass
class ProviderConfig:
    """提供商配置"""

    factory: str | None = None  # "package.module:callable" returning a PriceProvider
    max_retries: int = 3
    backoff_factor: float = 1.0
    max_backoff: int = 60


@dataclass
class LockConfig:
    """同步锁配置"""

    backend: str = "memory"  # memory | redis
    ttl: int = 60
    wait: int = 10
    redis_url: str = "redis://localhost:6379/0"


@dataclass
class SyncConfig:
    """增量同步配置"""

    normalize_timestamps: bool = False
    bootstrap_limits: dict[str, int] = field(default_factory=lambda: {"5min": 150, "30min": 30})
    tail_fetch_limits: dict[str, int] = field(default_factory=lambda: {"5min": 20, "30min": 12})
    overlap_bars: dict[str, int] = field(default_factory=lambda: {"5min": 3, "30min": 2})
    session_start_hour: int = 7
    session_end_hour: int = 22
    markets: list[str] = field(default_factory=lambda: ["EUR/USD", "GBP/USD", "EUR/GBP"])

    def bootstrap_limit(self, interval: str, default: int = 150) -> int:
        return self.bootstrap_limits.get(interval, default)

    def tail_fetch_limit(self, interval: str, default: int = 200) -> int:
        return self.tail_fetch_limits.get(interval, default)

    def overlap(self, interval: str, default: int = 2) -> int:
        return self.overlap_bars.get(interval, default)


@dataclass
class DatabaseConfig:
    """持久化数据库配置"""

    path: str = str(Path.home() / ".candlesync" / "candles.duckdb")


@dataclass
class CandleSyncConfig:
    """candlesync主配置"""

    cache: CacheConfig = field(default_factory=CacheConfig)
    locks: LockConfig = field(default_factory=LockConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    providers: ProviderConfig = field(default_factory=ProviderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        if self.cache.backend not in {"memory", "duckdb", "redis"}:
            raise ConfigurationError(f"Unknown cache backend: {self.cache.backend}", field="cache.backend")
        if self.locks.backend not in {"memory", "redis"}:
            raise ConfigurationError(f"Unknown lock backend: {self.locks.backend}", field="locks.backend")
        if self.locks.ttl < MIN_LOCK_TTL:
            raise ConfigurationError(f"Lock TTL must be at least {MIN_LOCK_TTL}s", field="locks.ttl")
        if self.locks.wait < MIN_LOCK_WAIT:
            raise ConfigurationError(f"Lock wait must be at least {MIN_LOCK_WAIT}s", field="locks.wait")
        if not 0 <= self.sync.session_start_hour <= self.sync.session_end_hour <= 23:
            raise ConfigurationError("Invalid trading session hours", field="sync.session_start_hour")

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "CandleSyncConfig":
        """从字典创建配置"""
        try:
            return cls(
                cache=CacheConfig(**config_dict.get("cache", {})),
                locks=LockConfig(**config_dict.get("locks", {})),
                sync=SyncConfig(**config_dict.get("sync", {})),
                database=DatabaseConfig(**config_dict.get("database", {})),
                providers=ProviderConfig(**config_dict.get("providers", {})),
                logging=LoggingConfig(**config_dict.get("logging", {})),
            )
        except TypeError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        return {
            "cache": asdict(self.cache),
            "locks": asdict(self.locks),
            "sync": asdict(self.sync),
            "database": asdict(self.database),
            "providers": asdict(self.providers),
            "logging": asdict(self.logging),
        }


class ConfigManager:
    """配置管理器"""

    def __init__(self, config_path: Path | None = None):
        """初始化配置管理器

        Args:
            config_path: 配置文件路径，如果为None则使用默认路径
        """
        self.config_path = config_path or Path.home() / ".candlesync" / "config.toml"
        self.config = self._load_config()

    def _load_config(self) -> CandleSyncConfig:
        """加载配置, 文件缺失或无法解析时使用默认配置"""
        if not self.config_path.exists():
            return CandleSyncConfig()

        try:
            with open(self.config_path, "rb") as f:
                config_dict = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            log.warning("Failed to load config, using defaults", path=str(self.config_path), error=str(e))
            return CandleSyncConfig()
        return CandleSyncConfig.from_dict(config_dict)

    def get_config(self) -> CandleSyncConfig:
        """获取当前配置"""
        return self.config

    def update_config(self, **updates: Any) -> None:
        """更新配置"""
        config_dict = self.config.to_dict()

        def deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
            """深度更新字典"""
            for k, v in u.items():
                if isinstance(v, dict) and isinstance(d.get(k), dict):
                    d[k] = deep_update(d[k], v)
                else:
                    d[k] = v
            return d

        deep_update(config_dict, updates)
        self.config = CandleSyncConfig.from_dict(config_dict)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}", field=name) from exc


def load_config_from_env() -> dict[str, Any]:
    """从环境变量加载配置"""
    config: dict[str, Any] = {}

    # 缓存配置
    cache_config: dict[str, Any] = {}
    if (value := os.getenv("CANDLESYNC_CACHE_BACKEND")) is not None:
        cache_config["backend"] = value.strip().lower()
    if (value := os.getenv("CANDLESYNC_CACHE_TTL")) is not None:
        cache_config["ttl"] = _env_int("CANDLESYNC_CACHE_TTL", value)
    if (value := os.getenv("CANDLESYNC_CACHE_MEMORY_SIZE")) is not None:
        cache_config["memory_size"] = _env_int("CANDLESYNC_CACHE_MEMORY_SIZE", value)
    if os.getenv("CANDLESYNC_CACHE_DUCKDB_PATH"):
        cache_config["duckdb_path"] = os.getenv("CANDLESYNC_CACHE_DUCKDB_PATH")
    if os.getenv("CANDLESYNC_REDIS_URL"):
        cache_config["redis_url"] = os.getenv("CANDLESYNC_REDIS_URL")
    if cache_config:
        config["cache"] = cache_config

    # 锁配置
    lock_config: dict[str, Any] = {}
    if (value := os.getenv("CANDLESYNC_LOCK_BACKEND")) is not None:
        lock_config["backend"] = value.strip().lower()
    if (value := os.getenv("CANDLESYNC_LOCK_TTL")) is not None:
        lock_config["ttl"] = _env_int("CANDLESYNC_LOCK_TTL", value)
    if (value := os.getenv("CANDLESYNC_LOCK_WAIT")) is not None:
        lock_config["wait"] = _env_int("CANDLESYNC_LOCK_WAIT", value)
    if os.getenv("CANDLESYNC_REDIS_URL"):
        lock_config["redis_url"] = os.getenv("CANDLESYNC_REDIS_URL")
    if lock_config:
        config["locks"] = lock_config

    # 同步配置
    sync_config: dict[str, Any] = {}
    if (value := os.getenv("CANDLESYNC_NORMALIZE_TIMESTAMPS")) is not None:
        sync_config["normalize_timestamps"] = _env_bool(value)
    if (value := os.getenv("CANDLESYNC_MARKETS")) is not None:
        sync_config["markets"] = [item.strip() for item in value.split(",") if item.strip()]
    if sync_config:
        config["sync"] = sync_config

    if os.getenv("CANDLESYNC_DATABASE_PATH"):
        config["database"] = {"path": os.getenv("CANDLESYNC_DATABASE_PATH")}

    # 提供商配置
    provider_config: dict[str, Any] = {}
    if os.getenv("CANDLESYNC_PROVIDER_FACTORY"):
        provider_config["factory"] = os.getenv("CANDLESYNC_PROVIDER_FACTORY")
    if (value := os.getenv("CANDLESYNC_PROVIDER_MAX_RETRIES")) is not None:
        provider_config["max_retries"] = _env_int("CANDLESYNC_PROVIDER_MAX_RETRIES", value)
    if provider_config:
        config["providers"] = provider_config

    # 日志配置
    logging_config: dict[str, Any] = {}
    if (value := os.getenv("CANDLESYNC_LOGGING_LEVEL")) is not None:
        logging_config["level"] = value
    if (value := os.getenv("CANDLESYNC_LOGGING_FILE")) is not None:
        logging_config["file"] = value
    if logging_config:
        config["logging"] = logging_config

    return config
