"""Cache configuration."""

from dataclasses import dataclass
from pathlib import Path


@dataclass
class CacheConfig:
    """缓存配置"""

    backend: str = "memory"  # memory | duckdb | redis
    ttl: int = 3600
    memory_size: int = 1000
    duckdb_path: str = str(Path.home() / ".candlesync" / "cache.duckdb")
    redis_url: str = "redis://localhost:6379/0"
