"""Logging configuration."""

from dataclasses import dataclass


@dataclass
class LoggingConfig:
    """日志配置"""

    level: str = "INFO"
    file: str | None = None
    console: bool = True
