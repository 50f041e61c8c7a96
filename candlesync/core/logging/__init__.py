"""JSON line logging with trace and sync scope propagation."""

from candlesync.core.logging.config import LogConfig
from candlesync.core.logging.logger import (
    JsonLineSink,
    StructuredLogger,
    bind,
    configure_logging,
    current_trace_id,
    get_logger,
    log_context,
    logger,
    render,
)

__all__ = [
    "JsonLineSink",
    "LogConfig",
    "StructuredLogger",
    "bind",
    "configure_logging",
    "current_trace_id",
    "get_logger",
    "log_context",
    "logger",
    "render",
]
