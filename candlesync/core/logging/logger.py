"""JSON line logging on top of loguru.

Every record becomes one JSON object. ``symbol``, ``interval`` and
``error_code`` are top-level keys so that a failed sync can be found by pair
without parsing the free-form ``context`` object; everything else a caller
binds or passes as keyword arguments lands in ``context``.

A sync runs inside :func:`log_context`, which stamps a trace id plus the pair
and interval on every record emitted by the cache, provider and database steps
underneath it.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import IO, Any
from uuid import uuid4

from loguru import logger

from candlesync.core.logging.config import LogConfig

TOP_LEVEL_KEYS = ("symbol", "interval", "error_code")

_trace: ContextVar[str | None] = ContextVar("candlesync_trace", default=None)
_scope: ContextVar[dict[str, Any]] = ContextVar("candlesync_scope", default={})


def _new_trace_id() -> str:
    return uuid4().hex


def current_trace_id() -> str:
    """Trace id of the active scope; one is created on first use outside any scope."""

    trace_id = _trace.get()
    if trace_id is None:
        trace_id = _new_trace_id()
        _trace.set(trace_id)
    return trace_id


def _enrich(record: dict[str, Any]) -> None:
    extra = record["extra"]
    extra.setdefault("trace_id", current_trace_id())
    for key, value in _scope.get().items():
        if extra.get(key) is None:
            extra[key] = value


def render(record: dict[str, Any]) -> str:
    """Serialise a loguru record to a single JSON line (without newline)."""

    extra = dict(record["extra"])
    payload: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "trace_id": extra.pop("trace_id", None),
    }
    for key in TOP_LEVEL_KEYS:
        payload[key] = extra.pop(key, None)
    if extra:
        payload["context"] = extra
    if record["exception"] is not None:
        payload["exception"] = str(record["exception"])
    return json.dumps(payload, default=str)


class JsonLineSink:
    """loguru sink appending rendered records to a file, or writing them to a stream.

    Without a path or stream, records go to whatever ``sys.stderr`` is at write time.
    """

    def __init__(self, stream: IO[str] | None = None, path: str | Path | None = None) -> None:
        if stream is not None and path is not None:
            raise ValueError("JsonLineSink takes a stream or a path, not both")
        self.stream = stream
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, message: Any) -> None:
        line = render(message.record) + "\n"
        if self.path is not None:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)
            return
        stream = self.stream if self.stream is not None else sys.stderr
        stream.write(line)
        stream.flush()


def _apply(config: LogConfig) -> None:
    handlers: list[dict[str, Any]] = []
    if config.console:
        handlers.append({"sink": JsonLineSink(stream=config.stream), "level": config.level})
    if config.file:
        handlers.append({"sink": JsonLineSink(path=config.file), "level": config.level})
    logger.configure(handlers=handlers, patcher=_enrich, extra=dict(config.static))


def configure_logging(level: str = "INFO", **options: Any) -> LogConfig:
    """(Re)install the JSON sinks; ``options`` are :class:`LogConfig` fields."""

    config = LogConfig(level=level, **options)
    _apply(config)
    return config


class StructuredLogger:
    """Holds the active :class:`LogConfig` and exposes the configured logger."""

    def __init__(self, config: LogConfig | None = None) -> None:
        self.config = config or LogConfig()
        _apply(self.config)
        self.logger = logger

    def configure(self, **changes: Any) -> None:
        self.config = self.config.model_copy(update=changes)
        _apply(self.config)

    def context(self, *, trace_id: str | None = None, **fields: Any):
        return log_context(trace_id=trace_id, **fields)


def get_logger(name: str | None = None):
    """Logger bound to ``name``; the name ends up under ``context.logger_name``."""

    return logger.bind(logger_name=name) if name else logger


def bind(**fields: Any):
    return logger.bind(**fields)


@contextmanager
def log_context(*, trace_id: str | None = None, **fields: Any) -> Iterator[str]:
    """Open a logging scope with its own trace id and extra fields.

    Fields from enclosing scopes are inherited; inner values win.
    """

    scope_token = _scope.set({**_scope.get(), **fields})
    active = trace_id or _new_trace_id()
    trace_token = _trace.set(active)
    try:
        yield active
    finally:
        _trace.reset(trace_token)
        _scope.reset(scope_token)


configure_logging()


__all__ = [
    "JsonLineSink",
    "StructuredLogger",
    "bind",
    "configure_logging",
    "current_trace_id",
    "get_logger",
    "log_context",
    "logger",
    "render",
]
