"""Utility helpers shared across CLI commands."""

from __future__ import annotations

import json
from typing import Any

import typer

from candlesync.core.config import CandleSyncConfig
from candlesync.core.exceptions import CandleSyncError


def get_config(ctx: typer.Context) -> CandleSyncConfig:
    """Configuration resolved by the app callback, or defaults when invoked directly."""

    ctx.ensure_object(dict)
    config = (ctx.obj or {}).get("config")
    return config if config is not None else CandleSyncConfig()


def _echo_err(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str), err=True)


def emit_error(message: str, code: str, **extra: Any) -> None:
    """Print an ad-hoc error payload to stderr."""

    _echo_err({"error_code": code, "message": message, **extra})


def report_failure(error: CandleSyncError, market: str | None = None) -> None:
    """Print a :class:`CandleSyncError` as one JSON line on stderr."""

    payload = error.to_dict()
    if market is not None:
        payload["market"] = market
    _echo_err(payload)
