"""Sink options for the JSON line logger."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, field_validator


class LogConfig(BaseModel):
    """Where JSON log lines go and at which level."""

    level: str = "INFO"
    console: bool = True
    stream: Any = None  # text stream, stderr when unset
    file: str | None = None
    static: dict[str, Any] = {}

    @field_validator("level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()


__all__ = ["LogConfig"]
