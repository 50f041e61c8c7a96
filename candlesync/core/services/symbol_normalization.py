from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

_SEPARATORS = ("/", "\\", "-", " ")


@dataclass(slots=True, frozen=True)
class SymbolVariants:
    original: str
    normalized: str
    slash: str
    dash: str
    compact: str

    def as_list(self) -> list[str]:
        seen: list[str] = []
        for value in (self.original, self.normalized, self.slash, self.dash, self.compact):
            if value not in seen:
                seen.append(value)
        return seen


def compact_symbol(symbol: str) -> str:
    """Uppercase ``symbol`` and strip every separator: ``"eur/usd"`` -> ``"EURUSD"``."""
    value = symbol.strip().upper()
    for separator in _SEPARATORS:
        value = value.replace(separator, "")
    return value


@lru_cache(maxsize=1024)
def expand_symbol(symbol: str) -> SymbolVariants:
    normalized = symbol.strip().upper()
    compact = compact_symbol(symbol)
    # Only six character currency codes split cleanly into base/quote.
    slash = f"{compact[:3]}/{compact[3:]}" if len(compact) == 6 else normalized
    return SymbolVariants(
        original=symbol,
        normalized=normalized,
        slash=slash,
        dash=slash.replace("/", "-"),
        compact=compact,
    )


def symbol_variants(symbol: str) -> list[str]:
    """Every textual form ``symbol`` may have been stored under, first seen first."""
    return expand_symbol(symbol).as_list()


__all__ = ["SymbolVariants", "compact_symbol", "expand_symbol", "symbol_variants"]
