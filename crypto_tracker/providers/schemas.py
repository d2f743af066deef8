"""Dataclasses describing normalized price source payloads."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from crypto_tracker.utils.datetime import ensure_utc


def _normalize_symbol(symbol: str) -> str:
    normalized = symbol.strip().upper()
    if not normalized.isascii():
        raise ValueError(f"Symbol must be ASCII: {symbol!r}")
    return normalized


@dataclass(frozen=True)
class PricePoint:
    """Current USD price of a symbol as observed by a source."""

    symbol: str
    price: float
    timestamp: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", _normalize_symbol(self.symbol))
        price = float(self.price)
        if not math.isfinite(price):
            raise ValueError(f"price must be a finite number, got {self.price!r}")
        object.__setattr__(self, "price", price)
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
