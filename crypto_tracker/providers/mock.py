"""Mock price source for testing and local development."""

from __future__ import annotations

import threading
from collections.abc import Mapping

from crypto_tracker.utils.datetime import utc_now

from .base import BasePriceSource, UnknownSymbolError
from .schemas import PricePoint

DEFAULT_PRICES: dict[str, float] = {
    "BTC": 65000.0,
    "ETH": 3200.0,
    "SOL": 150.0,
    "USDT": 1.0,
}


class MockPriceSource(BasePriceSource):
    """Deterministic source quoting a fixed set of symbols."""

    name = "mock"

    def __init__(self, prices: Mapping[str, float] | None = None) -> None:
        source = DEFAULT_PRICES if prices is None else prices
        self._prices = {symbol.upper(): float(price) for symbol, price in source.items()}

    def symbol_exists(self, symbol: str) -> bool:
        return str(symbol).strip().upper() in self._prices

    def fetch_price(self, symbol: str, cancel: threading.Event | None = None) -> PricePoint:
        normalized = str(symbol).strip().upper()
        try:
            price = self._prices[normalized]
        except KeyError as exc:
            raise UnknownSymbolError(f"Mock source has no price for '{normalized}'") from exc
        return PricePoint(symbol=normalized, price=price, timestamp=utc_now())
