"""Persistence contract shared by the symbol registry and the price history store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from crypto_tracker.domain import Currency, PriceSnapshot


class CryptoRepository(ABC):
    """Operations the core relies on, independent of the storage engine."""

    @abstractmethod
    def add_currency(self, currency: Currency) -> None:
        """Persist a new currency; raise ``DuplicateCurrencyError`` if the symbol exists."""

    @abstractmethod
    def remove_currency(self, symbol: str) -> None:
        """Delete a currency by symbol; raise ``NotTrackedError`` if absent."""

    @abstractmethod
    def list_currencies(self, page_size: int, offset: int) -> list[Currency]:
        """Return one page of currencies ordered by creation time, oldest first."""

    @abstractmethod
    def get_price_snapshot(self, symbol: str, at: datetime) -> PriceSnapshot:
        """Return the exact or nearest snapshot for ``symbol`` around ``at``."""

    @abstractmethod
    def save_price_snapshot(self, snapshot: PriceSnapshot) -> None:
        """Append a snapshot; raise ``DuplicatePriceError`` on (currency, timestamp) conflicts."""

    @abstractmethod
    def list_price_snapshots(
        self, symbol: str, start: datetime, end: datetime
    ) -> list[PriceSnapshot]:
        """Return snapshots with ``start <= timestamp <= end`` in ascending order."""


def validate_page(page_size: int, offset: int) -> None:
    if page_size <= 0 or offset < 0:
        raise ValueError(f"invalid pagination params: page_size={page_size} offset={offset}")
