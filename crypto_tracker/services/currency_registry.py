"""Symbol registry: validated add/remove and stable paginated listing of tracked currencies."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from crypto_tracker.domain import Currency, InvalidSymbolError, new_currency, normalize_symbol
from crypto_tracker.providers import BasePriceSource
from crypto_tracker.services.repository import CryptoRepository

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class CurrencyRegistry:
    """Owns the set of tracked currencies."""

    def __init__(self, repository: CryptoRepository, source: BasePriceSource) -> None:
        self._repository = repository
        self._source = source

    def add_currency(self, raw_symbol: str) -> Currency:
        """Start tracking a symbol.

        The symbol must be well formed and quotable by the price source.

        Raises:
            InvalidSymbolError: If the symbol is malformed or unknown to the source.
            DuplicateCurrencyError: If the symbol is already tracked.
            ProviderError: If the source could not be asked.
        """

        currency = new_currency(raw_symbol)
        if not self._source.symbol_exists(currency.symbol):
            raise InvalidSymbolError(
                f"symbol '{currency.symbol}' is not available from {self._source.name}"
            )

        self._repository.add_currency(currency)
        logger.info("Tracking currency %s (%s)", currency.symbol, currency.id)
        return currency

    def remove_currency(self, raw_symbol: str) -> None:
        symbol = normalize_symbol(raw_symbol)
        self._repository.remove_currency(symbol)
        logger.info("Stopped tracking currency %s", symbol)

    def list_currencies(self, page_size: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> list[Currency]:
        return self._repository.list_currencies(page_size, offset)

    def iter_pages(self, page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[list[Currency]]:
        """Yield successive non-empty pages until the registry is exhausted."""

        offset = 0
        while True:
            page = self._repository.list_currencies(page_size, offset)
            if not page:
                return
            yield page
            offset += page_size


def init_registry(app) -> CurrencyRegistry:
    """Create the registry from the app's repository and price source and attach it."""

    registry = CurrencyRegistry(
        repository=app.extensions["crypto_repository"],
        source=app.extensions["price_source"],
    )
    app.extensions["currency_registry"] = registry
    return registry
