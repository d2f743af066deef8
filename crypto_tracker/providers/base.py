"""Abstract interface for external crypto price sources."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from .schemas import PricePoint


class ProviderError(Exception):
    """Raised when an upstream price source cannot fulfill a request."""


class UnknownSymbolError(ProviderError):
    """Raised when the source has no listing for the requested symbol."""


class RateLimitError(ProviderError):
    """Raised when waiting for a rate-limit token was cancelled."""


class BasePriceSource(ABC):
    """Defines the interface all price sources must implement."""

    name: str

    @abstractmethod
    def symbol_exists(self, symbol: str) -> bool:
        """Return whether the source can quote the given symbol."""

    @abstractmethod
    def fetch_price(self, symbol: str, cancel: threading.Event | None = None) -> PricePoint:
        """Fetch the current USD price, blocking on the rate limit unless ``cancel`` fires."""
