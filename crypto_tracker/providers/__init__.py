"""Price source interfaces and data structures."""

from .base import BasePriceSource, ProviderError, RateLimitError, UnknownSymbolError
from .coinpaprika_client import CoinPaprikaClient, CoinPaprikaClientConfig, CoinPaprikaError
from .coinpaprika_source import CoinPaprikaPriceSource
from .mock import MockPriceSource
from .rate_limit import TokenBucket
from .schemas import PricePoint

__all__ = [
    "BasePriceSource",
    "ProviderError",
    "RateLimitError",
    "UnknownSymbolError",
    "PricePoint",
    "TokenBucket",
    "CoinPaprikaClient",
    "CoinPaprikaClientConfig",
    "CoinPaprikaError",
    "CoinPaprikaPriceSource",
    "MockPriceSource",
]
