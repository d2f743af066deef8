"""CoinPaprika price source implementation."""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Mapping
from time import perf_counter
from typing import Any

from crypto_tracker.logging import source_log_extra
from crypto_tracker.providers.base import BasePriceSource, ProviderError, UnknownSymbolError
from crypto_tracker.providers.rate_limit import TokenBucket
from crypto_tracker.providers.schemas import PricePoint
from crypto_tracker.utils.datetime import utc_now

from .coinpaprika_client import CoinPaprikaClient, CoinPaprikaClientConfig, CoinPaprikaError

logger = logging.getLogger(__name__)


class CoinPaprikaPriceSource(BasePriceSource):
    """Price source backed by the CoinPaprika tickers API.

    CoinPaprika identifies coins by slugs such as ``btc-bitcoin``; the
    symbol-to-slug map is loaded from ``/v1/coins`` on first use and kept for
    the lifetime of the instance.
    """

    name = "coinpaprika"

    def __init__(self, client: CoinPaprikaClient, limiter: TokenBucket) -> None:
        self._client = client
        self._limiter = limiter
        self._id_map: dict[str, str] | None = None
        self._id_map_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> CoinPaprikaPriceSource:
        client_config = cls._build_client_config(config)
        rate = float(config.get("COINPAPRIKA_RATE_LIMIT", 1))
        return cls(CoinPaprikaClient(client_config), TokenBucket(rate=rate, capacity=1))

    def symbol_exists(self, symbol: str) -> bool:
        return self._normalize(symbol) in self._symbol_map()

    def fetch_price(self, symbol: str, cancel: threading.Event | None = None) -> PricePoint:
        normalized = self._normalize(symbol)
        self._limiter.acquire(cancel)

        coin_id = self._symbol_map().get(normalized)
        if coin_id is None:
            raise UnknownSymbolError(f"CoinPaprika has no active coin for symbol '{normalized}'")

        start = perf_counter()
        try:
            payload = self._client.get_ticker(coin_id, cancel=cancel)
            price = self._extract_usd_price(payload, normalized)
        except (CoinPaprikaError, ProviderError) as exc:
            logger.warning(
                "Price fetch failed for %s: %s",
                normalized,
                exc,
                extra=source_log_extra(
                    source=self.name,
                    symbol=normalized,
                    event="source.fetch",
                    status="error",
                    duration_ms=(perf_counter() - start) * 1000,
                    error=str(exc),
                ),
            )
            if isinstance(exc, ProviderError):
                raise
            raise ProviderError(str(exc)) from exc

        logger.debug(
            "Price fetch succeeded",
            extra=source_log_extra(
                source=self.name,
                symbol=normalized,
                event="source.fetch",
                status="success",
                duration_ms=(perf_counter() - start) * 1000,
            ),
        )
        return PricePoint(symbol=normalized, price=price, timestamp=utc_now())

    def _symbol_map(self) -> dict[str, str]:
        with self._id_map_lock:
            if self._id_map is None:
                self._id_map = self._load_symbol_map()
            return self._id_map

    def _load_symbol_map(self) -> dict[str, str]:
        try:
            coins = self._client.list_coins()
        except CoinPaprikaError as exc:
            raise ProviderError(f"Unable to load CoinPaprika coin list: {exc}") from exc

        id_map: dict[str, str] = {}
        for coin in coins:
            if coin.get("type") != "coin" or not coin.get("is_active"):
                continue
            symbol = str(coin.get("symbol") or "").strip().upper()
            coin_id = coin.get("id")
            if not symbol or not coin_id:
                continue
            # Several coins can share a ticker; the first listed one is kept.
            id_map.setdefault(symbol, str(coin_id))

        logger.info("Loaded CoinPaprika symbol map with %s active coins", len(id_map))
        return id_map

    @staticmethod
    def _extract_usd_price(payload: Mapping[str, Any], symbol: str) -> float:
        quotes = payload.get("quotes") or {}
        usd = quotes.get("USD") if isinstance(quotes, Mapping) else None
        if not isinstance(usd, Mapping) or usd.get("price") is None:
            raise ProviderError(f"No USD quote for {symbol}")
        try:
            price = float(usd["price"])
        except (TypeError, ValueError) as exc:
            raise ProviderError(f"Malformed USD price for {symbol}: {usd['price']!r}") from exc
        if not math.isfinite(price):
            raise ProviderError(f"Malformed USD price for {symbol}: {price!r}")
        return price

    @staticmethod
    def _normalize(value: str) -> str:
        if not value or not str(value).strip():
            raise ProviderError("Symbol cannot be empty.")
        return str(value).strip().upper()

    @classmethod
    def _build_client_config(cls, config: Mapping[str, Any]) -> CoinPaprikaClientConfig:
        base_url_value = config.get("COINPAPRIKA_API_BASE_URL")
        if not isinstance(base_url_value, str) or not base_url_value.strip():
            base_url = "https://api.coinpaprika.com"
        else:
            base_url = base_url_value
        timeout = float(config.get("REQUEST_TIMEOUT_SECONDS", 5))
        max_retries = int(config.get("COINPAPRIKA_MAX_RETRIES", 3))
        backoff = float(config.get("COINPAPRIKA_BACKOFF_SECONDS", 0.5))
        return CoinPaprikaClientConfig(
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_seconds=backoff,
        )
