"""CoinPaprika price source unit tests."""

from __future__ import annotations

import threading
from datetime import UTC, datetime

import pytest
import responses
from freezegun import freeze_time

from crypto_tracker.providers import (
    CoinPaprikaClient,
    CoinPaprikaClientConfig,
    CoinPaprikaPriceSource,
    ProviderError,
    RateLimitError,
    TokenBucket,
    UnknownSymbolError,
)
from tests.fixtures import load_json

pytestmark = pytest.mark.providers

BASE_URL = "https://api.coinpaprika.test"


class _CountingLimiter(TokenBucket):
    def __init__(self) -> None:
        super().__init__(rate=1000)
        self.acquired = 0

    def acquire(self, cancel=None) -> None:
        self.acquired += 1
        super().acquire(cancel)


@pytest.fixture()
def limiter() -> _CountingLimiter:
    return _CountingLimiter()


@pytest.fixture()
def source(limiter) -> CoinPaprikaPriceSource:
    config = CoinPaprikaClientConfig(base_url=BASE_URL, timeout=2, max_retries=1, backoff_seconds=0)
    return CoinPaprikaPriceSource(CoinPaprikaClient(config), limiter)


def _mock_coins(status: int = 200) -> None:
    responses.add(
        responses.GET,
        f"{BASE_URL}/v1/coins",
        json=load_json("coinpaprika_coins.json"),
        status=status,
    )


@responses.activate
def test_symbol_map_keeps_active_coins_and_first_occurrence(source):
    _mock_coins()

    assert source.symbol_exists("btc") is True
    assert source.symbol_exists("SOL") is True
    assert source.symbol_exists("USDT") is False
    assert source.symbol_exists("LUNA") is False
    assert source._symbol_map()["BTC"] == "btc-bitcoin"


@responses.activate
def test_symbol_map_is_loaded_once(source):
    _mock_coins()

    source.symbol_exists("BTC")
    source.symbol_exists("ETH")

    coin_calls = [call for call in responses.calls if call.request.url.endswith("/v1/coins")]
    assert len(coin_calls) == 1


@responses.activate
@freeze_time("2024-06-01T12:00:30Z")
def test_fetch_price_reads_usd_quote(source, limiter):
    _mock_coins()
    responses.add(
        responses.GET,
        f"{BASE_URL}/v1/tickers/btc-bitcoin",
        json=load_json("coinpaprika_ticker_btc.json"),
        status=200,
    )

    point = source.fetch_price(" btc ")

    assert point.symbol == "BTC"
    assert point.price == pytest.approx(67321.45)
    assert point.timestamp == datetime(2024, 6, 1, 12, 0, 30, tzinfo=UTC)
    assert limiter.acquired == 1


@responses.activate
def test_fetch_price_for_unlisted_symbol_raises_unknown(source):
    _mock_coins()

    with pytest.raises(UnknownSymbolError):
        source.fetch_price("DOGE")


@responses.activate
def test_fetch_price_wraps_http_failures(source):
    _mock_coins()
    responses.add(responses.GET, f"{BASE_URL}/v1/tickers/eth-ethereum", status=503)

    with pytest.raises(ProviderError):
        source.fetch_price("ETH")


@pytest.mark.parametrize(
    "payload",
    [
        {"id": "eth-ethereum", "quotes": {}},
        {"id": "eth-ethereum", "quotes": {"USD": {"price": None}}},
        {"id": "eth-ethereum", "quotes": {"USD": {"price": "abc"}}},
        {"id": "eth-ethereum", "quotes": {"USD": {"price": "NaN"}}},
        {"error": "id not found"},
    ],
)
@responses.activate
def test_fetch_price_rejects_unusable_payloads(source, payload):
    _mock_coins()
    responses.add(responses.GET, f"{BASE_URL}/v1/tickers/eth-ethereum", json=payload, status=200)

    with pytest.raises(ProviderError):
        source.fetch_price("ETH")


@responses.activate
def test_coin_list_failure_surfaces_as_provider_error(source):
    _mock_coins(status=500)

    with pytest.raises(ProviderError):
        source.symbol_exists("BTC")


def test_fetch_price_honours_cancellation_while_rate_limited():
    config = CoinPaprikaClientConfig(base_url=BASE_URL, timeout=2, max_retries=1)
    limiter = TokenBucket(rate=0.001)
    limiter.acquire()
    source = CoinPaprikaPriceSource(CoinPaprikaClient(config), limiter)

    cancel = threading.Event()
    cancel.set()
    with pytest.raises(RateLimitError):
        source.fetch_price("BTC", cancel)


def test_from_config_applies_settings():
    source = CoinPaprikaPriceSource.from_config(
        {
            "COINPAPRIKA_API_BASE_URL": BASE_URL,
            "COINPAPRIKA_RATE_LIMIT": 4,
            "REQUEST_TIMEOUT_SECONDS": 7,
            "COINPAPRIKA_MAX_RETRIES": 2,
        }
    )

    assert source._limiter.rate == 4
    assert source._client._config.base_url == BASE_URL
    assert source._client._config.timeout == 7
    assert source._client._config.max_retries == 2
