from __future__ import annotations

from datetime import UTC, datetime

import pytest

from crypto_tracker.domain import (
    InvalidSymbolError,
    NotTrackedError,
    PriceNotFoundError,
    PriceSnapshot,
)
from crypto_tracker.services.price_history import PriceHistory, choose_nearest
from crypto_tracker.utils.datetime import from_unix, to_unix
from tests.fakes import InMemoryCryptoRepository, make_currency


def _snapshot(ts: int, price: float) -> PriceSnapshot:
    return PriceSnapshot(currency_id="id-btc", timestamp=from_unix(ts), price=price)


@pytest.fixture()
def repository():
    repo = InMemoryCryptoRepository()
    repo.add_currency(make_currency("BTC", datetime(2024, 1, 1, tzinfo=UTC)))
    return repo


@pytest.fixture()
def history(repository):
    return PriceHistory(repository)


@pytest.mark.parametrize(
    ("query", "expected_ts"),
    [(100, 100), (170, 200), (150, 100), (130, 100), (50, 100), (250, 200)],
)
def test_get_price_returns_nearest_snapshot(repository, history, query, expected_ts):
    repository.save_price_snapshot(_snapshot(100, 10.0))
    repository.save_price_snapshot(_snapshot(200, 20.0))

    snapshot = history.get_price("btc", query)

    assert to_unix(snapshot.timestamp) == expected_ts


def test_get_price_without_snapshots_raises_price_not_found(history):
    with pytest.raises(PriceNotFoundError):
        history.get_price("BTC", 100)


def test_get_price_for_untracked_symbol_raises_not_tracked(history):
    with pytest.raises(NotTrackedError):
        history.get_price("ETH", 100)


def test_get_price_rejects_malformed_symbol(history):
    with pytest.raises(InvalidSymbolError):
        history.get_price("BTC/USD", 100)


@pytest.mark.parametrize("timestamp", [0, -5])
def test_get_price_rejects_non_positive_timestamp(history, timestamp):
    with pytest.raises(ValueError):
        history.get_price("BTC", timestamp)


def test_get_price_rejects_out_of_range_timestamp(repository, history):
    repository.save_price_snapshot(_snapshot(100, 10.0))

    with pytest.raises(ValueError):
        history.get_price("BTC", 2**63)


def test_get_history_returns_inclusive_ascending_range(repository, history):
    for ts in (300, 100, 200, 400):
        repository.save_price_snapshot(_snapshot(ts, float(ts)))

    result = history.get_history("btc", 100, 300)

    assert [to_unix(item.timestamp) for item in result] == [100, 200, 300]


def test_get_history_rejects_inverted_range(history):
    with pytest.raises(ValueError):
        history.get_history("BTC", 300, 100)


def test_choose_nearest_prefers_older_on_tie():
    older = _snapshot(100, 1.0)
    newer = _snapshot(200, 2.0)

    assert choose_nearest(from_unix(150), older, newer) is older
    assert choose_nearest(from_unix(151), older, newer) is newer


def test_choose_nearest_handles_one_sided_candidates():
    only = _snapshot(100, 1.0)

    assert choose_nearest(from_unix(50), None, only) is only
    assert choose_nearest(from_unix(500), only, None) is only
    with pytest.raises(PriceNotFoundError):
        choose_nearest(from_unix(500), None, None)
