"""API tests for the currency endpoints."""

from __future__ import annotations

import pytest

from crypto_tracker.domain import PriceSnapshot
from crypto_tracker.utils.datetime import MAX_UNIX_TIMESTAMP, from_unix


def _add(client, symbol: str):
    return client.post("/currency/add", json={"symbol": symbol})


def _store_prices(app, currency_id: str, points: dict[int, float]) -> None:
    repository = app.extensions["crypto_repository"]
    for ts, price in points.items():
        repository.save_price_snapshot(
            PriceSnapshot(currency_id=currency_id, timestamp=from_unix(ts), price=price)
        )


def test_add_currency_returns_created_record(client):
    response = _add(client, " btc ")

    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["symbol"] == "BTC"
    assert data["id"]
    assert data["created_at"]


def test_add_currency_twice_conflicts(client):
    _add(client, "ETH")

    response = _add(client, "eth")

    assert response.status_code == 409
    assert response.get_json()["code"] == "duplicate_currency"


@pytest.mark.parametrize("symbol", ["BTC-USD", "TOOLONGSYMBOL", "DOGE"])
def test_add_currency_rejects_invalid_or_unquotable_symbols(client, symbol):
    response = _add(client, symbol)

    assert response.status_code == 400
    assert response.get_json()["code"] == "invalid_symbol"


def test_add_currency_requires_symbol(client):
    response = client.post("/currency/add", json={})

    assert response.status_code == 422
    payload = response.get_json()
    assert payload["code"] == "validation_error"
    assert payload["field_errors"] == {"symbol": ["'symbol' is required."]}


def test_remove_currency(client):
    _add(client, "SOL")

    response = client.post("/currency/remove", json={"symbol": "sol"})

    assert response.status_code == 200
    assert response.get_json() == {"data": {"message": "removed SOL"}}
    missing = client.post("/currency/remove", json={"symbol": "SOL"})
    assert missing.status_code == 404
    assert missing.get_json()["code"] == "not_tracked"


def test_list_currencies_oldest_first(client):
    for symbol in ("BTC", "ETH", "SOL"):
        _add(client, symbol)

    first = client.get("/currency?page_size=2&offset=0").get_json()
    second = client.get("/currency?page_size=2&offset=2").get_json()

    assert [item["symbol"] for item in first["data"]] == ["BTC", "ETH"]
    assert [item["symbol"] for item in second["data"]] == ["SOL"]
    assert first["page_size"] == 2


def test_list_currencies_rejects_bad_pagination(client):
    response = client.get("/currency?page_size=0")

    assert response.status_code == 422


def test_price_query_returns_nearest_snapshot(client, app):
    currency_id = _add(client, "BTC").get_json()["data"]["id"]
    _store_prices(app, currency_id, {100: 10.0, 200: 20.0})

    response = client.post("/currency/price", json={"symbol": "btc", "timestamp": 170})

    assert response.status_code == 200
    assert response.get_json() == {
        "data": {
            "symbol": "BTC",
            "requested_timestamp": 170,
            "returned_timestamp": 200,
            "price": 20.0,
        }
    }


def test_price_query_tie_returns_older_snapshot(client, app):
    currency_id = _add(client, "BTC").get_json()["data"]["id"]
    _store_prices(app, currency_id, {100: 10.0, 200: 20.0})

    response = client.post("/currency/price", json={"symbol": "BTC", "timestamp": 150})

    assert response.get_json()["data"]["returned_timestamp"] == 100


def test_price_query_without_snapshots_is_not_found(client):
    _add(client, "ETH")

    response = client.post("/currency/price", json={"symbol": "ETH", "timestamp": 100})

    assert response.status_code == 404
    assert response.get_json()["code"] == "price_not_found"


def test_price_query_for_untracked_symbol_is_not_found(client):
    response = client.post("/currency/price", json={"symbol": "ETH", "timestamp": 100})

    assert response.status_code == 404
    assert response.get_json()["code"] == "not_tracked"


@pytest.mark.parametrize("timestamp", [0, -1])
def test_price_query_rejects_non_positive_timestamp(client, timestamp):
    response = client.post("/currency/price", json={"symbol": "BTC", "timestamp": timestamp})

    assert response.status_code == 400
    assert response.get_json()["code"] == "invalid_timestamp"


@pytest.mark.parametrize("timestamp", [MAX_UNIX_TIMESTAMP + 1, 2**63])
def test_price_query_rejects_unrepresentable_timestamp(client, app, timestamp):
    currency_id = _add(client, "BTC").get_json()["data"]["id"]
    _store_prices(app, currency_id, {100: 10.0, 200: 20.0})

    response = client.post("/currency/price", json={"symbol": "BTC", "timestamp": timestamp})

    assert response.status_code == 400
    assert response.get_json()["code"] == "invalid_timestamp"


def test_price_query_accepts_far_future_timestamp(client, app):
    currency_id = _add(client, "BTC").get_json()["data"]["id"]
    _store_prices(app, currency_id, {100: 10.0, 200: 20.0})

    response = client.post(
        "/currency/price", json={"symbol": "BTC", "timestamp": MAX_UNIX_TIMESTAMP}
    )

    assert response.status_code == 200
    assert response.get_json()["data"]["returned_timestamp"] == 200


def test_price_query_rejects_non_integer_timestamp(client):
    response = client.post("/currency/price", json={"symbol": "BTC", "timestamp": "soon"})

    assert response.status_code == 422


def test_history_returns_range(client, app):
    currency_id = _add(client, "BTC").get_json()["data"]["id"]
    _store_prices(app, currency_id, {100: 1.0, 200: 2.0, 300: 3.0})

    response = client.get("/currency/btc/history?start=150&end=300")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["symbol"] == "BTC"
    assert payload["data"] == [
        {"timestamp": 200, "price": 2.0},
        {"timestamp": 300, "price": 3.0},
    ]


def test_history_rejects_inverted_range(client):
    _add(client, "BTC")

    response = client.get("/currency/BTC/history?start=300&end=100")

    assert response.status_code == 422
    assert response.get_json()["field_errors"] == {"start": ["Must not be after end."]}


def test_history_rejects_unrepresentable_end(client):
    _add(client, "BTC")

    response = client.get(f"/currency/BTC/history?start=100&end={2**63}")

    assert response.status_code == 400
    assert response.get_json()["code"] == "invalid_timestamp"


def test_removal_drops_price_history(client, app):
    currency_id = _add(client, "BTC").get_json()["data"]["id"]
    _store_prices(app, currency_id, {100: 1.0})
    client.post("/currency/remove", json={"symbol": "BTC"})
    _add(client, "BTC")

    response = client.post("/currency/price", json={"symbol": "BTC", "timestamp": 100})

    assert response.status_code == 404
    assert response.get_json()["code"] == "price_not_found"
