from __future__ import annotations

from crypto_tracker.services.scheduler import INGESTION_STATE_KEY


def test_list_currencies_when_empty(app, clean_db):
    result = app.test_cli_runner().invoke(args=["list-currencies"])

    assert result.exit_code == 0
    assert "No currencies tracked." in result.output


def test_list_currencies_prints_symbols_in_order(app, client):
    for symbol in ("BTC", "ETH"):
        client.post("/currency/add", json={"symbol": symbol})

    result = app.test_cli_runner().invoke(args=["list-currencies", "--page-size", "1"])

    assert result.exit_code == 0
    lines = [line.split("\t")[0] for line in result.output.strip().splitlines()]
    assert lines == ["BTC", "ETH"]


def test_ingest_prices_stores_snapshots_for_tracked_currencies(app, client):
    client.post("/currency/add", json={"symbol": "BTC"})
    client.post("/currency/add", json={"symbol": "ETH"})

    result = app.test_cli_runner().invoke(args=["ingest-prices"])

    assert result.exit_code == 0, result.output
    assert "Ingestion completed: 2 saved, 0 skipped." in result.output
    assert app.extensions[INGESTION_STATE_KEY]["last_saved"] == 2

    listing = client.post("/currency/price", json={"symbol": "BTC", "timestamp": 1_700_000_000})
    assert listing.status_code == 200
    assert listing.get_json()["data"]["price"] == 65000.0
