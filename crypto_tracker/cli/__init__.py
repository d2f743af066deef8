"""CLI entry points."""

from __future__ import annotations

from flask import Flask

from .currencies import list_currencies
from .ingest import ingest_prices


def register_cli(app: Flask) -> None:
    """Register CLI commands on the given Flask app."""

    app.cli.add_command(ingest_prices)
    app.cli.add_command(list_currencies)
