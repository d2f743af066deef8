"""CLI command for listing tracked currencies."""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from crypto_tracker.database import session_scope


@click.command("list-currencies")
@click.option("--page-size", default=100, show_default=True, help="Currencies fetched per page")
@with_appcontext
def list_currencies(page_size: int) -> None:
    """Print every tracked symbol, oldest first."""

    registry = current_app.extensions["currency_registry"]
    count = 0
    with session_scope():
        for page in registry.iter_pages(page_size):
            for currency in page:
                click.echo(f"{currency.symbol}\t{currency.created_at.isoformat()}")
                count += 1
    if count == 0:
        click.echo("No currencies tracked.")
