"""CLI for running a single ingestion cycle."""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from crypto_tracker.services.scheduler import run_ingestion_cycle


@click.command("ingest-prices")
@with_appcontext
def ingest_prices() -> None:
    """Fetch and store a fresh price for every tracked currency."""

    click.echo("Starting ingestion cycle...")
    outcome = run_ingestion_cycle(current_app._get_current_object())  # type: ignore[attr-defined]
    if not outcome.succeeded or outcome.report is None:
        raise click.ClickException(f"Ingestion failed after {outcome.attempts} attempt(s).")

    report = outcome.report
    click.echo(f"Ingestion completed: {report.saved} saved, {report.skipped} skipped.")
    for symbol, code in sorted(report.failures.items()):
        click.echo(f"  {symbol}: {code}")
