"""CLI commands for database setup."""

from __future__ import annotations

from pathlib import Path

import click

from marketplace.infrastructure.bootstrap import engine, session_factory, settings
from marketplace.infrastructure.cli.common import domain_errors
from marketplace.infrastructure.persistence.seed import load_seed
from marketplace.infrastructure.persistence.tables import create_schema


@click.command("init")
@domain_errors
def db_init() -> None:
    """Create any missing tables."""
    create_schema(engine())
    click.echo("Database schema is up to date.")


@click.command("seed")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with customers, addresses, products and cart items.",
)
@domain_errors
def db_seed(file_path: Path) -> None:
    """Load sample customers, products and carts."""
    create_schema(engine())
    with session_factory()() as session:
        summary = load_seed(session, file_path, currency=settings().currency)
        session.commit()

    click.echo(
        f"Loaded {summary.customers} customers, {summary.addresses} addresses, "
        f"{summary.products} products, {summary.cart_items} cart items."
    )
