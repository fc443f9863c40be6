import click

from marketplace.infrastructure.bootstrap import settings
from marketplace.infrastructure.cli.db_commands import db_init, db_seed
from marketplace.infrastructure.cli.order_commands import (
    order_cancel,
    order_expire,
    order_list,
    order_place,
    order_search,
    order_show,
    order_status,
)
from marketplace.infrastructure.cli.payment_commands import (
    payment_fail,
    payment_intent,
    payment_refund,
    payment_verify,
)
from marketplace.infrastructure.config import ConfigurationError
from marketplace.infrastructure.logging_config import configure_logging


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log at DEBUG level.")
def cli(verbose: bool) -> None:
    """Marketplace: order lifecycle and payment reconciliation"""
    try:
        level = "DEBUG" if verbose else settings().log_level
    except ConfigurationError as exc:
        raise click.ClickException(f"[CONFIGURATION_ERROR] {exc}")
    configure_logging(level)


@cli.group()
def order() -> None:
    """Place and manage orders."""


@cli.group()
def payment() -> None:
    """Collect, reconcile and refund payments."""


@cli.group()
def db() -> None:
    """Manage the database."""


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_expire)
order.add_command(order_list)
order.add_command(order_place)
order.add_command(order_search)
order.add_command(order_show)
order.add_command(order_status)
payment.add_command(payment_fail)
payment.add_command(payment_intent)
payment.add_command(payment_refund)
payment.add_command(payment_verify)
db.add_command(db_init)
db.add_command(db_seed)
