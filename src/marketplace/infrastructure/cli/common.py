"""Helpers shared by the CLI command modules."""

from __future__ import annotations

import functools

import click

from marketplace.application.dto import AmountDTO, OrderDTO
from marketplace.domain.exceptions import DomainException
from marketplace.domain.model.customer import Actor, Role
from marketplace.infrastructure.config import ConfigurationError


def actor_option(func):
    """Add ``--user`` / ``--admin`` and pass an ``actor`` to the command."""

    @click.option("--user", "user_id", required=True, help="Acting user id.")
    @click.option("--admin", is_flag=True, default=False, help="Act with the admin role.")
    @functools.wraps(func)
    def wrapper(user_id: str, admin: bool, **kwargs):
        actor = Actor(user_id=user_id, role=Role.ADMIN if admin else Role.CUSTOMER)
        return func(actor=actor, **kwargs)

    return wrapper


def domain_errors(func):
    """Render domain and configuration errors as ``[CODE] message``."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DomainException as exc:
            raise click.ClickException(f"[{exc.code}] {exc}") from exc
        except ConfigurationError as exc:
            raise click.ClickException(f"[CONFIGURATION_ERROR] {exc}") from exc

    return wrapper


def _fmt(amount: AmountDTO) -> str:
    return amount.display


def display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {dto.id}  (status={dto.status}, payment={dto.payment_status})")
    click.echo(f"User:     {dto.user_id}    Mode: {dto.payment_mode}")
    click.echo(f"Created:  {dto.created_at:%Y-%m-%d %H:%M:%S %Z}")
    if dto.shipped_at:
        carrier = f" via {dto.carrier_name}" if dto.carrier_name else ""
        tracking = f" ({dto.tracking_number})" if dto.tracking_number else ""
        click.echo(f"Shipped:  {dto.shipped_at:%Y-%m-%d %H:%M}{carrier}{tracking}")
    if dto.delivered_at:
        click.echo(f"Delivered: {dto.delivered_at:%Y-%m-%d %H:%M}")
    if dto.cancelled_at:
        click.echo(f"Cancelled: {dto.cancelled_at:%Y-%m-%d %H:%M} ({dto.cancellation_reason})")
    click.echo()

    click.echo(f"  {'Product':<24} {'Qty':>5} {'Price':>12} {'Total':>12}")
    click.echo(f"  {'-'*56}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<24} {item.quantity:>5} "
            f"{_fmt(item.unit_price):>12} {_fmt(item.line_total):>12}"
        )
    click.echo(f"  {'-'*56}")
    amounts = dto.amounts
    click.echo(f"  {'Subtotal':<30} {_fmt(amounts.gross):>26}")
    click.echo(f"  {'Shipping':<30} {_fmt(amounts.shipping):>26}")
    click.echo(f"  {'Tax':<30} {_fmt(amounts.tax):>26}")
    if amounts.credits_applied.minor:
        click.echo(f"  {'Store credit':<30} {'-' + _fmt(amounts.credits_applied):>26}")
    click.echo(f"  {'Amount due':<30} {_fmt(amounts.net):>26}")


def display_order_row(dto: OrderDTO) -> None:
    click.echo(
        f"{dto.id:<34} {dto.status:<10} {dto.payment_status:<8} "
        f"{dto.payment_mode:<7} {dto.amounts.net.display:>12}  "
        f"{dto.created_at:%Y-%m-%d %H:%M}"
    )


def order_table_header() -> None:
    click.echo(
        f"{'Order':<34} {'Status':<10} {'Payment':<8} {'Mode':<7} {'Net':>12}  Created"
    )
    click.echo("-" * 92)
