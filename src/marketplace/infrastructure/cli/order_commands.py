"""CLI commands for the Order aggregate."""

from __future__ import annotations

from datetime import timedelta, timezone

import click

from marketplace.application.cancel_order import CancelOrderHandler
from marketplace.application.expire_stale_orders import ExpireStaleOrdersHandler
from marketplace.application.list_orders import (
    ListOrdersHandler,
    OrderSearchCriteria,
    SearchOrdersHandler,
)
from marketplace.application.place_order import PlaceOrderHandler
from marketplace.application.show_order import ShowOrderHandler
from marketplace.application.update_order_status import UpdateOrderStatusHandler
from marketplace.domain.model.customer import Actor
from marketplace.infrastructure.bootstrap import pricing_policy, unit_of_work
from marketplace.infrastructure.cli.common import (
    actor_option,
    display_order,
    display_order_row,
    domain_errors,
    order_table_header,
)

_DATE = click.DateTime(formats=["%Y-%m-%d"])


@click.command("place")
@click.option("--user", "user_id", required=True, help="User whose cart is ordered.")
@click.option("--address", "address_id", required=True, help="Shipping address id.")
@click.option(
    "--mode",
    "payment_mode",
    type=click.Choice(["ONLINE", "COD"], case_sensitive=False),
    default="ONLINE",
    show_default=True,
    help="Payment mode.",
)
@domain_errors
def order_place(user_id: str, address_id: str, payment_mode: str) -> None:
    """Place an order from the user's cart (reserves stock)."""
    handler = PlaceOrderHandler(uow=unit_of_work(), pricing=pricing_policy())
    dto = handler.handle(user_id=user_id, address_id=address_id, payment_mode=payment_mode)

    click.echo(f"Order {dto.id} placed  (payment={dto.payment_status})")
    click.echo()
    display_order(dto)


@click.command("show")
@click.option("--id", "order_id", required=True, help="Order id to display.")
@actor_option
@domain_errors
def order_show(actor: Actor, order_id: str) -> None:
    """Show details of an existing order."""
    dto = ShowOrderHandler(uow=unit_of_work()).handle(actor, order_id)
    display_order(dto)


@click.command("list")
@click.option("--user", "user_id", required=True, help="User whose orders are listed.")
@domain_errors
def order_list(user_id: str) -> None:
    """List a user's orders, newest first."""
    orders = ListOrdersHandler(uow=unit_of_work()).handle(user_id)

    if not orders:
        click.echo("No orders found.")
        return

    order_table_header()
    for dto in orders:
        display_order_row(dto)


@click.command("search")
@click.option("--status", "statuses", multiple=True, help="Order status (repeatable).")
@click.option(
    "--payment-status", "payment_statuses", multiple=True, help="Payment status (repeatable)."
)
@click.option("--from", "start", type=_DATE, default=None, help="Created on or after (YYYY-MM-DD).")
@click.option("--to", "end", type=_DATE, default=None, help="Created on or before (YYYY-MM-DD).")
@click.option("--sort-by", default="created_at", show_default=True, help="Sort field.")
@click.option(
    "--sort-order",
    type=click.Choice(["asc", "desc"], case_sensitive=False),
    default="desc",
    show_default=True,
)
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=50, show_default=True)
@actor_option
@domain_errors
def order_search(
    actor: Actor,
    statuses: tuple[str, ...],
    payment_statuses: tuple[str, ...],
    start,
    end,
    sort_by: str,
    sort_order: str,
    page: int,
    limit: int,
) -> None:
    """Search all orders (admin)."""
    criteria = OrderSearchCriteria(
        statuses=statuses,
        payment_statuses=payment_statuses,
        start=start.date() if start else None,
        end=end.date() if end else None,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    result = SearchOrdersHandler(uow=unit_of_work()).handle(actor, criteria)

    info = result.pagination
    if not result.orders:
        click.echo("No orders found.")
    else:
        order_table_header()
        for dto in result.orders:
            display_order_row(dto)
    click.echo(
        f"Page {info.current_page} of {max(info.total_pages, 1)}  "
        f"({info.total_count} orders)"
    )


@click.command("status")
@click.option("--id", "order_id", required=True, help="Order id.")
@click.option(
    "--to",
    "status",
    required=True,
    type=click.Choice(["SHIPPED", "DELIVERED"], case_sensitive=False),
    help="New status.",
)
@click.option("--carrier", default=None, help="Carrier name (when shipping).")
@click.option("--tracking", default=None, help="Tracking number (when shipping).")
@click.option("--eta", type=_DATE, default=None, help="Estimated delivery (YYYY-MM-DD).")
@actor_option
@domain_errors
def order_status(
    actor: Actor,
    order_id: str,
    status: str,
    carrier: str | None,
    tracking: str | None,
    eta,
) -> None:
    """Move an order forward: ship or deliver it (admin)."""
    handler = UpdateOrderStatusHandler(uow=unit_of_work())
    dto = handler.handle(
        actor,
        order_id,
        status,
        carrier_name=carrier,
        tracking_number=tracking,
        estimated_delivery=eta.replace(tzinfo=timezone.utc) if eta else None,
    )

    click.echo(f"Order {dto.id} is now {dto.status} (payment={dto.payment_status}).")


@click.command("cancel")
@click.option("--id", "order_id", required=True, help="Order id to cancel.")
@click.option("--reason", default="", help="Cancellation reason.")
@actor_option
@domain_errors
def order_cancel(actor: Actor, order_id: str, reason: str) -> None:
    """Cancel a placed order (releases stock and store credit)."""
    CancelOrderHandler(uow=unit_of_work()).handle(actor, order_id, reason)

    click.echo(f"Order {order_id} cancelled.")


@click.command("expire")
@click.option(
    "--older-than-minutes",
    "minutes",
    required=True,
    type=click.IntRange(min=1),
    help="Cancel unpaid online orders placed longer ago than this.",
)
@domain_errors
def order_expire(minutes: int) -> None:
    """Cancel abandoned online checkouts and release their stock."""
    expired = ExpireStaleOrdersHandler(uow=unit_of_work()).handle(timedelta(minutes=minutes))

    if not expired:
        click.echo("No stale orders.")
        return
    for order_id in expired:
        click.echo(f"Order {order_id} expired.")
    click.echo(f"{len(expired)} order(s) expired.")
