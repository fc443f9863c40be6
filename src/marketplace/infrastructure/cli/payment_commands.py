"""CLI commands for payment collection, reconciliation and refunds."""

from __future__ import annotations

from contextlib import closing

import click

from marketplace.application.create_payment_intent import CreatePaymentIntentHandler
from marketplace.application.handle_payment_failure import HandlePaymentFailureHandler
from marketplace.application.issue_refund import IssueRefundHandler
from marketplace.application.verify_payment import VerifyPaymentHandler
from marketplace.domain.model.customer import Actor
from marketplace.infrastructure.bootstrap import payment_gateway, unit_of_work
from marketplace.infrastructure.cli.common import actor_option, domain_errors


@click.command("intent")
@click.option("--order", "order_id", required=True, help="Order to pay for.")
@click.option("--user", "user_id", required=True, help="Paying user id.")
@domain_errors
def payment_intent(order_id: str, user_id: str) -> None:
    """Open a checkout at the payment gateway for an online order."""
    with closing(payment_gateway()) as gateway:
        handler = CreatePaymentIntentHandler(uow=unit_of_work(), gateway=gateway)
        dto = handler.handle(order_id=order_id, user_id=user_id)

    click.echo(f"Checkout {dto.remote_order.id} opened for order {dto.order_id}")
    click.echo(f"Amount:   {dto.order.net.display} ({dto.remote_order.amount} minor units)")
    click.echo(f"Key id:   {dto.key_id}")
    click.echo(f"Customer: {dto.customer.name} <{dto.customer.email}> {dto.customer.phone}")


@click.command("verify")
@click.option("--order", "order_id", required=True, help="Order the payment settles.")
@click.option("--user", "user_id", required=True, help="Paying user id.")
@click.option("--remote-order", "remote_order_id", required=True, help="Gateway order id.")
@click.option("--payment", "remote_payment_id", required=True, help="Gateway payment id.")
@click.option("--signature", required=True, help="Checkout callback signature.")
@domain_errors
def payment_verify(
    order_id: str,
    user_id: str,
    remote_order_id: str,
    remote_payment_id: str,
    signature: str,
) -> None:
    """Verify a checkout callback and mark the order paid."""
    with closing(payment_gateway()) as gateway:
        handler = VerifyPaymentHandler(uow=unit_of_work(), gateway=gateway)
        dto = handler.handle(
            order_id=order_id,
            user_id=user_id,
            remote_order_id=remote_order_id,
            remote_payment_id=remote_payment_id,
            signature=signature,
        )

    click.echo(
        f"Order {dto.order.id} paid: {dto.payment.amount.display} "
        f"(payment {dto.payment.provider_payment_id})"
    )


@click.command("fail")
@click.option("--order", "order_id", required=True, help="Order whose payment failed.")
@click.option("--user", "user_id", required=True, help="Paying user id.")
@click.option("--code", default=None, help="Gateway error code.")
@click.option("--description", default=None, help="Gateway error description.")
@domain_errors
def payment_fail(
    order_id: str, user_id: str, code: str | None, description: str | None
) -> None:
    """Report a failed checkout (cancels the order, releases stock)."""
    error_info = {
        key: value
        for key, value in (("code", code), ("description", description))
        if value
    }
    HandlePaymentFailureHandler(uow=unit_of_work()).handle(order_id, user_id, error_info)

    click.echo(f"Payment failure for order {order_id} acknowledged.")


@click.command("refund")
@click.option("--order", "order_id", required=True, help="Paid order to refund.")
@click.option("--reason", required=True, help="Refund reason.")
@click.option("--amount", default=None, help="Amount to refund (e.g. 120.50); full payment if omitted.")
@click.option(
    "--method",
    type=click.Choice(["GATEWAY", "MANUAL_CREDIT"], case_sensitive=False),
    default="GATEWAY",
    show_default=True,
    help="Refund to the payer or as store credit.",
)
@actor_option
@domain_errors
def payment_refund(
    actor: Actor, order_id: str, reason: str, amount: str | None, method: str
) -> None:
    """Refund a paid order (admin)."""
    with closing(payment_gateway()) as gateway:
        handler = IssueRefundHandler(uow=unit_of_work(), gateway=gateway)
        dto = handler.handle(
            actor,
            order_id,
            reason,
            amount_override=amount,
            method=method,
        )

    click.echo(
        f"Refund {dto.id} for order {dto.order_id}: {dto.amount.display} "
        f"via {dto.method} ({dto.status})"
    )
