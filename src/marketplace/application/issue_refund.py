"""Application service: Issue Refund use case (admin).

Refunds a settled payment either through the gateway or as store credit.
The order's status and payment status are left untouched; whether a
refunded order should also be cancelled is an administrative decision.

The refundable balance is checked under the order's row lock, in the same
transaction that records the refund, so concurrent refunds cannot both
spend it.  Gateway calls stay outside transactions: a gateway refund is
first recorded as pending (which holds its share of the balance) and is
settled or marked failed once the gateway answers.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from marketplace.application.clock import Clock, utc_now
from marketplace.application.dto import RefundDTO, refund_to_dto
from marketplace.domain.exceptions import (
    EntityNotFoundError,
    ForbiddenError,
    GatewayRejectedError,
    GatewayUnavailableError,
    OrderNotFoundError,
    PaymentNotFoundError,
    ValidationError,
)
from marketplace.domain.gateway.payment_gateway import PaymentGateway
from marketplace.domain.model.customer import Actor
from marketplace.domain.model.payment import (
    REFUND_PENDING,
    Payment,
    Refund,
    RefundMethod,
    refundable_balance,
)
from marketplace.domain.model.value_objects import Money
from marketplace.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class IssueRefundHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        gateway: PaymentGateway,
        clock: Clock = utc_now,
    ) -> None:
        self._uow = uow
        self._gateway = gateway
        self._clock = clock

    def handle(
        self,
        actor: Actor,
        order_id: str,
        reason: str,
        amount_override: str | Decimal | None = None,
        method: RefundMethod | str = RefundMethod.GATEWAY,
    ) -> RefundDTO:
        """Refund a paid order.

        Args:
            actor: Must be an admin.
            order_id: The paid order.
            reason: Free text kept with the refund.
            amount_override: Amount in display units (e.g. "120.50"); the
                full payment amount when omitted.
            method: GATEWAY refunds the payer; MANUAL_CREDIT adds store
                credit instead.
        """
        if not actor.is_admin:
            raise ForbiddenError("Only admins can issue refunds")
        if isinstance(method, str):
            method = RefundMethod.parse(method)

        with self._uow as uow:
            # Lock the order so concurrent refunds see each other's rows.
            order = uow.orders.get_by_id(order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(f"Order {order_id} not found")
            payment = uow.payments.find_paid_for_order(order_id, self._gateway.provider)
            if payment is None:
                raise PaymentNotFoundError(f"No settled payment found for order {order_id}")
            balance = refundable_balance(payment, uow.refunds.list_for_order(order_id))
            requested = self._requested_amount(payment, amount_override, balance)

            if method == RefundMethod.GATEWAY:
                refund = Refund.against(
                    payment,
                    RefundMethod.GATEWAY,
                    requested,
                    reason,
                    now=self._clock(),
                    status=REFUND_PENDING,
                    metadata={"requested_amount": requested.amount},
                )
            else:
                customer = uow.customers.get_by_id(payment.user_id)
                if customer is None:
                    raise EntityNotFoundError(f"User '{payment.user_id}' not found")
                customer.add_credit(requested)
                refund = Refund.against(
                    payment, RefundMethod.MANUAL_CREDIT, requested, reason, now=self._clock()
                )
                uow.customers.save(customer)
            uow.refunds.save(refund)
            uow.commit()

        if method == RefundMethod.GATEWAY:
            self._execute_at_gateway(payment, refund)

        logger.info(
            "Refund %s issued for order %s: %s via %s by %s",
            refund.id,
            order_id,
            refund.amount,
            method.value,
            actor.user_id,
        )
        return refund_to_dto(refund)

    @staticmethod
    def _requested_amount(
        payment: Payment,
        amount_override: str | Decimal | None,
        balance: Money,
    ) -> Money:
        if amount_override is not None:
            requested = Money.from_major(amount_override, payment.amount.currency)
        else:
            requested = payment.amount
        if requested.is_zero:
            raise ValidationError("Refund amount must be greater than zero")
        if requested > balance:
            raise ValidationError(
                f"Refund of {requested} exceeds the refundable balance {balance}"
            )
        return requested

    def _execute_at_gateway(self, payment: Payment, refund: Refund) -> None:
        try:
            remote = self._gateway.issue_refund(
                payment.provider_payment_id,
                refund.amount.amount,
                notes={"order_id": payment.order_id, "reason": refund.reason},
            )
        except (GatewayRejectedError, PaymentNotFoundError) as exc:
            logger.warning("Refund for order %s rejected: %s", payment.order_id, exc)
            refund.mark_failed(str(exc))
            self._save(refund)
            raise
        except GatewayUnavailableError as exc:
            # The refund may still have gone through; it stays pending.
            logger.warning(
                "Refund %s for order %s left pending: %s", refund.id, payment.order_id, exc
            )
            raise

        # The gateway's executed amount is authoritative.
        refund.settle(
            Money(remote.amount, refund.amount.currency),
            provider_refund_id=remote.id,
            status=remote.status,
        )
        self._save(refund)

    def _save(self, refund: Refund) -> None:
        with self._uow as uow:
            uow.refunds.save(refund)
            uow.commit()
