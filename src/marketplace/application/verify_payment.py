"""Application service: Verify Payment use case.

The single place where an online order becomes PAID.  The checkout
callback is untrusted input, so it is checked three ways before anything
is written: the HMAC signature, the gateway's own view of the payment
(must be captured, and for the gateway order named in the callback), and
the captured amount against the order's net amount.  The settlement
itself re-reads the order under a row lock, which makes duplicate
callbacks fail with AlreadyPaidError instead of recording a second
payment.
"""

from __future__ import annotations

import logging

from marketplace.application.clock import Clock, utc_now
from marketplace.application.dto import (
    VerifiedPaymentDTO,
    order_to_dto,
    payment_to_dto,
)
from marketplace.domain.exceptions import (
    AlreadyPaidError,
    AmountMismatchError,
    ForbiddenError,
    GatewayError,
    InvalidSignatureError,
    OrderNotFoundError,
    PaymentNotCapturedError,
    PaymentOrderMismatchError,
)
from marketplace.domain.gateway.payment_gateway import PaymentGateway
from marketplace.domain.model.order import PaymentStatus
from marketplace.domain.model.payment import Payment
from marketplace.domain.model.value_objects import Money
from marketplace.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class VerifyPaymentHandler:

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
        order_id: str,
        user_id: str,
        remote_order_id: str,
        remote_payment_id: str,
        signature: str,
    ) -> VerifiedPaymentDTO:
        if not self._gateway.verify_signature(remote_order_id, remote_payment_id, signature):
            logger.warning(
                "Rejected payment %s for order %s: invalid signature (user %s)",
                remote_payment_id,
                order_id,
                user_id,
            )
            raise InvalidSignatureError("Payment signature verification failed")

        try:
            remote = self._gateway.fetch_payment(remote_payment_id)
        except GatewayError as exc:
            logger.warning(
                "Could not fetch payment %s for order %s: %s",
                remote_payment_id,
                order_id,
                exc,
            )
            raise

        if not remote.is_captured:
            logger.warning(
                "Rejected payment %s for order %s: status is %r, not captured",
                remote_payment_id,
                order_id,
                remote.status,
            )
            raise PaymentNotCapturedError(
                f"Payment {remote_payment_id} has not been captured"
            )
        if remote.order_id and remote.order_id != remote_order_id:
            logger.warning(
                "Rejected payment %s for order %s: it belongs to gateway order %s, not %s",
                remote_payment_id,
                order_id,
                remote.order_id,
                remote_order_id,
            )
            raise PaymentOrderMismatchError(
                f"Payment {remote_payment_id} was not made for this checkout"
            )

        with self._uow as uow:
            order = uow.orders.get_by_id(order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(f"Order {order_id} not found")
            if order.payment_status == PaymentStatus.PAID:
                raise AlreadyPaidError(f"Order {order_id} is already paid")
            if order.user_id != user_id:
                raise ForbiddenError(f"Not allowed to pay for order {order_id}")
            if (
                remote.amount != order.net_amount.amount
                or remote.currency.upper() != order.currency
            ):
                logger.warning(
                    "Rejected payment %s for order %s: captured %d %s, expected %d %s",
                    remote_payment_id,
                    order_id,
                    remote.amount,
                    remote.currency,
                    order.net_amount.amount,
                    order.currency,
                )
                raise AmountMismatchError(
                    f"Captured amount does not match order {order_id}"
                )
            if uow.payments.get_by_provider_payment_id(remote.id) is not None:
                raise AlreadyPaidError(f"Payment {remote.id} has already been recorded")

            if order.payment_status != PaymentStatus.PENDING:
                logger.warning(
                    "Captured payment %s arrived for order %s in state %s/%s; "
                    "needs a manual refund",
                    remote.id,
                    order_id,
                    order.status.value,
                    order.payment_status.value,
                )

            now = self._clock()
            order.mark_paid(now)
            payment = Payment.captured(
                order,
                provider=self._gateway.provider,
                provider_payment_id=remote.id,
                amount=Money(remote.amount, order.currency),
                method=remote.method,
                metadata={
                    "remote_order_id": remote_order_id,
                    "remote_status": remote.status,
                    **remote.extra,
                },
                now=now,
            )
            uow.payments.save(payment)
            uow.orders.save(order)
            uow.commit()

        logger.info(
            "Order %s paid: payment %s for %s", order_id, remote.id, payment.amount
        )
        return VerifiedPaymentDTO(order=order_to_dto(order), payment=payment_to_dto(payment))
