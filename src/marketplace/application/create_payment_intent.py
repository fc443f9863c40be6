"""Application service: Create Payment Intent use case.

Opens a checkout order at the gateway for the order's net amount.  Nothing
is written locally: a Payment row only appears once a payment has been
verified, so abandoned checkouts leave no trace here.
"""

from __future__ import annotations

import logging

from marketplace.application.dto import (
    CustomerContactDTO,
    PaymentIntentDTO,
    RemoteOrderDTO,
    order_amounts_dto,
)
from marketplace.domain.exceptions import (
    AlreadyPaidError,
    ForbiddenError,
    GatewayError,
    InvalidPaymentStateError,
    NothingToChargeError,
    OrderNotFoundError,
)
from marketplace.domain.gateway.payment_gateway import PaymentGateway
from marketplace.domain.model.order import OrderStatus, PaymentMode, PaymentStatus
from marketplace.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class CreatePaymentIntentHandler:

    def __init__(self, uow: UnitOfWork, gateway: PaymentGateway) -> None:
        self._uow = uow
        self._gateway = gateway

    def handle(self, order_id: str, user_id: str) -> PaymentIntentDTO:
        with self._uow as uow:
            order = uow.orders.get_by_id(order_id)
            if order is None:
                raise OrderNotFoundError(f"Order {order_id} not found")
            if order.user_id != user_id:
                raise ForbiddenError(f"Not allowed to pay for order {order_id}")
            if order.payment_status == PaymentStatus.PAID:
                raise AlreadyPaidError(f"Order {order_id} is already paid")
            if order.payment_status != PaymentStatus.PENDING:
                raise InvalidPaymentStateError(
                    f"Order {order_id} payment is {order.payment_status.value}"
                )
            if order.payment_mode != PaymentMode.ONLINE or order.status != OrderStatus.PLACED:
                raise InvalidPaymentStateError(
                    f"Order {order_id} is not awaiting an online payment"
                )
            if order.net_amount.amount <= 0:
                raise NothingToChargeError(f"Order {order_id} has nothing to charge")
            customer = uow.customers.get_by_id(order.user_id)

        try:
            remote = self._gateway.create_remote_order(
                amount=order.net_amount.amount,
                currency=order.currency,
                receipt=order.receipt,
                metadata={"order_id": order.id, "user_id": order.user_id},
            )
        except GatewayError as exc:
            logger.warning("Could not open checkout for order %s: %s", order_id, exc)
            raise

        logger.info(
            "Checkout %s opened for order %s (%s)", remote.id, order_id, order.net_amount
        )
        return PaymentIntentDTO(
            remote_order=RemoteOrderDTO(
                id=remote.id,
                amount=remote.amount,
                currency=remote.currency,
                receipt=remote.receipt,
            ),
            order=order_amounts_dto(order),
            order_id=order.id,
            customer=CustomerContactDTO(
                name=customer.name if customer else "",
                email=customer.email if customer else "",
                phone=customer.phone if customer else "",
            ),
            key_id=self._gateway.key_id,
        )
