"""Application service: Update Order Status use case (admin).

Moves an order forward through fulfillment: PLACED -> SHIPPED ->
DELIVERED.  Cancellation has its own use case because it must release
stock.
"""

from __future__ import annotations

import logging
from datetime import datetime

from marketplace.application.clock import Clock, utc_now
from marketplace.application.dto import OrderDTO, order_to_dto
from marketplace.domain.exceptions import (
    ForbiddenError,
    InvalidOrderStateError,
    OrderNotFoundError,
    ValidationError,
)
from marketplace.domain.model.customer import Actor
from marketplace.domain.model.order import OrderStatus
from marketplace.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class UpdateOrderStatusHandler:

    def __init__(self, uow: UnitOfWork, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    def handle(
        self,
        actor: Actor,
        order_id: str,
        status: str,
        carrier_name: str | None = None,
        tracking_number: str | None = None,
        estimated_delivery: datetime | None = None,
    ) -> OrderDTO:
        if not actor.is_admin:
            raise ForbiddenError("Only admins can update order status")
        try:
            target = OrderStatus(status.strip().upper())
        except ValueError as exc:
            raise ValidationError(f"Invalid status value {status!r}") from exc
        if target == OrderStatus.CANCELLED:
            raise ValidationError("Use order cancellation to cancel an order")

        with self._uow as uow:
            order = uow.orders.get_by_id(order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(f"Order {order_id} not found")

            now = self._clock()
            if target == OrderStatus.SHIPPED:
                order.ship(now, carrier_name, tracking_number, estimated_delivery)
            elif target == OrderStatus.DELIVERED:
                order.deliver(now)
            else:
                raise InvalidOrderStateError(
                    f"Order {order_id} cannot move back to {target.value}"
                )

            uow.orders.save(order)
            uow.commit()

        logger.info("Order %s moved to %s by %s", order_id, target.value, actor.user_id)
        return order_to_dto(order)
