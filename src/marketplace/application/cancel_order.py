"""Application service: Cancel Order use case.

Only PLACED orders can be cancelled.  The reserved stock is released and
any applied store credit returned in the same unit of work.  Refunding an
online payment that was already captured is a separate, explicit admin
decision (see ``issue_refund``).
"""

from __future__ import annotations

import logging

from marketplace.application.clock import Clock, utc_now
from marketplace.application.compensation import release_order_resources
from marketplace.application.dto import OrderDTO, order_to_dto
from marketplace.domain.exceptions import ForbiddenError, OrderNotFoundError
from marketplace.domain.model.customer import Actor
from marketplace.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class CancelOrderHandler:

    def __init__(self, uow: UnitOfWork, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    def handle(self, actor: Actor, order_id: str, reason: str = "") -> OrderDTO:
        with self._uow as uow:
            order = uow.orders.get_by_id(order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError(f"Order {order_id} not found")
            if not actor.can_access(order.user_id):
                raise ForbiddenError(f"Not allowed to cancel order {order_id}")

            order.cancel(reason or "Cancelled by customer", self._clock())
            release_order_resources(uow, order)
            uow.orders.save(order)
            uow.commit()

        logger.info("Order %s cancelled by %s", order_id, actor.user_id)
        return order_to_dto(order)
