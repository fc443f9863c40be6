"""Application service: Show Order use case (query)."""

from __future__ import annotations

from marketplace.application.dto import OrderDTO, order_to_dto
from marketplace.domain.exceptions import ForbiddenError, OrderNotFoundError
from marketplace.domain.model.customer import Actor
from marketplace.domain.repository.unit_of_work import UnitOfWork


class ShowOrderHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, actor: Actor, order_id: str) -> OrderDTO:
        with self._uow as uow:
            order = uow.orders.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if not actor.can_access(order.user_id):
            raise ForbiddenError(f"Not allowed to view order {order_id}")
        return order_to_dto(order)
