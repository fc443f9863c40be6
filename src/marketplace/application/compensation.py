"""Compensating actions for an order that is cancelled before fulfillment.

Undoes what placement did: puts the reserved stock back and returns any
store credit that was applied.  Must run in the same unit of work as the
cancellation itself.
"""

from __future__ import annotations

from marketplace.domain.model.order import Order
from marketplace.domain.repository.unit_of_work import UnitOfWork
from marketplace.domain.service.inventory_ledger import InventoryLedger


def release_order_resources(uow: UnitOfWork, order: Order) -> None:
    InventoryLedger(uow.inventory).release_for_order(order)

    if not order.credits_applied.is_zero:
        customer = uow.customers.get_by_id(order.user_id)
        if customer is not None:
            customer.add_credit(order.credits_applied)
            uow.customers.save(customer)
