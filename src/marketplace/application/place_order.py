"""Application service: Place Order use case.

Turns the user's cart into an order in one unit of work: price snapshot,
charges, stock reservation, store credit debit and cart clean-up either
all happen or none of them do.
"""

from __future__ import annotations

import logging

from marketplace.application.clock import Clock, utc_now
from marketplace.application.dto import OrderDTO, order_to_dto
from marketplace.domain.exceptions import (
    EmptyCartError,
    EntityNotFoundError,
    InvalidAddressError,
)
from marketplace.domain.model.order import Order, OrderItem, PaymentMode
from marketplace.domain.model.value_objects import Money
from marketplace.domain.repository.unit_of_work import UnitOfWork
from marketplace.domain.service.inventory_ledger import InventoryLedger
from marketplace.domain.service.pricing import PricingPolicy

logger = logging.getLogger(__name__)


class PlaceOrderHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        pricing: PricingPolicy,
        clock: Clock = utc_now,
    ) -> None:
        self._uow = uow
        self._pricing = pricing
        self._clock = clock

    def handle(self, user_id: str, address_id: str, payment_mode: str) -> OrderDTO:
        """Place an order from the user's cart.

        Steps:
        1. Check the address belongs to the user and the cart is not empty.
        2. Build OrderItems with *current* product prices (snapshot).
        3. Quote shipping, tax and store credit.
        4. Reserve stock, debit credit, clear the cart, persist, commit.
        """
        mode = PaymentMode.parse(payment_mode)
        if not address_id or not address_id.strip():
            raise InvalidAddressError("Shipping address is required")

        with self._uow as uow:
            if not uow.addresses.belongs_to(address_id, user_id):
                raise InvalidAddressError(f"Address '{address_id}' not found")

            cart = uow.carts.list_for_user(user_id)
            if not cart:
                raise EmptyCartError("Cart is empty")

            items: list[OrderItem] = []
            for line in cart:
                product = uow.products.get_by_id(line.product_id)
                if product is None:
                    raise EntityNotFoundError(
                        f"Product not found: '{line.product_id}'"
                    )
                items.append(
                    OrderItem(
                        product_id=product.id,
                        product_name=product.name,
                        quantity=line.quantity,
                        unit_price=product.price,  # <-- price snapshot
                    )
                )

            customer = uow.customers.get_by_id(user_id)
            gross = Money.sum([item.line_total for item in items], self._pricing.currency)
            charges = self._pricing.quote(
                gross, customer.store_credit if customer is not None else None
            )

            order = Order.place(
                user_id=user_id,
                address_id=address_id,
                payment_mode=mode,
                items=items,
                charges=charges,
                now=self._clock(),
            )

            InventoryLedger(uow.inventory).reserve_for_order(order)

            if customer is not None and not charges.credits.is_zero:
                customer.debit_credit(charges.credits)
                uow.customers.save(customer)

            uow.orders.save(order)
            uow.carts.clear(user_id)
            uow.commit()

        logger.info(
            "Order %s placed by user %s (%s, net %s, payment %s)",
            order.id,
            user_id,
            mode.value,
            order.net_amount,
            order.payment_status.value,
        )
        return order_to_dto(order)
