"""Unit of Work: one database transaction spanning several repositories.

Every multi-row mutation (order placement, payment settlement, failure
compensation) runs inside one ``with uow:`` block and becomes visible
only through an explicit ``commit()``.  Leaving the block without
committing, normally because an exception escaped, rolls everything back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.domain.repository.customer_repository import (
    AddressRepository,
    CustomerRepository,
)
from marketplace.domain.repository.inventory_repository import InventoryRepository
from marketplace.domain.repository.order_repository import OrderRepository
from marketplace.domain.repository.payment_repository import (
    PaymentRepository,
    RefundRepository,
)
from marketplace.domain.repository.product_repository import (
    CartRepository,
    ProductRepository,
)


class UnitOfWork(ABC):

    orders: OrderRepository
    payments: PaymentRepository
    refunds: RefundRepository
    inventory: InventoryRepository
    products: ProductRepository
    carts: CartRepository
    customers: CustomerRepository
    addresses: AddressRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # No-op after a successful commit.
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Make every change since the block started durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard every uncommitted change."""
