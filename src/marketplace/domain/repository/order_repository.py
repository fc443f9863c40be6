"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.domain.model.order import Order
from marketplace.domain.model.order_query import OrderFilter, OrderSort


class OrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, order_id: str, *, for_update: bool = False) -> Order | None:
        """Return an order by its ID, or None if not found.

        With ``for_update`` the order row stays locked until the enclosing
        unit of work ends, so concurrent payment transitions serialize.
        """

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist a new or updated order."""

    @abstractmethod
    def find(
        self,
        filters: list[OrderFilter],
        sort: OrderSort,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Order]:
        """Return orders matching every filter, sorted, optionally paged."""

    @abstractmethod
    def count(self, filters: list[OrderFilter]) -> int:
        """Return how many orders match every filter."""
