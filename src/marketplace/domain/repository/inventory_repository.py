"""Abstract repository for per-product stock counters."""

from __future__ import annotations

from abc import ABC, abstractmethod


class InventoryRepository(ABC):

    @abstractmethod
    def get_stock(self, product_id: str) -> int | None:
        """Return the current stock of a product, or None if it is unknown."""

    @abstractmethod
    def try_decrement(self, product_id: str, quantity: int) -> bool:
        """Atomically take ``quantity`` units if at least that many are left.

        Returns False, leaving stock untouched, when there is not enough.
        """

    @abstractmethod
    def increment(self, product_id: str, quantity: int) -> None:
        """Atomically put ``quantity`` units back into stock."""
