"""Domain service: Inventory Ledger.

Stock is taken when an order is committed and given back only as a
compensating action (cancellation, failed or abandoned payment).  There is
no separate hold state.  Every call must run inside the unit of work that
also persists the matching order change.
"""

from __future__ import annotations

import logging

from marketplace.domain.exceptions import (
    EntityNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from marketplace.domain.model.order import Order
from marketplace.domain.repository.inventory_repository import InventoryRepository

logger = logging.getLogger(__name__)


class InventoryLedger:

    def __init__(self, inventory_repo: InventoryRepository) -> None:
        self._inventory_repo = inventory_repo

    def reserve(self, product_id: str, quantity: int) -> None:
        """Decrement stock, or raise InsufficientStockError.

        The check and the decrement are a single conditional update in the
        repository, so two concurrent orders can never both take the last
        units.
        """
        if quantity <= 0:
            raise ValidationError("Reservation quantity must be positive")
        available = self._inventory_repo.get_stock(product_id)
        if available is None:
            raise EntityNotFoundError(f"No stock record for product '{product_id}'")
        if not self._inventory_repo.try_decrement(product_id, quantity):
            # Re-read: a concurrent order may have changed it since.
            current = self._inventory_repo.get_stock(product_id) or 0
            raise InsufficientStockError(product_id, quantity, current)
        logger.debug("Reserved %d of product %s", quantity, product_id)

    def release(self, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError("Release quantity must be positive")
        if self._inventory_repo.get_stock(product_id) is None:
            raise EntityNotFoundError(f"No stock record for product '{product_id}'")
        self._inventory_repo.increment(product_id, quantity)
        logger.debug("Released %d of product %s", quantity, product_id)

    def reserve_for_order(self, order: Order) -> None:
        """Reserve every line; the first shortage aborts the unit of work."""
        for line in order.items:
            self.reserve(line.product_id, line.quantity.value)

    def release_for_order(self, order: Order) -> None:
        for line in order.items:
            self.release(line.product_id, line.quantity.value)
