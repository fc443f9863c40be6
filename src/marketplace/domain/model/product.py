"""Product and cart collaborators.

The catalog owns products and carts; this engine only reads the current
price, mutates stock through the inventory ledger, and clears carts once
they have been turned into orders.
"""

from __future__ import annotations

from dataclasses import dataclass

from marketplace.domain.exceptions import ValidationError
from marketplace.domain.model.value_objects import Money, Quantity


@dataclass
class Product:
    """A product in the catalog.

    ``price`` is always the *current* price. Orders capture their own
    snapshot at placement time, so later price changes never affect them.
    """

    id: str
    name: str
    price: Money
    stock: int = 0

    def __post_init__(self) -> None:
        if self.stock < 0:
            raise ValidationError(f"Stock for '{self.name}' cannot be negative")


@dataclass(frozen=True)
class CartItem:
    user_id: str
    product_id: str
    quantity: Quantity
