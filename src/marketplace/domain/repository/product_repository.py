"""Abstract repositories for catalog collaborators (products and carts).

Defined in the domain layer so the domain never depends on
infrastructure. The catalog subsystem owns these records; this engine
only needs the narrow reads and the cart clean-up below.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.domain.model.product import CartItem, Product


class ProductRepository(ABC):

    @abstractmethod
    def get_by_id(self, product_id: str) -> Product | None:
        """Return a product (with its current price), or None if not found."""


class CartRepository(ABC):

    @abstractmethod
    def list_for_user(self, user_id: str) -> list[CartItem]:
        """Return the user's cart lines."""

    @abstractmethod
    def clear(self, user_id: str) -> None:
        """Remove every cart line of the user."""
