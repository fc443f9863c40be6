"""SQLAlchemy-backed catalog collaborators: products, stock and carts."""

from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from marketplace.domain.model.product import CartItem, Product
from marketplace.domain.model.value_objects import Money, Quantity
from marketplace.domain.repository.inventory_repository import InventoryRepository
from marketplace.domain.repository.product_repository import (
    CartRepository,
    ProductRepository,
)
from marketplace.infrastructure.persistence.tables import CartItemRow, ProductRow


class SqlProductRepository(ProductRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, product_id: str) -> Product | None:
        row = self._session.get(ProductRow, product_id)
        if row is None:
            return None
        return Product(
            id=row.id,
            name=row.name,
            price=Money(row.price, row.currency),
            stock=row.stock,
        )


class SqlInventoryRepository(InventoryRepository):
    """Stock lives on the product row; every change is one UPDATE statement."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_stock(self, product_id: str) -> int | None:
        return self._session.scalar(
            select(ProductRow.stock).where(ProductRow.id == product_id)
        )

    def try_decrement(self, product_id: str, quantity: int) -> bool:
        result = self._session.execute(
            update(ProductRow)
            .where(ProductRow.id == product_id, ProductRow.stock >= quantity)
            .values(stock=ProductRow.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment(self, product_id: str, quantity: int) -> None:
        self._session.execute(
            update(ProductRow)
            .where(ProductRow.id == product_id)
            .values(stock=ProductRow.stock + quantity)
            .execution_options(synchronize_session=False)
        )


class SqlCartRepository(CartRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_user(self, user_id: str) -> list[CartItem]:
        rows = self._session.scalars(
            select(CartItemRow)
            .where(CartItemRow.user_id == user_id)
            .order_by(CartItemRow.id)
        )
        return [
            CartItem(user_id=row.user_id, product_id=row.product_id, quantity=Quantity(row.quantity))
            for row in rows
        ]

    def clear(self, user_id: str) -> None:
        self._session.execute(delete(CartItemRow).where(CartItemRow.user_id == user_id))
