"""Load collaborator fixtures (customers, addresses, products, carts) from JSON.

Catalog, accounts and carts are owned by other subsystems; this loader
exists so a fresh database can be exercised from the CLI.  Prices and
store credit are written in display units (e.g. ``"500.00"``).

Expected layout::

    {
      "customers":  [{"id", "name", "email", "phone"?, "role"?, "store_credit"?}],
      "addresses":  [{"id", "user_id", "line1"?, "city"?, "postal_code"?}],
      "products":   [{"id", "name", "price", "stock"}],
      "cart_items": [{"user_id", "product_id", "quantity"}]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.domain.model.value_objects import Money
from marketplace.infrastructure.persistence.tables import (
    AddressRow,
    CartItemRow,
    CustomerRow,
    ProductRow,
)


@dataclass(frozen=True)
class SeedSummary:
    customers: int
    addresses: int
    products: int
    cart_items: int


def load_seed(session: Session, file_path: Path, currency: str = "INR") -> SeedSummary:
    """Upsert every record in ``file_path``; the caller commits."""
    raw = json.loads(file_path.read_text(encoding="utf-8"))

    customers = raw.get("customers", [])
    for item in customers:
        session.merge(
            CustomerRow(
                id=item["id"],
                name=item["name"],
                email=item["email"],
                phone=item.get("phone", ""),
                role=item.get("role", "CUSTOMER").upper(),
                store_credit=Money.from_major(item.get("store_credit", "0"), currency).amount,
                currency=currency,
            )
        )

    addresses = raw.get("addresses", [])
    for item in addresses:
        session.merge(
            AddressRow(
                id=item["id"],
                user_id=item["user_id"],
                line1=item.get("line1", ""),
                city=item.get("city", ""),
                postal_code=item.get("postal_code", ""),
            )
        )

    products = raw.get("products", [])
    for item in products:
        session.merge(
            ProductRow(
                id=item["id"],
                name=item["name"],
                price=Money.from_major(item["price"], currency).amount,
                currency=currency,
                stock=int(item.get("stock", 0)),
            )
        )
    session.flush()

    cart_items = raw.get("cart_items", [])
    for item in cart_items:
        existing = session.scalars(
            select(CartItemRow).where(
                CartItemRow.user_id == item["user_id"],
                CartItemRow.product_id == item["product_id"],
            )
        ).one_or_none()
        if existing is None:
            session.add(
                CartItemRow(
                    user_id=item["user_id"],
                    product_id=item["product_id"],
                    quantity=int(item["quantity"]),
                )
            )
        else:
            existing.quantity = int(item["quantity"])
    session.flush()

    return SeedSummary(
        customers=len(customers),
        addresses=len(addresses),
        products=len(products),
        cart_items=len(cart_items),
    )
