"""SQLAlchemy-backed implementation of OrderRepository."""

from __future__ import annotations

from enum import Enum
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from marketplace.domain.exceptions import ConflictError
from marketplace.domain.model.order import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMode,
    PaymentStatus,
)
from marketplace.domain.model.order_query import (
    FilterField,
    FilterOp,
    OrderFilter,
    OrderSort,
    SortField,
)
from marketplace.domain.model.value_objects import Money, Quantity
from marketplace.domain.repository.order_repository import OrderRepository
from marketplace.infrastructure.persistence.tables import OrderItemRow, OrderRow

_FILTER_COLUMNS = {
    FilterField.STATUS: OrderRow.status,
    FilterField.PAYMENT_STATUS: OrderRow.payment_status,
    FilterField.PAYMENT_MODE: OrderRow.payment_mode,
    FilterField.USER_ID: OrderRow.user_id,
    FilterField.CREATED_AT: OrderRow.created_at,
}

_SORT_COLUMNS = {
    SortField.CREATED_AT: OrderRow.created_at,
    SortField.NET_AMOUNT: OrderRow.net_amount,
    SortField.STATUS_UPDATED_AT: OrderRow.status_updated_at,
    SortField.SHIPPED_AT: OrderRow.shipped_at,
    SortField.DELIVERED_AT: OrderRow.delivered_at,
    SortField.STATUS: OrderRow.status,
    SortField.PAYMENT_STATUS: OrderRow.payment_status,
}


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SqlOrderRepository(OrderRepository):

    def __init__(self, session: Session) -> None:
        self._session = session
        # (status, payment_status) of each order as this session last read it.
        self._loaded: dict[str, tuple[str, str]] = {}

    # --- OrderRepository interface --------------------------------------------

    def get_by_id(self, order_id: str, *, for_update: bool = False) -> Order | None:
        stmt = select(OrderRow).where(OrderRow.id == order_id)
        if for_update:
            # Lock the row and refresh anything this session loaded earlier.
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        row = self._session.scalars(stmt).one_or_none()
        return None if row is None else self._to_domain(row)

    def save(self, order: Order) -> None:
        """Insert a new order, or write the state of one read in this session.

        The write only applies while the stored status and payment status
        are still the ones that were read; otherwise another transaction got
        there first and ConflictError is raised.
        """
        expected = self._loaded.get(order.id)
        if expected is not None:
            status, payment_status = expected
            result = self._session.execute(
                update(OrderRow)
                .where(
                    OrderRow.id == order.id,
                    OrderRow.status == status,
                    OrderRow.payment_status == payment_status,
                )
                .values(**self._state_values(order))
            )
            if result.rowcount != 1:
                raise ConflictError(f"Order {order.id} was changed concurrently")
        else:
            row = self._session.get(OrderRow, order.id)
            if row is None:
                # Line items are written once, at placement.
                row = OrderRow(
                    id=order.id,
                    user_id=order.user_id,
                    address_id=order.address_id,
                    payment_mode=order.payment_mode.value,
                    currency=order.currency,
                    gross_amount=order.gross_amount.amount,
                    shipping_amount=order.shipping_amount.amount,
                    tax_amount=order.tax_amount.amount,
                    credits_applied=order.credits_applied.amount,
                    net_amount=order.net_amount.amount,
                    created_at=order.created_at,
                    items=[
                        OrderItemRow(
                            product_id=item.product_id,
                            product_name=item.product_name,
                            quantity=item.quantity.value,
                            unit_price=item.unit_price.amount,
                        )
                        for item in order.items
                    ],
                )
                self._session.add(row)
            for key, value in self._state_values(order).items():
                setattr(row, key, value)
            self._session.flush()
        self._loaded[order.id] = (order.status.value, order.payment_status.value)

    def find(
        self,
        filters: list[OrderFilter],
        sort: OrderSort,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Order]:
        column = _SORT_COLUMNS[sort.field]
        direction = column.desc() if sort.descending else column.asc()
        stmt = (
            select(OrderRow)
            .where(*[self._clause(f) for f in filters])
            .order_by(direction.nulls_last(), OrderRow.id)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    def count(self, filters: list[OrderFilter]) -> int:
        stmt = (
            select(func.count())
            .select_from(OrderRow)
            .where(*[self._clause(f) for f in filters])
        )
        return self._session.execute(stmt).scalar_one()

    # --- Query translation ----------------------------------------------------

    @staticmethod
    def _clause(order_filter: OrderFilter):
        column = _FILTER_COLUMNS[order_filter.field]
        value = order_filter.value
        if order_filter.op == FilterOp.EQ:
            return column == _db_value(value)
        if order_filter.op == FilterOp.IN:
            return column.in_([_db_value(v) for v in value])
        if order_filter.op == FilterOp.GTE:
            return column >= value
        if order_filter.op == FilterOp.LTE:
            return column <= value
        return column < value

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _state_values(order: Order) -> dict[str, Any]:
        return {
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "status_updated_at": order.status_updated_at,
            "shipped_at": order.shipped_at,
            "delivered_at": order.delivered_at,
            "cancelled_at": order.cancelled_at,
            "cancellation_reason": order.cancellation_reason,
            "carrier_name": order.carrier_name,
            "tracking_number": order.tracking_number,
            "estimated_delivery": order.estimated_delivery,
        }

    def _to_domain(self, row: OrderRow) -> Order:
        self._loaded[row.id] = (row.status, row.payment_status)
        currency = row.currency
        items = [
            OrderItem(
                product_id=i.product_id,
                product_name=i.product_name,
                quantity=Quantity(i.quantity),
                unit_price=Money(i.unit_price, currency),
            )
            for i in row.items
        ]
        return Order(
            id=row.id,
            user_id=row.user_id,
            address_id=row.address_id,
            payment_mode=PaymentMode(row.payment_mode),
            items=items,
            gross_amount=Money(row.gross_amount, currency),
            shipping_amount=Money(row.shipping_amount, currency),
            tax_amount=Money(row.tax_amount, currency),
            credits_applied=Money(row.credits_applied, currency),
            net_amount=Money(row.net_amount, currency),
            status=OrderStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            created_at=row.created_at,
            status_updated_at=row.status_updated_at,
            shipped_at=row.shipped_at,
            delivered_at=row.delivered_at,
            cancelled_at=row.cancelled_at,
            cancellation_reason=row.cancellation_reason,
            carrier_name=row.carrier_name,
            tracking_number=row.tracking_number,
            estimated_delivery=row.estimated_delivery,
        )
