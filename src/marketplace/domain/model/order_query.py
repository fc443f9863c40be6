"""Typed order query: filters and sort order.

A filter is an explicit (field, operator, value) triple validated at
construction, so a query can never reference an unsupported column or
compare a field against a value of the wrong type.  Repositories translate
filters to their own query language.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from marketplace.domain.exceptions import ValidationError
from marketplace.domain.model.order import OrderStatus, PaymentMode, PaymentStatus


class FilterField(Enum):
    STATUS = "status"
    PAYMENT_STATUS = "payment_status"
    PAYMENT_MODE = "payment_mode"
    USER_ID = "user_id"
    CREATED_AT = "created_at"


class FilterOp(Enum):
    EQ = "eq"
    IN = "in"
    GTE = "gte"
    LTE = "lte"
    LT = "lt"


_FIELD_TYPES: dict[FilterField, type] = {
    FilterField.STATUS: OrderStatus,
    FilterField.PAYMENT_STATUS: PaymentStatus,
    FilterField.PAYMENT_MODE: PaymentMode,
    FilterField.USER_ID: str,
    FilterField.CREATED_AT: datetime,
}

_ALLOWED_OPS: dict[FilterField, frozenset[FilterOp]] = {
    FilterField.STATUS: frozenset({FilterOp.EQ, FilterOp.IN}),
    FilterField.PAYMENT_STATUS: frozenset({FilterOp.EQ, FilterOp.IN}),
    FilterField.PAYMENT_MODE: frozenset({FilterOp.EQ, FilterOp.IN}),
    FilterField.USER_ID: frozenset({FilterOp.EQ}),
    FilterField.CREATED_AT: frozenset({FilterOp.GTE, FilterOp.LTE, FilterOp.LT}),
}


@dataclass(frozen=True)
class OrderFilter:
    field: FilterField
    op: FilterOp
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _ALLOWED_OPS[self.field]:
            raise ValidationError(
                f"Operator '{self.op.value}' is not supported for '{self.field.value}'"
            )
        expected = _FIELD_TYPES[self.field]
        if self.op == FilterOp.IN:
            if not isinstance(self.value, tuple) or not self.value:
                raise ValidationError(
                    f"'{self.field.value}' IN filter needs a non-empty tuple of values"
                )
            values = self.value
        else:
            values = (self.value,)
        for value in values:
            if not isinstance(value, expected):
                raise ValidationError(
                    f"'{self.field.value}' filter expects {expected.__name__}, "
                    f"got {type(value).__name__}"
                )

    # --- Convenience constructors ---------------------------------------------

    @staticmethod
    def status_in(*statuses: OrderStatus) -> OrderFilter:
        if len(statuses) == 1:
            return OrderFilter(FilterField.STATUS, FilterOp.EQ, statuses[0])
        return OrderFilter(FilterField.STATUS, FilterOp.IN, tuple(statuses))

    @staticmethod
    def payment_status_in(*statuses: PaymentStatus) -> OrderFilter:
        if len(statuses) == 1:
            return OrderFilter(FilterField.PAYMENT_STATUS, FilterOp.EQ, statuses[0])
        return OrderFilter(FilterField.PAYMENT_STATUS, FilterOp.IN, tuple(statuses))

    @staticmethod
    def for_user(user_id: str) -> OrderFilter:
        return OrderFilter(FilterField.USER_ID, FilterOp.EQ, user_id)


class SortField(Enum):
    CREATED_AT = "created_at"
    NET_AMOUNT = "net_amount"
    STATUS_UPDATED_AT = "status_updated_at"
    SHIPPED_AT = "shipped_at"
    DELIVERED_AT = "delivered_at"
    STATUS = "status"
    PAYMENT_STATUS = "payment_status"

    @staticmethod
    def parse(raw: str) -> SortField:
        normalized = raw.strip().lower()
        for member in SortField:
            if member.value == normalized:
                return member
        valid = ", ".join(m.value for m in SortField)
        raise ValidationError(f"Invalid sort field {raw!r}. Valid fields: {valid}")


@dataclass(frozen=True)
class OrderSort:
    field: SortField = SortField.CREATED_AT
    descending: bool = True
