"""Unit tests for the typed order filters and sort order."""

from datetime import datetime, timezone

import pytest

from marketplace.domain.exceptions import ValidationError
from marketplace.domain.model.order import OrderStatus, PaymentStatus
from marketplace.domain.model.order_query import (
    FilterField,
    FilterOp,
    OrderFilter,
    OrderSort,
    SortField,
)

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


class TestFilterValidation:

    def test_unsupported_operator_rejected(self):
        with pytest.raises(ValidationError, match="not supported"):
            OrderFilter(FilterField.USER_ID, FilterOp.IN, ("u1",))

    def test_wrong_value_type_rejected(self):
        with pytest.raises(ValidationError, match="expects OrderStatus"):
            OrderFilter(FilterField.STATUS, FilterOp.EQ, "PLACED")

    def test_in_requires_non_empty_tuple(self):
        with pytest.raises(ValidationError, match="non-empty tuple"):
            OrderFilter(FilterField.STATUS, FilterOp.IN, ())

    def test_in_checks_every_value(self):
        with pytest.raises(ValidationError):
            OrderFilter(FilterField.PAYMENT_STATUS, FilterOp.IN, (PaymentStatus.PAID, "FAILED"))

    def test_date_range_accepts_datetime(self):
        f = OrderFilter(FilterField.CREATED_AT, FilterOp.GTE, T0)
        assert f.value == T0


class TestConvenienceConstructors:

    def test_status_in_single_value_is_eq(self):
        f = OrderFilter.status_in(OrderStatus.PLACED)
        assert f.op == FilterOp.EQ
        assert f.value == OrderStatus.PLACED

    def test_status_in_many(self):
        f = OrderFilter.status_in(OrderStatus.SHIPPED, OrderStatus.DELIVERED)
        assert f.op == FilterOp.IN
        assert f.value == (OrderStatus.SHIPPED, OrderStatus.DELIVERED)

    def test_payment_status_in_many(self):
        f = OrderFilter.payment_status_in(PaymentStatus.PAID, PaymentStatus.FAILED)
        assert f.field == FilterField.PAYMENT_STATUS
        assert f.op == FilterOp.IN

    def test_for_user(self):
        f = OrderFilter.for_user("u1")
        assert (f.field, f.op, f.value) == (FilterField.USER_ID, FilterOp.EQ, "u1")


class TestSort:

    def test_newest_first_by_default(self):
        sort = OrderSort()
        assert sort.field == SortField.CREATED_AT
        assert sort.descending

    def test_parse_sort_field(self):
        assert SortField.parse(" Net_Amount ") == SortField.NET_AMOUNT

    def test_parse_rejects_unknown_field(self):
        with pytest.raises(ValidationError, match="Valid fields"):
            SortField.parse("total")
