"""Application services: order listings (queries).

``ListOrdersHandler`` serves a customer's own order history;
``SearchOrdersHandler`` is the admin console's filtered, paged view.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from marketplace.application.dto import (
    OrderDTO,
    OrderPageDTO,
    PaginationDTO,
    order_to_dto,
)
from marketplace.domain.exceptions import ForbiddenError, ValidationError
from marketplace.domain.model.customer import Actor
from marketplace.domain.model.order import OrderStatus, PaymentStatus
from marketplace.domain.model.order_query import (
    FilterField,
    FilterOp,
    OrderFilter,
    OrderSort,
    SortField,
)
from marketplace.domain.repository.unit_of_work import UnitOfWork

MAX_PAGE_SIZE = 100


class ListOrdersHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, user_id: str) -> list[OrderDTO]:
        """Return the user's orders, newest first."""
        with self._uow as uow:
            orders = uow.orders.find([OrderFilter.for_user(user_id)], OrderSort())
        return [order_to_dto(order) for order in orders]


@dataclass(frozen=True)
class OrderSearchCriteria:
    """Raw admin search input, validated by ``filters()`` / ``sort()``."""

    statuses: tuple[str, ...] = ()
    payment_statuses: tuple[str, ...] = ()
    start: date | None = None
    end: date | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 50

    def filters(self) -> list[OrderFilter]:
        filters: list[OrderFilter] = []
        if self.statuses:
            filters.append(
                OrderFilter.status_in(*_parse_all(OrderStatus, self.statuses, "status"))
            )
        if self.payment_statuses:
            filters.append(
                OrderFilter.payment_status_in(
                    *_parse_all(PaymentStatus, self.payment_statuses, "payment status")
                )
            )
        if self.start is not None:
            start_at = datetime.combine(self.start, time.min, tzinfo=timezone.utc)
            filters.append(OrderFilter(FilterField.CREATED_AT, FilterOp.GTE, start_at))
        if self.end is not None:
            # The end date is inclusive: everything before the next midnight.
            end_at = datetime.combine(
                self.end + timedelta(days=1), time.min, tzinfo=timezone.utc
            )
            filters.append(OrderFilter(FilterField.CREATED_AT, FilterOp.LT, end_at))
        return filters

    def sort(self) -> OrderSort:
        direction = self.sort_order.strip().lower()
        if direction not in ("asc", "desc"):
            raise ValidationError("Invalid sort order. Valid orders: asc, desc")
        return OrderSort(SortField.parse(self.sort_by), descending=direction == "desc")

    def validate_paging(self) -> None:
        if self.page < 1 or self.limit < 1 or self.limit > MAX_PAGE_SIZE:
            raise ValidationError(
                f"Page must be >= 1, limit must be between 1 and {MAX_PAGE_SIZE}"
            )
        if self.start and self.end and self.start > self.end:
            raise ValidationError("Start date must not be after end date")


def _parse_all(enum_type, raw_values: tuple[str, ...], label: str) -> list:
    parsed = []
    invalid = []
    for raw in raw_values:
        try:
            parsed.append(enum_type(raw.strip().upper()))
        except ValueError:
            invalid.append(raw)
    if invalid:
        valid = ", ".join(member.value for member in enum_type)
        raise ValidationError(
            f"Invalid {label} values: {', '.join(invalid)}. Valid values: {valid}"
        )
    return parsed


class SearchOrdersHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, actor: Actor, criteria: OrderSearchCriteria) -> OrderPageDTO:
        if not actor.is_admin:
            raise ForbiddenError("Only admins can search all orders")
        criteria.validate_paging()
        filters = criteria.filters()
        sort = criteria.sort()

        with self._uow as uow:
            total = uow.orders.count(filters)
            orders = uow.orders.find(
                filters,
                sort,
                offset=(criteria.page - 1) * criteria.limit,
                limit=criteria.limit,
            )

        total_pages = math.ceil(total / criteria.limit)
        return OrderPageDTO(
            orders=[order_to_dto(order) for order in orders],
            pagination=PaginationDTO(
                current_page=criteria.page,
                total_pages=total_pages,
                total_count=total,
                has_next_page=criteria.page < total_pages,
                has_prev_page=criteria.page > 1,
                limit=criteria.limit,
            ),
        )
