"""Application service: Expire Stale Orders use case.

Stock for an ONLINE order is taken at placement.  If the customer never
completes (or reports the failure of) the payment, the order would hold
that stock forever; this sweep cancels such orders once they are older
than the caller's cutoff and gives the stock back.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from marketplace.application.clock import Clock, utc_now
from marketplace.application.compensation import release_order_resources
from marketplace.domain.exceptions import ConflictError, ValidationError
from marketplace.domain.model.order import OrderStatus, PaymentMode, PaymentStatus
from marketplace.domain.model.order_query import (
    FilterField,
    FilterOp,
    OrderFilter,
    OrderSort,
)
from marketplace.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

EXPIRED_REASON = "Payment window expired"


class ExpireStaleOrdersHandler:

    def __init__(self, uow: UnitOfWork, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    def handle(self, older_than: timedelta) -> list[str]:
        """Cancel abandoned online orders; return the ids that were expired."""
        if older_than <= timedelta(0):
            raise ValidationError("Expiry window must be positive")
        now = self._clock()
        cutoff = now - older_than

        with self._uow as uow:
            candidates = uow.orders.find(
                [
                    OrderFilter(FilterField.PAYMENT_MODE, FilterOp.EQ, PaymentMode.ONLINE),
                    OrderFilter.status_in(OrderStatus.PLACED),
                    OrderFilter.payment_status_in(PaymentStatus.PENDING),
                    OrderFilter(FilterField.CREATED_AT, FilterOp.LT, cutoff),
                ],
                OrderSort(descending=False),
            )
        candidate_ids = [order.id for order in candidates]

        expired: list[str] = []
        # One transaction per order; a payment verified in the meantime wins.
        for order_id in candidate_ids:
            try:
                with self._uow as uow:
                    order = uow.orders.get_by_id(order_id, for_update=True)
                    if order is None or not order.awaiting_online_payment:
                        continue
                    order.fail_payment(now, reason=EXPIRED_REASON)
                    release_order_resources(uow, order)
                    uow.orders.save(order)
                    uow.commit()
            except ConflictError:
                logger.info("Order %s changed while expiring it; skipped", order_id)
                continue
            expired.append(order_id)
            logger.info("Order %s expired awaiting payment", order_id)

        return expired
