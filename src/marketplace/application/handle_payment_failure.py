"""Application service: Handle Payment Failure use case.

Called when the checkout reports a failed payment.  The order is cancelled
and its stock released, but only if it is still waiting for an online
payment; anything else (already paid, already cancelled, unknown order,
someone else's order) is acknowledged without change, so repeated or late
callbacks are harmless.
"""

from __future__ import annotations

import logging
from typing import Any

from marketplace.application.clock import Clock, utc_now
from marketplace.application.compensation import release_order_resources
from marketplace.application.dto import AcknowledgementDTO
from marketplace.domain.exceptions import ConflictError
from marketplace.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class HandlePaymentFailureHandler:

    def __init__(self, uow: UnitOfWork, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    def handle(
        self,
        order_id: str,
        user_id: str,
        error_info: dict[str, Any] | None = None,
    ) -> AcknowledgementDTO:
        error_info = error_info or {}

        try:
            with self._uow as uow:
                # Re-read under lock: a concurrent verification may have won.
                order = uow.orders.get_by_id(order_id, for_update=True)
                if (
                    order is None
                    or order.user_id != user_id
                    or not order.awaiting_online_payment
                ):
                    logger.info("Ignoring payment failure report for order %s", order_id)
                    return AcknowledgementDTO()

                order.fail_payment(self._clock())
                release_order_resources(uow, order)
                uow.orders.save(order)
                uow.commit()
        except ConflictError:
            logger.info(
                "Ignoring payment failure report for order %s: it changed concurrently",
                order_id,
            )
            return AcknowledgementDTO()

        logger.info(
            "Order %s cancelled after failed payment (%s: %s)",
            order_id,
            error_info.get("code", "unknown"),
            error_info.get("description", ""),
        )
        return AcknowledgementDTO()
