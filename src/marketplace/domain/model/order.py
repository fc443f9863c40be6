"""Order aggregate, the core of the domain.

The Order is an aggregate root that owns its line items and its financial
snapshot. All lifecycle and payment-status invariants are enforced here;
persistence and locking are the unit of work's business.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from marketplace.domain.exceptions import (
    AlreadyPaidError,
    InvalidOrderStateError,
    InvalidPaymentStateError,
    ValidationError,
)
from marketplace.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    PLACED = "PLACED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class PaymentMode(Enum):
    COD = "COD"
    ONLINE = "ONLINE"

    @staticmethod
    def parse(raw: str) -> PaymentMode:
        try:
            return PaymentMode(raw.strip().upper())
        except (AttributeError, ValueError) as exc:
            raise ValidationError(
                f"Invalid payment mode {raw!r}, expected COD or ONLINE"
            ) from exc


PAYMENT_FAILED_REASON = "Payment failed"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OrderItem:
    """Captures the price snapshot of a product at order-placement time."""

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money  # frozen at placement

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass(frozen=True)
class OrderCharges:
    """Financial snapshot computed once when the order is placed."""

    gross: Money
    shipping: Money
    tax: Money
    credits: Money

    @property
    def total(self) -> Money:
        return self.gross + self.shipping + self.tax

    @property
    def net(self) -> Money:
        if self.credits > self.total:
            raise ValidationError(
                f"Credits {self.credits} exceed the order total {self.total}"
            )
        return self.total - self.credits


# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
MAX_LINE_ITEMS = 50


@dataclass
class Order:
    """Aggregate root for customer orders.

    Use the ``Order.place()`` factory for new orders; it enforces all
    business rules.  The ``__init__`` is intentionally simple so the
    repository can reconstitute persisted orders without re-validating.
    """

    id: str
    user_id: str
    address_id: str
    payment_mode: PaymentMode
    items: list[OrderItem]
    gross_amount: Money
    shipping_amount: Money
    tax_amount: Money
    credits_applied: Money
    net_amount: Money
    status: OrderStatus = OrderStatus.PLACED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime = field(default_factory=_utc_now)
    status_updated_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    carrier_name: str | None = None
    tracking_number: str | None = None
    estimated_delivery: datetime | None = None

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def place(
        user_id: str,
        address_id: str,
        payment_mode: PaymentMode,
        items: list[OrderItem],
        charges: OrderCharges,
        now: datetime | None = None,
    ) -> Order:
        """Create a new order, enforcing all invariants.

        An order with nothing left to pay (fully covered by store credit)
        is settled immediately; everything else starts PENDING.
        """
        if not user_id:
            raise ValidationError("Order must belong to a user")
        if not address_id:
            raise ValidationError("Shipping address is required")
        if not items:
            raise ValidationError("Order must contain at least one item")
        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        currency = charges.gross.currency
        items_total = Money.sum([item.line_total for item in items], currency)
        if items_total != charges.gross:
            raise ValidationError(
                f"Gross amount {charges.gross} does not match line items {items_total}"
            )

        net = charges.net
        placed_at = now or _utc_now()
        return Order(
            id=uuid.uuid4().hex,
            user_id=user_id,
            address_id=address_id,
            payment_mode=payment_mode,
            items=list(items),
            gross_amount=charges.gross,
            shipping_amount=charges.shipping,
            tax_amount=charges.tax,
            credits_applied=charges.credits,
            net_amount=net,
            payment_status=PaymentStatus.PAID if net.is_zero else PaymentStatus.PENDING,
            created_at=placed_at,
            status_updated_at=placed_at,
        )

    # --- Payment transitions --------------------------------------------------

    def mark_paid(self, now: datetime) -> None:
        """PENDING -> PAID. The only way an order becomes paid online."""
        if self.payment_status == PaymentStatus.PAID:
            raise AlreadyPaidError(f"Order {self.id} is already paid")
        if self.payment_status != PaymentStatus.PENDING:
            raise InvalidPaymentStateError(
                f"Cannot settle order {self.id} with payment status "
                f"{self.payment_status.value}"
            )
        if self.status == OrderStatus.CANCELLED:
            raise InvalidPaymentStateError(f"Order {self.id} has been cancelled")
        self.payment_status = PaymentStatus.PAID
        self.status_updated_at = now

    @property
    def awaiting_online_payment(self) -> bool:
        return (
            self.payment_mode == PaymentMode.ONLINE
            and self.status == OrderStatus.PLACED
            and self.payment_status == PaymentStatus.PENDING
        )

    def fail_payment(self, now: datetime, reason: str = PAYMENT_FAILED_REASON) -> None:
        """PENDING -> FAILED and cancel the order.

        Releasing the provisionally reserved stock is the caller's job
        (via the inventory ledger, inside the same unit of work).
        """
        if not self.awaiting_online_payment:
            raise InvalidPaymentStateError(
                f"Order {self.id} is not awaiting an online payment"
            )
        self.payment_status = PaymentStatus.FAILED
        self._cancel(reason, now)

    # --- Fulfillment transitions ----------------------------------------------

    def ship(
        self,
        now: datetime,
        carrier_name: str | None = None,
        tracking_number: str | None = None,
        estimated_delivery: datetime | None = None,
    ) -> None:
        """PLACED -> SHIPPED."""
        self._require_status(OrderStatus.PLACED, "ship")
        self.status = OrderStatus.SHIPPED
        self.shipped_at = self.shipped_at or now
        self.status_updated_at = now
        if carrier_name:
            self.carrier_name = carrier_name
        if tracking_number:
            self.tracking_number = tracking_number
        if estimated_delivery:
            self.estimated_delivery = estimated_delivery

    def deliver(self, now: datetime) -> None:
        """SHIPPED -> DELIVERED.

        Cash on delivery is collected at this point, so a pending COD
        order is settled here.
        """
        self._require_status(OrderStatus.SHIPPED, "deliver")
        self.status = OrderStatus.DELIVERED
        self.delivered_at = self.delivered_at or now
        self.status_updated_at = now
        if (
            self.payment_mode == PaymentMode.COD
            and self.payment_status == PaymentStatus.PENDING
        ):
            self.payment_status = PaymentStatus.PAID

    def cancel(self, reason: str, now: datetime) -> None:
        """PLACED -> CANCELLED.

        Stock release and credit restoration must happen in the same
        unit of work as this transition.
        """
        self._require_status(OrderStatus.PLACED, "cancel")
        self._cancel(reason.strip() or "Cancelled", now)

    # --- Computed properties --------------------------------------------------

    @property
    def currency(self) -> str:
        return self.net_amount.currency

    @property
    def receipt(self) -> str:
        """Short reference sent to the gateway (providers cap it at 40 chars)."""
        return self.id[:40]

    # --- Internal helpers -----------------------------------------------------

    def _cancel(self, reason: str, now: datetime) -> None:
        self.status = OrderStatus.CANCELLED
        self.cancellation_reason = reason
        self.cancelled_at = now
        self.status_updated_at = now

    def _require_status(self, expected: OrderStatus, action: str) -> None:
        if self.status != expected:
            raise InvalidOrderStateError(
                f"Cannot {action} order {self.id}: current status is "
                f"{self.status.value}, expected {expected.value}"
            )
