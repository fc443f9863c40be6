"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.  This is the presentation
boundary: amounts leave the domain as minor units and are also given in
display units (``Decimal`` with two places) here, and nowhere earlier.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from marketplace.domain.model.order import Order
from marketplace.domain.model.payment import Payment, Refund
from marketplace.domain.model.value_objects import Money


@dataclass(frozen=True)
class AmountDTO:
    minor: int
    major: Decimal
    currency: str
    display: str  # formatted, e.g. "₹500.00"

    @staticmethod
    def of(money: Money) -> AmountDTO:
        return AmountDTO(
            minor=money.amount,
            major=money.to_major(),
            currency=money.currency,
            display=str(money),
        )


@dataclass(frozen=True)
class OrderItemDTO:
    product_id: str
    product_name: str
    quantity: int
    unit_price: AmountDTO
    line_total: AmountDTO


@dataclass(frozen=True)
class OrderAmountsDTO:
    gross: AmountDTO
    shipping: AmountDTO
    tax: AmountDTO
    credits_applied: AmountDTO
    net: AmountDTO


@dataclass(frozen=True)
class OrderDTO:
    id: str
    user_id: str
    address_id: str
    status: str
    payment_status: str
    payment_mode: str
    items: list[OrderItemDTO]
    amounts: OrderAmountsDTO
    created_at: datetime
    status_updated_at: datetime | None
    shipped_at: datetime | None
    delivered_at: datetime | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    carrier_name: str | None
    tracking_number: str | None
    estimated_delivery: datetime | None


@dataclass(frozen=True)
class PaymentDTO:
    id: str
    order_id: str
    provider: str
    provider_payment_id: str
    amount: AmountDTO
    status: str
    method: str | None
    created_at: datetime


@dataclass(frozen=True)
class RefundDTO:
    id: str
    order_id: str
    method: str
    amount: AmountDTO
    reason: str
    status: str
    provider_refund_id: str | None
    created_at: datetime


@dataclass(frozen=True)
class CustomerContactDTO:
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class RemoteOrderDTO:
    id: str
    amount: int
    currency: str
    receipt: str | None


@dataclass(frozen=True)
class PaymentIntentDTO:
    """What the checkout widget needs to collect an online payment."""

    remote_order: RemoteOrderDTO
    order: OrderAmountsDTO
    order_id: str
    customer: CustomerContactDTO
    key_id: str


@dataclass(frozen=True)
class VerifiedPaymentDTO:
    order: OrderDTO
    payment: PaymentDTO


@dataclass(frozen=True)
class AcknowledgementDTO:
    acknowledged: bool = True


@dataclass(frozen=True)
class PaginationDTO:
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool
    limit: int


@dataclass(frozen=True)
class OrderPageDTO:
    orders: list[OrderDTO]
    pagination: PaginationDTO


# --- Mapping -----------------------------------------------------------------


def order_amounts_dto(order: Order) -> OrderAmountsDTO:
    return OrderAmountsDTO(
        gross=AmountDTO.of(order.gross_amount),
        shipping=AmountDTO.of(order.shipping_amount),
        tax=AmountDTO.of(order.tax_amount),
        credits_applied=AmountDTO.of(order.credits_applied),
        net=AmountDTO.of(order.net_amount),
    )


def order_to_dto(order: Order) -> OrderDTO:
    return OrderDTO(
        id=order.id,
        user_id=order.user_id,
        address_id=order.address_id,
        status=order.status.value,
        payment_status=order.payment_status.value,
        payment_mode=order.payment_mode.value,
        items=[
            OrderItemDTO(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity.value,
                unit_price=AmountDTO.of(item.unit_price),
                line_total=AmountDTO.of(item.line_total),
            )
            for item in order.items
        ],
        amounts=order_amounts_dto(order),
        created_at=order.created_at,
        status_updated_at=order.status_updated_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        cancelled_at=order.cancelled_at,
        cancellation_reason=order.cancellation_reason,
        carrier_name=order.carrier_name,
        tracking_number=order.tracking_number,
        estimated_delivery=order.estimated_delivery,
    )


def payment_to_dto(payment: Payment) -> PaymentDTO:
    return PaymentDTO(
        id=payment.id,
        order_id=payment.order_id,
        provider=payment.provider,
        provider_payment_id=payment.provider_payment_id,
        amount=AmountDTO.of(payment.amount),
        status=payment.status.value,
        method=payment.method,
        created_at=payment.created_at,
    )


def refund_to_dto(refund: Refund) -> RefundDTO:
    return RefundDTO(
        id=refund.id,
        order_id=refund.order_id,
        method=refund.method.value,
        amount=AmountDTO.of(refund.amount),
        reason=refund.reason,
        status=refund.status,
        provider_refund_id=refund.provider_refund_id,
        created_at=refund.created_at,
    )
