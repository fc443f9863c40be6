"""Payment records: settled gateway payments and refunds against orders.

A Payment row exists only once a gateway payment has been verified as
captured, so abandoned checkouts never leave orphaned rows behind.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from marketplace.domain.exceptions import ValidationError
from marketplace.domain.model.order import Order, PaymentStatus
from marketplace.domain.model.value_objects import Money


class RefundMethod(Enum):
    GATEWAY = "GATEWAY"
    MANUAL_CREDIT = "MANUAL_CREDIT"

    @staticmethod
    def parse(raw: str) -> RefundMethod:
        try:
            return RefundMethod(raw.strip().upper())
        except (AttributeError, ValueError) as exc:
            raise ValidationError(
                f"Invalid refund method {raw!r}, expected GATEWAY or MANUAL_CREDIT"
            ) from exc


# Refund statuses, as the gateway reports them.
REFUND_PENDING = "pending"
REFUND_PROCESSED = "processed"
REFUND_FAILED = "failed"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Payment:
    id: str
    order_id: str
    user_id: str
    provider: str
    provider_payment_id: str
    amount: Money
    status: PaymentStatus
    method: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)

    @staticmethod
    def captured(
        order: Order,
        provider: str,
        provider_payment_id: str,
        amount: Money,
        method: str | None,
        metadata: dict[str, Any],
        now: datetime,
    ) -> Payment:
        """Record a verified, captured gateway payment for ``order``."""
        if not provider_payment_id:
            raise ValidationError("Provider payment id is required")
        return Payment(
            id=uuid.uuid4().hex,
            order_id=order.id,
            user_id=order.user_id,
            provider=provider,
            provider_payment_id=provider_payment_id,
            amount=amount,
            status=PaymentStatus.PAID,
            method=method,
            metadata=dict(metadata),
            created_at=now,
        )


@dataclass
class Refund:
    id: str
    order_id: str
    user_id: str
    method: RefundMethod
    amount: Money
    reason: str
    payment_id: str | None = None
    provider_refund_id: str | None = None
    status: str = REFUND_PROCESSED
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)

    @staticmethod
    def against(
        payment: Payment,
        method: RefundMethod,
        amount: Money,
        reason: str,
        now: datetime,
        provider_refund_id: str | None = None,
        status: str = REFUND_PROCESSED,
        metadata: dict[str, Any] | None = None,
    ) -> Refund:
        if payment.status != PaymentStatus.PAID:
            raise ValidationError("Refunds can only be issued against a paid payment")
        if amount.is_zero:
            raise ValidationError("Refund amount must be greater than zero")
        return Refund(
            id=uuid.uuid4().hex,
            order_id=payment.order_id,
            user_id=payment.user_id,
            method=method,
            amount=amount,
            reason=reason,
            payment_id=payment.id,
            provider_refund_id=provider_refund_id,
            status=status,
            metadata=dict(metadata or {}),
            created_at=now,
        )

    def settle(
        self,
        executed: Money,
        provider_refund_id: str,
        status: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record what the gateway actually refunded."""
        self.amount = executed
        self.provider_refund_id = provider_refund_id
        self.status = status
        self.metadata.update(metadata or {})

    def mark_failed(self, reason: str) -> None:
        """The gateway refused the refund; it no longer counts against the payment."""
        self.status = REFUND_FAILED
        self.metadata["failure"] = reason


def refundable_balance(payment: Payment, refunds: list[Refund]) -> Money:
    """What is left of ``payment`` after the refunds already issued.

    Pending refunds count: they may still execute at the gateway.
    """
    refunded = Money.sum(
        [
            r.amount
            for r in refunds
            if r.payment_id == payment.id and r.status != REFUND_FAILED
        ],
        payment.amount.currency,
    )
    if refunded > payment.amount:
        return Money.zero(payment.amount.currency)
    return payment.amount - refunded
