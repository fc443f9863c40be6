"""SQLAlchemy-backed implementations of PaymentRepository and RefundRepository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.domain.exceptions import AlreadyPaidError
from marketplace.domain.model.order import PaymentStatus
from marketplace.domain.model.payment import Payment, Refund, RefundMethod
from marketplace.domain.model.value_objects import Money
from marketplace.domain.repository.payment_repository import (
    PaymentRepository,
    RefundRepository,
)
from marketplace.infrastructure.persistence.tables import PaymentRow, RefundRow


class SqlPaymentRepository(PaymentRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_provider_payment_id(self, provider_payment_id: str) -> Payment | None:
        row = self._session.scalars(
            select(PaymentRow).where(PaymentRow.provider_payment_id == provider_payment_id)
        ).one_or_none()
        return None if row is None else self._to_domain(row)

    def find_paid_for_order(self, order_id: str, provider: str) -> Payment | None:
        row = self._session.scalars(
            select(PaymentRow)
            .where(
                PaymentRow.order_id == order_id,
                PaymentRow.provider == provider,
                PaymentRow.status == PaymentStatus.PAID.value,
            )
            .order_by(PaymentRow.created_at)
        ).first()
        return None if row is None else self._to_domain(row)

    def list_for_order(self, order_id: str) -> list[Payment]:
        rows = self._session.scalars(
            select(PaymentRow)
            .where(PaymentRow.order_id == order_id)
            .order_by(PaymentRow.created_at)
        )
        return [self._to_domain(row) for row in rows]

    def save(self, payment: Payment) -> None:
        self._session.add(
            PaymentRow(
                id=payment.id,
                order_id=payment.order_id,
                user_id=payment.user_id,
                provider=payment.provider,
                provider_payment_id=payment.provider_payment_id,
                amount=payment.amount.amount,
                currency=payment.amount.currency,
                status=payment.status.value,
                method=payment.method,
                provider_metadata=payment.metadata,
                created_at=payment.created_at,
            )
        )
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise AlreadyPaidError(
                f"Payment {payment.provider_payment_id} has already been recorded"
            ) from exc

    @staticmethod
    def _to_domain(row: PaymentRow) -> Payment:
        return Payment(
            id=row.id,
            order_id=row.order_id,
            user_id=row.user_id,
            provider=row.provider,
            provider_payment_id=row.provider_payment_id,
            amount=Money(row.amount, row.currency),
            status=PaymentStatus(row.status),
            method=row.method,
            metadata=dict(row.provider_metadata or {}),
            created_at=row.created_at,
        )


class SqlRefundRepository(RefundRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_order(self, order_id: str) -> list[Refund]:
        rows = self._session.scalars(
            select(RefundRow)
            .where(RefundRow.order_id == order_id)
            .order_by(RefundRow.created_at)
        )
        return [self._to_domain(row) for row in rows]

    def save(self, refund: Refund) -> None:
        self._session.merge(
            RefundRow(
                id=refund.id,
                order_id=refund.order_id,
                user_id=refund.user_id,
                payment_id=refund.payment_id,
                method=refund.method.value,
                amount=refund.amount.amount,
                currency=refund.amount.currency,
                reason=refund.reason,
                provider_refund_id=refund.provider_refund_id,
                status=refund.status,
                provider_metadata=refund.metadata,
                created_at=refund.created_at,
            )
        )
        self._session.flush()

    @staticmethod
    def _to_domain(row: RefundRow) -> Refund:
        return Refund(
            id=row.id,
            order_id=row.order_id,
            user_id=row.user_id,
            method=RefundMethod(row.method),
            amount=Money(row.amount, row.currency),
            reason=row.reason,
            payment_id=row.payment_id,
            provider_refund_id=row.provider_refund_id,
            status=row.status,
            metadata=dict(row.provider_metadata or {}),
            created_at=row.created_at,
        )
