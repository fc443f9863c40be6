"""Abstract repositories for Payment and Refund records."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.domain.model.payment import Payment, Refund


class PaymentRepository(ABC):

    @abstractmethod
    def get_by_provider_payment_id(self, provider_payment_id: str) -> Payment | None:
        """Return the payment recorded for a gateway transaction, or None."""

    @abstractmethod
    def find_paid_for_order(self, order_id: str, provider: str) -> Payment | None:
        """Return the settled payment of an order via ``provider``, or None."""

    @abstractmethod
    def list_for_order(self, order_id: str) -> list[Payment]:
        """Return every payment recorded against an order."""

    @abstractmethod
    def save(self, payment: Payment) -> None:
        """Persist a new payment."""


class RefundRepository(ABC):

    @abstractmethod
    def list_for_order(self, order_id: str) -> list[Refund]:
        """Return every refund issued against an order."""

    @abstractmethod
    def save(self, refund: Refund) -> None:
        """Persist a new refund, or the settled state of an existing one."""
