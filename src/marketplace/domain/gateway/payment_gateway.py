"""Port for the external payment processor.

Implementations translate to and from one provider's wire protocol and
keep no local state.  Every call may block on network I/O and must be
bounded by a timeout; failures are reported with the gateway exceptions
from ``marketplace.domain.exceptions``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

CAPTURED = "captured"


@dataclass(frozen=True)
class RemoteOrder:
    id: str
    amount: int
    currency: str
    receipt: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class RemotePayment:
    id: str
    amount: int
    currency: str
    status: str
    order_id: str | None = None
    method: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_captured(self) -> bool:
        return self.status == CAPTURED


@dataclass(frozen=True)
class RemoteRefund:
    id: str
    payment_id: str
    amount: int
    status: str


class PaymentGateway(ABC):

    provider: str
    key_id: str

    @abstractmethod
    def create_remote_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        metadata: dict[str, str],
    ) -> RemoteOrder:
        """Open a checkout order for ``amount`` minor units."""

    @abstractmethod
    def fetch_payment(self, remote_payment_id: str) -> RemotePayment:
        """Look up a payment as the provider sees it."""

    @abstractmethod
    def issue_refund(
        self,
        remote_payment_id: str,
        amount: int,
        notes: dict[str, str],
    ) -> RemoteRefund:
        """Refund ``amount`` minor units of a captured payment."""

    @abstractmethod
    def verify_signature(
        self,
        remote_order_id: str,
        remote_payment_id: str,
        signature: str,
    ) -> bool:
        """Check the checkout callback signature with the shared secret."""

    def close(self) -> None:
        """Release any connections held by the adapter."""
