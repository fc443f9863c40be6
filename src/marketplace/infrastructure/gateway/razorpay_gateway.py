"""Razorpay adapter for the PaymentGateway port, over httpx.

Talks to the Razorpay REST API (v1) with HTTP basic auth (key id and
secret).  Every request is bounded by the configured timeout.  Error
classification:

- timeouts, connection failures, HTTP 5xx  -> GatewayUnavailableError
- HTTP 404 when fetching a payment         -> PaymentNotFoundError
- any other HTTP 4xx                       -> GatewayRejectedError, carrying
  the provider's ``error.code`` / ``error.description``

The key secret is never included in exceptions or log records.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any

import httpx

from marketplace.domain.exceptions import (
    GatewayRejectedError,
    GatewayUnavailableError,
    PaymentNotFoundError,
)
from marketplace.domain.gateway.payment_gateway import (
    PaymentGateway,
    RemoteOrder,
    RemotePayment,
    RemoteRefund,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.razorpay.com/v1"

# Payment fields worth keeping with the local payment record.
_PAYMENT_EXTRA_FIELDS = (
    "email",
    "contact",
    "vpa",
    "bank",
    "wallet",
    "card_id",
    "fee",
    "tax",
    "international",
    "created_at",
)


def compute_signature(secret: str, remote_order_id: str, remote_payment_id: str) -> str:
    """HMAC-SHA256 (hex) of ``"{order_id}|{payment_id}"`` keyed by ``secret``."""
    message = f"{remote_order_id}|{remote_payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class RazorpayGateway(PaymentGateway):

    provider = "razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.key_id = key_id
        self._key_secret = key_secret
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            auth=(key_id, key_secret),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    # --- Lifecycle ------------------------------------------------------------

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RazorpayGateway:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- PaymentGateway interface ---------------------------------------------

    def create_remote_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        metadata: dict[str, str],
    ) -> RemoteOrder:
        data = self._request(
            "POST",
            "/orders",
            json={
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": metadata,
            },
        )
        return RemoteOrder(
            id=data["id"],
            amount=int(data["amount"]),
            currency=data["currency"],
            receipt=data.get("receipt"),
            status=data.get("status"),
        )

    def fetch_payment(self, remote_payment_id: str) -> RemotePayment:
        data = self._request(
            "GET",
            f"/payments/{remote_payment_id}",
            not_found=lambda: PaymentNotFoundError(
                f"Payment {remote_payment_id} not found at gateway"
            ),
        )
        return RemotePayment(
            id=data["id"],
            amount=int(data["amount"]),
            currency=data["currency"],
            status=data["status"],
            order_id=data.get("order_id"),
            method=data.get("method"),
            extra={key: data[key] for key in _PAYMENT_EXTRA_FIELDS if data.get(key) is not None},
        )

    def issue_refund(
        self,
        remote_payment_id: str,
        amount: int,
        notes: dict[str, str],
    ) -> RemoteRefund:
        data = self._request(
            "POST",
            f"/payments/{remote_payment_id}/refund",
            json={"amount": amount, "notes": notes},
            not_found=lambda: PaymentNotFoundError(
                f"Payment {remote_payment_id} not found at gateway"
            ),
        )
        return RemoteRefund(
            id=data["id"],
            payment_id=data.get("payment_id", remote_payment_id),
            amount=int(data["amount"]),
            status=data.get("status", "processed"),
        )

    def verify_signature(
        self,
        remote_order_id: str,
        remote_payment_id: str,
        signature: str,
    ) -> bool:
        if not (remote_order_id and remote_payment_id and signature):
            return False
        expected = compute_signature(self._key_secret, remote_order_id, remote_payment_id)
        return hmac.compare_digest(expected, signature)

    # --- Internal helpers -----------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        not_found=None,
    ) -> dict[str, Any]:
        try:
            response = self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("Gateway %s %s timed out", method, path)
            raise GatewayUnavailableError("Payment gateway timed out") from exc
        except httpx.TransportError as exc:
            logger.warning("Gateway %s %s failed: %s", method, path, type(exc).__name__)
            raise GatewayUnavailableError("Payment gateway is unreachable") from exc

        if response.status_code >= 500:
            logger.warning("Gateway %s %s returned %d", method, path, response.status_code)
            raise GatewayUnavailableError(
                f"Payment gateway error (HTTP {response.status_code})"
            )
        if response.status_code == 404 and not_found is not None:
            raise not_found()
        if response.status_code >= 400:
            code, description = self._error_details(response)
            logger.warning(
                "Gateway %s %s rejected (%d): %s", method, path, response.status_code, code
            )
            raise GatewayRejectedError(code, description)

        try:
            return response.json()
        except ValueError as exc:
            raise GatewayUnavailableError("Payment gateway sent an unreadable response") from exc

    @staticmethod
    def _error_details(response: httpx.Response) -> tuple[str, str]:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        error = payload.get("error") if isinstance(payload, dict) else None
        error = error or {}
        code = error.get("code") or f"HTTP_{response.status_code}"
        description = error.get("description") or response.reason_phrase or "request rejected"
        return code, description
