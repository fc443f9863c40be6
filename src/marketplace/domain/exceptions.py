"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
Every exception carries a stable ``code`` that callers can branch on; the
message is safe to show to a user.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""

    code = "DOMAIN_ERROR"


# --- Validation (client-correctable) -----------------------------------------


class ValidationError(DomainException):
    """A business rule or invariant was violated."""

    code = "VALIDATION_ERROR"


class EmptyCartError(ValidationError):
    code = "EMPTY_CART"


class InvalidAddressError(ValidationError):
    code = "INVALID_ADDRESS"


class NothingToChargeError(ValidationError):
    code = "NOTHING_TO_CHARGE"


# --- Lookup ------------------------------------------------------------------


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""

    code = "NOT_FOUND"


class OrderNotFoundError(EntityNotFoundError):
    code = "ORDER_NOT_FOUND"


class PaymentNotFoundError(EntityNotFoundError):
    code = "PAYMENT_NOT_FOUND"


# --- Conflict / authorization ------------------------------------------------


class ConflictError(DomainException):
    """The caller's view of the state is stale."""

    code = "CONFLICT"


class AlreadyPaidError(ConflictError):
    code = "ALREADY_PAID"


class InvalidPaymentStateError(ConflictError):
    code = "INVALID_PAYMENT_STATE"


class InvalidOrderStateError(ConflictError):
    code = "INVALID_ORDER_STATE"


class ForbiddenError(DomainException):
    code = "FORBIDDEN"


# --- Payment integrity (always fail closed) ----------------------------------


class PaymentIntegrityError(DomainException):
    """The payment evidence cannot be trusted."""

    code = "PAYMENT_INTEGRITY"


class InvalidSignatureError(PaymentIntegrityError):
    code = "INVALID_SIGNATURE"


class AmountMismatchError(PaymentIntegrityError):
    code = "AMOUNT_MISMATCH"


class PaymentOrderMismatchError(PaymentIntegrityError):
    code = "PAYMENT_ORDER_MISMATCH"


class PaymentNotCapturedError(PaymentIntegrityError):
    code = "PAYMENT_NOT_CAPTURED"


# --- Stock -------------------------------------------------------------------


class InsufficientStockError(DomainException):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for product '{product_id}' "
            f"(need {requested}, have {available} available)"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


# --- Gateway (transient or provider-side) ------------------------------------


class GatewayError(DomainException):
    code = "GATEWAY_ERROR"


class GatewayUnavailableError(GatewayError):
    """Network failure, timeout or provider outage. Safe to retry."""

    code = "GATEWAY_UNAVAILABLE"


class GatewayRejectedError(GatewayError):
    """The provider refused the request; carries its error code/description."""

    code = "GATEWAY_REJECTED"

    def __init__(self, provider_code: str, description: str) -> None:
        super().__init__(f"Gateway rejected the request: {description} ({provider_code})")
        self.provider_code = provider_code
        self.description = description
