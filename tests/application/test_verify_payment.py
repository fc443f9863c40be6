"""Integration tests for the VerifyPayment use case."""

import threading
from datetime import datetime, timezone

import pytest

from marketplace.application.handle_payment_failure import HandlePaymentFailureHandler
from marketplace.application.place_order import PlaceOrderHandler
from marketplace.application.verify_payment import VerifyPaymentHandler
from marketplace.domain.exceptions import (
    AlreadyPaidError,
    AmountMismatchError,
    ForbiddenError,
    GatewayUnavailableError,
    InvalidPaymentStateError,
    InvalidSignatureError,
    OrderNotFoundError,
    PaymentNotCapturedError,
    PaymentNotFoundError,
    PaymentOrderMismatchError,
)
from marketplace.domain.model.order import OrderStatus, PaymentStatus
from marketplace.domain.model.value_objects import Money
from marketplace.domain.service.pricing import PricingPolicy
from tests.fakes import (
    ADDRESS_ID,
    OTHER_USER_ID,
    USER_ID,
    FakeGateway,
    FakeUnitOfWork,
    build_uow,
)

NOW = datetime(2024, 5, 1, 10, 5, tzinfo=timezone.utc)
REMOTE_ORDER = "order_1"
REMOTE_PAYMENT = "pay_1"


def _setup(uow: FakeUnitOfWork | None = None) -> tuple[VerifyPaymentHandler, FakeUnitOfWork, FakeGateway, str]:
    uow = uow or build_uow()
    order_id = PlaceOrderHandler(uow, PricingPolicy()).handle(USER_ID, ADDRESS_ID, "ONLINE").id
    gateway = FakeGateway()
    return VerifyPaymentHandler(uow, gateway, clock=lambda: NOW), uow, gateway, order_id


def _verify(handler, gateway, order_id, user_id=USER_ID, payment_id=REMOTE_PAYMENT, signature=None):
    return handler.handle(
        order_id=order_id,
        user_id=user_id,
        remote_order_id=REMOTE_ORDER,
        remote_payment_id=payment_id,
        signature=signature or gateway.sign(REMOTE_ORDER, payment_id),
    )


class TestVerifyPaymentHappyPath:

    def test_marks_order_paid(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000)

        dto = _verify(handler, gateway, order_id)

        assert dto.order.payment_status == "PAID"
        assert dto.order.status == "PLACED"
        assert uow.store.orders[order_id].payment_status == PaymentStatus.PAID
        assert uow.store.orders[order_id].status_updated_at == NOW

    def test_records_exactly_one_payment_for_net_amount(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000, method="card")

        _verify(handler, gateway, order_id)

        payments = list(uow.store.payments.values())
        assert len(payments) == 1
        payment = payments[0]
        assert payment.order_id == order_id
        assert payment.user_id == USER_ID
        assert payment.amount == Money(118000)
        assert payment.provider == "razorpay"
        assert payment.provider_payment_id == REMOTE_PAYMENT
        assert payment.status == PaymentStatus.PAID
        assert payment.method == "card"
        assert payment.metadata["remote_order_id"] == REMOTE_ORDER

    def test_stock_is_not_touched(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000)
        _verify(handler, gateway, order_id)
        assert uow.store.stock_of("P1") == 8


class TestVerifyPaymentIntegrity:

    def test_invalid_signature(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000)

        with pytest.raises(InvalidSignatureError):
            _verify(handler, gateway, order_id, signature="0" * 64)

        assert uow.store.orders[order_id].payment_status == PaymentStatus.PENDING
        assert uow.store.payments == {}

    def test_signature_for_another_payment_rejected(self):
        handler, _, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000)
        with pytest.raises(InvalidSignatureError):
            _verify(handler, gateway, order_id, signature=gateway.sign(REMOTE_ORDER, "pay_other"))

    def test_payment_not_captured(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000, status="authorized")

        with pytest.raises(PaymentNotCapturedError):
            _verify(handler, gateway, order_id)
        assert uow.store.payments == {}

    def test_payment_for_another_checkout_rejected(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000, order_id="order_other")

        with pytest.raises(PaymentOrderMismatchError):
            _verify(handler, gateway, order_id)
        assert uow.store.payments == {}
        assert uow.store.orders[order_id].payment_status == PaymentStatus.PENDING

    def test_matching_gateway_order_accepted(self):
        handler, _, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000, order_id=REMOTE_ORDER)

        assert _verify(handler, gateway, order_id).order.payment_status == "PAID"

    def test_amount_mismatch(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 100)

        with pytest.raises(AmountMismatchError):
            _verify(handler, gateway, order_id)
        assert uow.store.orders[order_id].payment_status == PaymentStatus.PENDING
        assert uow.store.payments == {}

    def test_currency_mismatch(self):
        handler, _, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000, currency="USD")
        with pytest.raises(AmountMismatchError):
            _verify(handler, gateway, order_id)

    def test_unknown_remote_payment(self):
        handler, _, gateway, order_id = _setup()
        with pytest.raises(PaymentNotFoundError):
            _verify(handler, gateway, order_id)

    def test_gateway_unavailable(self):
        handler, uow, gateway, order_id = _setup()
        gateway.fail_with = GatewayUnavailableError("Payment gateway is unreachable")
        with pytest.raises(GatewayUnavailableError):
            _verify(handler, gateway, order_id)
        assert uow.store.orders[order_id].payment_status == PaymentStatus.PENDING


class TestVerifyPaymentOrderChecks:

    def test_unknown_order(self):
        handler, _, gateway, _ = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000)
        with pytest.raises(OrderNotFoundError):
            _verify(handler, gateway, "missing")

    def test_someone_elses_order(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000)
        with pytest.raises(ForbiddenError):
            _verify(handler, gateway, order_id, user_id=OTHER_USER_ID)
        assert uow.store.payments == {}

    def test_duplicate_verification(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000)
        _verify(handler, gateway, order_id)

        with pytest.raises(AlreadyPaidError):
            _verify(handler, gateway, order_id)
        assert len(uow.store.payments) == 1

    def test_payment_id_reused_for_another_order(self):
        handler, uow, gateway, first_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000)
        _verify(handler, gateway, first_id)

        uow.store.add_to_cart(USER_ID, "P1", 2)
        second_id = PlaceOrderHandler(uow, PricingPolicy()).handle(USER_ID, ADDRESS_ID, "ONLINE").id

        with pytest.raises(AlreadyPaidError, match="already been recorded"):
            _verify(handler, gateway, second_id)
        assert uow.store.orders[second_id].payment_status == PaymentStatus.PENDING

    def test_payment_after_failure_is_refused(self):
        handler, uow, gateway, order_id = _setup()
        HandlePaymentFailureHandler(uow).handle(order_id, USER_ID)
        gateway.add_payment(REMOTE_PAYMENT, 118000)

        with pytest.raises(InvalidPaymentStateError):
            _verify(handler, gateway, order_id)
        assert uow.store.orders[order_id].status == OrderStatus.CANCELLED
        assert uow.store.payments == {}


class TestVerifyPaymentConcurrency:

    def test_concurrent_duplicate_callbacks_settle_once(self):
        handler, uow, gateway, order_id = _setup()
        gateway.add_payment(REMOTE_PAYMENT, 118000)
        outcomes: list[str] = []

        def verify() -> None:
            try:
                _verify(handler, gateway, order_id)
                outcomes.append("paid")
            except AlreadyPaidError:
                outcomes.append("duplicate")

        threads = [threading.Thread(target=verify) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["duplicate", "duplicate", "duplicate", "paid"]
        assert len(uow.store.payments) == 1
