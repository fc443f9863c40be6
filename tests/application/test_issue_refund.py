"""Integration tests for the IssueRefund use case."""

import threading
from datetime import datetime, timezone

import pytest

import marketplace.application.issue_refund as issue_refund_module
from marketplace.application.issue_refund import IssueRefundHandler
from marketplace.application.place_order import PlaceOrderHandler
from marketplace.application.verify_payment import VerifyPaymentHandler
from marketplace.domain.exceptions import (
    ForbiddenError,
    GatewayRejectedError,
    GatewayUnavailableError,
    OrderNotFoundError,
    PaymentNotFoundError,
    ValidationError,
)
from marketplace.domain.model.customer import Actor, Role
from marketplace.domain.model.order import OrderStatus, PaymentStatus
from marketplace.domain.model.payment import RefundMethod
from marketplace.domain.model.value_objects import Money
from marketplace.domain.service.pricing import PricingPolicy
from tests.fakes import ADDRESS_ID, ADMIN_ID, USER_ID, FakeGateway, FakeUnitOfWork, build_uow

NOW = datetime(2024, 5, 3, 12, 0, tzinfo=timezone.utc)
ADMIN = Actor(ADMIN_ID, Role.ADMIN)


def _setup(paid: bool = True) -> tuple[IssueRefundHandler, FakeUnitOfWork, FakeGateway, str]:
    uow = build_uow()
    gateway = FakeGateway()
    order_id = PlaceOrderHandler(uow, PricingPolicy()).handle(USER_ID, ADDRESS_ID, "ONLINE").id
    if paid:
        gateway.add_payment("pay_1", 118000)
        VerifyPaymentHandler(uow, gateway).handle(
            order_id, USER_ID, "order_1", "pay_1", gateway.sign("order_1", "pay_1")
        )
    return IssueRefundHandler(uow, gateway, clock=lambda: NOW), uow, gateway, order_id


class TestRefundViaGateway:

    def test_full_refund_by_default(self):
        handler, uow, gateway, order_id = _setup()

        dto = handler.handle(ADMIN, order_id, "damaged in transit")

        assert dto.amount.minor == 118000
        assert dto.method == "GATEWAY"
        assert dto.status == "processed"
        assert dto.provider_refund_id is not None
        assert gateway.refund_calls[0][0] == "pay_1"
        assert gateway.refund_calls[0][1] == 118000
        assert gateway.refund_calls[0][2]["reason"] == "damaged in transit"
        assert len(uow.store.refunds) == 1

    def test_partial_refund(self):
        handler, uow, _, order_id = _setup()
        dto = handler.handle(ADMIN, order_id, "one item missing", amount_override="590.00")
        assert dto.amount.minor == 59000
        assert uow.store.refunds[0].amount == Money(59000)

    def test_executed_amount_is_recorded(self):
        handler, uow, gateway, order_id = _setup()
        gateway.refund_amount_override = 50000

        dto = handler.handle(ADMIN, order_id, "goodwill", amount_override="590.00")

        assert dto.amount.minor == 50000
        assert uow.store.refunds[0].metadata["requested_amount"] == 59000

    def test_order_state_untouched(self):
        handler, uow, _, order_id = _setup()
        handler.handle(ADMIN, order_id, "refund")
        order = uow.store.orders[order_id]
        assert order.status == OrderStatus.PLACED
        assert order.payment_status == PaymentStatus.PAID

    def test_gateway_rejection_marks_refund_failed(self):
        handler, uow, gateway, order_id = _setup()
        gateway.fail_with = GatewayRejectedError("BAD_REQUEST_ERROR", "fully refunded already")

        with pytest.raises(GatewayRejectedError):
            handler.handle(ADMIN, order_id, "refund")

        assert [r.status for r in uow.store.refunds] == ["failed"]
        gateway.fail_with = None
        assert handler.handle(ADMIN, order_id, "retry").amount.minor == 118000

    def test_timeout_leaves_refund_pending(self):
        handler, uow, gateway, order_id = _setup()
        gateway.fail_with = GatewayUnavailableError("Payment gateway timed out")

        with pytest.raises(GatewayUnavailableError):
            handler.handle(ADMIN, order_id, "refund", amount_override="1000.00")

        assert [r.status for r in uow.store.refunds] == ["pending"]
        gateway.fail_with = None
        with pytest.raises(ValidationError, match="exceeds the refundable balance"):
            handler.handle(ADMIN, order_id, "again", amount_override="180.01")


class TestRefundAsStoreCredit:

    def test_adds_credit_without_gateway_call(self):
        handler, uow, gateway, order_id = _setup()

        dto = handler.handle(
            ADMIN, order_id, "return", amount_override="200", method=RefundMethod.MANUAL_CREDIT
        )

        assert dto.method == "MANUAL_CREDIT"
        assert gateway.refund_calls == []
        assert uow.store.customers[USER_ID].store_credit == Money(20000)

    def test_method_accepts_text(self):
        handler, _, _, order_id = _setup()
        dto = handler.handle(ADMIN, order_id, "return", method="manual_credit")
        assert dto.method == "MANUAL_CREDIT"


class TestRefundValidation:

    def test_admin_only(self):
        handler, _, gateway, order_id = _setup()
        with pytest.raises(ForbiddenError):
            handler.handle(Actor(USER_ID), order_id, "I want my money")
        assert gateway.refund_calls == []

    def test_unknown_order(self):
        handler, _, _, _ = _setup()
        with pytest.raises(OrderNotFoundError):
            handler.handle(ADMIN, "missing", "refund")

    def test_unpaid_order(self):
        handler, _, _, order_id = _setup(paid=False)
        with pytest.raises(PaymentNotFoundError):
            handler.handle(ADMIN, order_id, "refund")

    def test_zero_amount_rejected(self):
        handler, _, _, order_id = _setup()
        with pytest.raises(ValidationError, match="greater than zero"):
            handler.handle(ADMIN, order_id, "refund", amount_override="0")

    def test_more_than_paid_rejected(self):
        handler, _, _, order_id = _setup()
        with pytest.raises(ValidationError, match="exceeds the refundable balance"):
            handler.handle(ADMIN, order_id, "refund", amount_override="1180.01")

    def test_refunds_cannot_exceed_payment_in_total(self):
        handler, uow, _, order_id = _setup()
        handler.handle(ADMIN, order_id, "first", amount_override="1000.00")
        with pytest.raises(ValidationError, match="exceeds the refundable balance"):
            handler.handle(ADMIN, order_id, "second", amount_override="180.01")
        handler.handle(ADMIN, order_id, "second", amount_override="180.00")
        assert len(uow.store.refunds) == 2

    def test_unknown_method_rejected(self):
        handler, _, _, order_id = _setup()
        with pytest.raises(ValidationError, match="refund method"):
            handler.handle(ADMIN, order_id, "refund", method="CASH")


class TestConcurrentRefunds:

    def test_second_refund_waits_and_sees_the_first(self, monkeypatch):
        handler, uow, _, order_id = _setup()
        rejected: list[ValidationError] = []

        def second_refund():
            try:
                handler.handle(ADMIN, order_id, "duplicate", method=RefundMethod.MANUAL_CREDIT)
            except ValidationError as exc:
                rejected.append(exc)

        worker = threading.Thread(target=second_refund)
        original = issue_refund_module.refundable_balance

        def balance_then_start_second(payment, refunds):
            balance = original(payment, refunds)
            if worker.ident is None:
                worker.start()
                worker.join(timeout=0.2)
            return balance

        monkeypatch.setattr(issue_refund_module, "refundable_balance", balance_then_start_second)

        handler.handle(ADMIN, order_id, "return", method=RefundMethod.MANUAL_CREDIT)
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert len(rejected) == 1
        assert "exceeds the refundable balance" in str(rejected[0])
        assert [r.amount for r in uow.store.refunds] == [Money(118000)]
        assert uow.store.customers[USER_ID].store_credit == Money(118000)
