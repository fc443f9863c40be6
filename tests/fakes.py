"""In-memory fakes for testing.

The repositories implement the same abstract interfaces as the SQLAlchemy
ones but keep everything in dicts on a shared ``FakeStore``.  Like a real
database they hand out copies, so a domain object changed without
``save()`` is never persisted.  ``FakeUnitOfWork`` snapshots the store on
entry and restores it on rollback.
"""

from __future__ import annotations

import copy
import itertools
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from marketplace.domain.exceptions import (
    AlreadyPaidError,
    GatewayError,
    PaymentNotFoundError,
)
from marketplace.domain.gateway.payment_gateway import (
    PaymentGateway,
    RemoteOrder,
    RemotePayment,
    RemoteRefund,
)
from marketplace.domain.model.customer import Customer, Role
from marketplace.domain.model.order import Order, PaymentStatus
from marketplace.domain.model.order_query import FilterOp, OrderFilter, OrderSort, SortField
from marketplace.domain.model.payment import Payment, Refund
from marketplace.domain.model.product import CartItem, Product
from marketplace.domain.model.value_objects import Money, Quantity
from marketplace.domain.repository.customer_repository import (
    AddressRepository,
    CustomerRepository,
)
from marketplace.domain.repository.inventory_repository import InventoryRepository
from marketplace.domain.repository.order_repository import OrderRepository
from marketplace.domain.repository.payment_repository import (
    PaymentRepository,
    RefundRepository,
)
from marketplace.domain.repository.product_repository import (
    CartRepository,
    ProductRepository,
)
from marketplace.domain.repository.unit_of_work import UnitOfWork
from marketplace.infrastructure.gateway.razorpay_gateway import compute_signature

_DATA_FIELDS = (
    "orders",
    "payments",
    "refunds",
    "products",
    "carts",
    "customers",
    "addresses",
)


@dataclass
class FakeStore:
    orders: dict[str, Order] = field(default_factory=dict)
    payments: dict[str, Payment] = field(default_factory=dict)
    refunds: list[Refund] = field(default_factory=list)
    products: dict[str, Product] = field(default_factory=dict)
    carts: dict[str, list[CartItem]] = field(default_factory=dict)
    customers: dict[str, Customer] = field(default_factory=dict)
    addresses: dict[str, str] = field(default_factory=dict)  # address id -> user id

    def snapshot(self) -> dict:
        return {name: copy.deepcopy(getattr(self, name)) for name in _DATA_FIELDS}

    def restore(self, snapshot: dict) -> None:
        for name in _DATA_FIELDS:
            setattr(self, name, copy.deepcopy(snapshot[name]))

    # --- Seeding helpers --------------------------------------------------------

    def add_product(self, product: Product) -> None:
        self.products[product.id] = product

    def add_customer(self, customer: Customer, *address_ids: str) -> None:
        self.customers[customer.id] = customer
        for address_id in address_ids:
            self.addresses[address_id] = customer.id

    def add_to_cart(self, user_id: str, product_id: str, quantity: int) -> None:
        self.carts.setdefault(user_id, []).append(
            CartItem(user_id=user_id, product_id=product_id, quantity=Quantity(quantity))
        )

    def stock_of(self, product_id: str) -> int:
        return self.products[product_id].stock


class FakeOrderRepository(OrderRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get_by_id(self, order_id: str, *, for_update: bool = False) -> Order | None:
        order = self._store.orders.get(order_id)
        return copy.deepcopy(order)

    def save(self, order: Order) -> None:
        self._store.orders[order.id] = copy.deepcopy(order)

    def find(
        self,
        filters: list[OrderFilter],
        sort: OrderSort,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Order]:
        matching = sorted(self._matching(filters), key=lambda o: o.id)
        # Orders missing the sort value always come last, as with NULLS LAST.
        present = [o for o in matching if _sort_value(sort, o) is not None]
        missing = [o for o in matching if _sort_value(sort, o) is None]
        present.sort(key=lambda o: _sort_value(sort, o), reverse=sort.descending)
        end = None if limit is None else offset + limit
        return copy.deepcopy((present + missing)[offset:end])

    def count(self, filters: list[OrderFilter]) -> int:
        return len(self._matching(filters))

    def _matching(self, filters: list[OrderFilter]) -> list[Order]:
        return [
            o for o in self._store.orders.values() if all(_matches(f, o) for f in filters)
        ]


def _matches(order_filter: OrderFilter, order: Order) -> bool:
    actual = getattr(order, order_filter.field.value)
    if order_filter.op == FilterOp.EQ:
        return actual == order_filter.value
    if order_filter.op == FilterOp.IN:
        return actual in order_filter.value
    if order_filter.op == FilterOp.GTE:
        return actual >= order_filter.value
    if order_filter.op == FilterOp.LTE:
        return actual <= order_filter.value
    return actual < order_filter.value


def _sort_value(sort: OrderSort, order: Order) -> Any:
    value = getattr(order, sort.field.value)
    if isinstance(value, Enum):
        return value.value
    if sort.field == SortField.NET_AMOUNT:
        return value.amount
    return value


class FakePaymentRepository(PaymentRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get_by_provider_payment_id(self, provider_payment_id: str) -> Payment | None:
        for payment in self._store.payments.values():
            if payment.provider_payment_id == provider_payment_id:
                return copy.deepcopy(payment)
        return None

    def find_paid_for_order(self, order_id: str, provider: str) -> Payment | None:
        for payment in self.list_for_order(order_id):
            if payment.provider == provider and payment.status == PaymentStatus.PAID:
                return payment
        return None

    def list_for_order(self, order_id: str) -> list[Payment]:
        return [
            copy.deepcopy(p) for p in self._store.payments.values() if p.order_id == order_id
        ]

    def save(self, payment: Payment) -> None:
        existing = self.get_by_provider_payment_id(payment.provider_payment_id)
        if existing is not None and existing.id != payment.id:
            raise AlreadyPaidError(
                f"Payment {payment.provider_payment_id} has already been recorded"
            )
        self._store.payments[payment.id] = copy.deepcopy(payment)


class FakeRefundRepository(RefundRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def list_for_order(self, order_id: str) -> list[Refund]:
        return [copy.deepcopy(r) for r in self._store.refunds if r.order_id == order_id]

    def save(self, refund: Refund) -> None:
        stored = copy.deepcopy(refund)
        for index, existing in enumerate(self._store.refunds):
            if existing.id == refund.id:
                self._store.refunds[index] = stored
                return
        self._store.refunds.append(stored)


class FakeInventoryRepository(InventoryRepository):
    """Stock lives on the stored products, as in the relational schema."""

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get_stock(self, product_id: str) -> int | None:
        product = self._store.products.get(product_id)
        return None if product is None else product.stock

    def try_decrement(self, product_id: str, quantity: int) -> bool:
        product = self._store.products.get(product_id)
        if product is None or product.stock < quantity:
            return False
        product.stock -= quantity
        return True

    def increment(self, product_id: str, quantity: int) -> None:
        self._store.products[product_id].stock += quantity


class FakeProductRepository(ProductRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get_by_id(self, product_id: str) -> Product | None:
        return copy.deepcopy(self._store.products.get(product_id))


class FakeCartRepository(CartRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def list_for_user(self, user_id: str) -> list[CartItem]:
        return list(self._store.carts.get(user_id, []))

    def clear(self, user_id: str) -> None:
        self._store.carts.pop(user_id, None)


class FakeCustomerRepository(CustomerRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def get_by_id(self, user_id: str) -> Customer | None:
        return copy.deepcopy(self._store.customers.get(user_id))

    def save(self, customer: Customer) -> None:
        self._store.customers[customer.id] = copy.deepcopy(customer)


class FakeAddressRepository(AddressRepository):

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    def belongs_to(self, address_id: str, user_id: str) -> bool:
        return self._store.addresses.get(address_id) == user_id


class FakeUnitOfWork(UnitOfWork):
    """Serializes units of work with a lock, like row locks on a single order."""

    def __init__(self, store: FakeStore | None = None) -> None:
        self.store = store or FakeStore()
        self.commits = 0
        self._lock = threading.Lock()
        self._snapshot: dict | None = None
        self.orders = FakeOrderRepository(self.store)
        self.payments = FakePaymentRepository(self.store)
        self.refunds = FakeRefundRepository(self.store)
        self.inventory = FakeInventoryRepository(self.store)
        self.products = FakeProductRepository(self.store)
        self.carts = FakeCartRepository(self.store)
        self.customers = FakeCustomerRepository(self.store)
        self.addresses = FakeAddressRepository(self.store)

    def __enter__(self) -> FakeUnitOfWork:
        self._lock.acquire()
        self._snapshot = self.store.snapshot()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            super().__exit__(exc_type, exc, tb)
        finally:
            self._snapshot = None
            self._lock.release()

    def commit(self) -> None:
        self._snapshot = self.store.snapshot()
        self.commits += 1

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.store.restore(self._snapshot)


class FakeGateway(PaymentGateway):
    """Scriptable payment gateway that signs like Razorpay."""

    provider = "razorpay"
    key_id = "rzp_test_key"
    secret = "test_secret"

    def __init__(self) -> None:
        self.remote_payments: dict[str, RemotePayment] = {}
        self.created_orders: list[RemoteOrder] = []
        self.refund_calls: list[tuple[str, int, dict[str, str]]] = []
        self.refund_amount_override: int | None = None
        self.fail_with: GatewayError | None = None
        self._ids = itertools.count(1)

    # --- Test helpers -----------------------------------------------------------

    def sign(self, remote_order_id: str, remote_payment_id: str) -> str:
        return compute_signature(self.secret, remote_order_id, remote_payment_id)

    def add_payment(
        self,
        payment_id: str,
        amount: int,
        *,
        currency: str = "INR",
        status: str = "captured",
        order_id: str | None = None,
        method: str = "upi",
    ) -> RemotePayment:
        remote = RemotePayment(
            id=payment_id,
            amount=amount,
            currency=currency,
            status=status,
            order_id=order_id,
            method=method,
        )
        self.remote_payments[payment_id] = remote
        return remote

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    # --- PaymentGateway interface -------------------------------------------------

    def create_remote_order(
        self, amount: int, currency: str, receipt: str, metadata: dict[str, str]
    ) -> RemoteOrder:
        self._maybe_fail()
        remote = RemoteOrder(
            id=f"order_{next(self._ids)}",
            amount=amount,
            currency=currency,
            receipt=receipt,
            status="created",
        )
        self.created_orders.append(remote)
        return remote

    def fetch_payment(self, remote_payment_id: str) -> RemotePayment:
        self._maybe_fail()
        remote = self.remote_payments.get(remote_payment_id)
        if remote is None:
            raise PaymentNotFoundError(f"Payment {remote_payment_id} not found at gateway")
        return remote

    def issue_refund(
        self, remote_payment_id: str, amount: int, notes: dict[str, str]
    ) -> RemoteRefund:
        self._maybe_fail()
        self.refund_calls.append((remote_payment_id, amount, notes))
        executed = self.refund_amount_override if self.refund_amount_override else amount
        return RemoteRefund(
            id=f"rfnd_{next(self._ids)}",
            payment_id=remote_payment_id,
            amount=executed,
            status="processed",
        )

    def verify_signature(
        self, remote_order_id: str, remote_payment_id: str, signature: str
    ) -> bool:
        return signature == self.sign(remote_order_id, remote_payment_id)


# --- Scenario builder ---------------------------------------------------------

USER_ID = "u1"
ADDRESS_ID = "a1"
OTHER_USER_ID = "u2"
OTHER_ADDRESS_ID = "a2"
ADMIN_ID = "admin"


def build_uow(
    *,
    stock: int = 10,
    price: int = 50000,
    quantity: int = 2,
    store_credit: int = 0,
) -> FakeUnitOfWork:
    """Customer u1 with ``quantity`` of product P1 in the cart.

    With the defaults this is the reference scenario: P1 at 50000 paise,
    two in the cart, ten in stock.
    """
    store = FakeStore()
    store.add_product(Product(id="P1", name="Cotton Kurta", price=Money(price), stock=stock))
    store.add_customer(
        Customer(
            id=USER_ID,
            name="Asha Rao",
            email="asha@example.com",
            phone="+919800000001",
            store_credit=Money(store_credit),
        ),
        ADDRESS_ID,
    )
    store.add_customer(
        Customer(id=OTHER_USER_ID, name="Vikram Shah", email="vikram@example.com"),
        OTHER_ADDRESS_ID,
    )
    store.add_customer(
        Customer(id=ADMIN_ID, name="Store Admin", email="admin@example.com", role=Role.ADMIN)
    )
    if quantity:
        store.add_to_cart(USER_ID, "P1", quantity)
    return FakeUnitOfWork(store)
