"""SQLAlchemy-backed customer collaborators: customers and addresses."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.domain.exceptions import EntityNotFoundError
from marketplace.domain.model.customer import Customer, Role
from marketplace.domain.model.value_objects import Money
from marketplace.domain.repository.customer_repository import (
    AddressRepository,
    CustomerRepository,
)
from marketplace.infrastructure.persistence.tables import AddressRow, CustomerRow


class SqlCustomerRepository(CustomerRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, user_id: str) -> Customer | None:
        row = self._session.get(CustomerRow, user_id)
        if row is None:
            return None
        return Customer(
            id=row.id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            role=Role(row.role),
            store_credit=Money(row.store_credit, row.currency),
        )

    def save(self, customer: Customer) -> None:
        # Customer records are owned by the account subsystem; only the
        # credit balance is written from here.
        row = self._session.get(CustomerRow, customer.id)
        if row is None:
            raise EntityNotFoundError(f"User '{customer.id}' not found")
        row.store_credit = customer.store_credit.amount
        row.currency = customer.store_credit.currency
        self._session.flush()


class SqlAddressRepository(AddressRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def belongs_to(self, address_id: str, user_id: str) -> bool:
        found = self._session.scalar(
            select(AddressRow.id).where(
                AddressRow.id == address_id, AddressRow.user_id == user_id
            )
        )
        return found is not None
