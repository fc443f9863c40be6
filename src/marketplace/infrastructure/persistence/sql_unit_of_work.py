"""SQLAlchemy implementation of the UnitOfWork: one Session per block."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from marketplace.domain.exceptions import ConflictError
from marketplace.domain.repository.unit_of_work import UnitOfWork
from marketplace.infrastructure.persistence.sql_catalog_repository import (
    SqlCartRepository,
    SqlInventoryRepository,
    SqlProductRepository,
)
from marketplace.infrastructure.persistence.sql_customer_repository import (
    SqlAddressRepository,
    SqlCustomerRepository,
)
from marketplace.infrastructure.persistence.sql_order_repository import (
    SqlOrderRepository,
)
from marketplace.infrastructure.persistence.sql_payment_repository import (
    SqlPaymentRepository,
    SqlRefundRepository,
)


class SqlAlchemyUnitOfWork(UnitOfWork):

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        session = self._session_factory()
        self._session = session
        self.orders = SqlOrderRepository(session)
        self.payments = SqlPaymentRepository(session)
        self.refunds = SqlRefundRepository(session)
        self.inventory = SqlInventoryRepository(session)
        self.products = SqlProductRepository(session)
        self.carts = SqlCartRepository(session)
        self.customers = SqlCustomerRepository(session)
        self.addresses = SqlAddressRepository(session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            super().__exit__(exc_type, exc, tb)
        finally:
            if self._session is not None:
                self._session.close()
            self._session = None

    def commit(self) -> None:
        try:
            self._require_session().commit()
        except IntegrityError as exc:
            self._require_session().rollback()
            raise ConflictError(
                "The change conflicts with data recorded concurrently"
            ) from exc

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()

    def _require_session(self) -> Session:
        if self._session is None:
            raise RuntimeError("Unit of work used outside of a 'with' block")
        return self._session
