"""Customer collaborator: contact details, role and store credit."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from marketplace.domain.model.value_objects import Money


class Role(Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"


@dataclass
class Customer:
    id: str
    name: str
    email: str
    phone: str = ""
    role: Role = Role.CUSTOMER
    store_credit: Money = field(default_factory=Money.zero)

    def debit_credit(self, amount: Money) -> None:
        """Consume store credit applied to an order."""
        self.store_credit = self.store_credit - amount

    def add_credit(self, amount: Money) -> None:
        self.store_credit = self.store_credit + amount


@dataclass(frozen=True)
class Actor:
    """The already-authenticated caller of an operation."""

    user_id: str
    role: Role = Role.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def can_access(self, owner_id: str) -> bool:
        return self.is_admin or self.user_id == owner_id
