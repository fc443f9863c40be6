"""Abstract repositories for customer collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.domain.model.customer import Customer


class CustomerRepository(ABC):

    @abstractmethod
    def get_by_id(self, user_id: str) -> Customer | None:
        """Return a customer, or None if not found."""

    @abstractmethod
    def save(self, customer: Customer) -> None:
        """Persist store credit changes."""


class AddressRepository(ABC):

    @abstractmethod
    def belongs_to(self, address_id: str, user_id: str) -> bool:
        """True if the address exists and is owned by the user."""
