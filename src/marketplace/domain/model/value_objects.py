"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from marketplace.domain.exceptions import ValidationError

DEFAULT_CURRENCY = "INR"
MINOR_UNITS_PER_MAJOR = 100

_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€"}


@dataclass(frozen=True)
class Money:
    """Monetary amount in integer minor units (e.g. paise) with currency.

    Amounts are never fractional: all arithmetic stays in integer space and
    conversion to display units happens only at presentation boundaries
    (``to_major`` / ``from_major``).
    """

    amount: int
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValidationError(
                f"Money amount must be an integer number of minor units, "
                f"got {type(self.amount).__name__}"
            )
        if self.amount < 0:
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )

    # --- Arithmetic helpers ---------------------------------------------------

    def __add__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        result = self.amount - other.amount
        if result < 0:
            raise ValidationError("Money subtraction would result in a negative amount")
        return Money(result, self.currency)

    def __mul__(self, factor: int) -> Money:
        if isinstance(factor, bool) or not isinstance(factor, int):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount >= other.amount

    def percentage(self, basis_points: int) -> Money:
        """Return ``basis_points``/10000 of this amount, rounded half-up."""
        if basis_points < 0:
            raise ValidationError("Percentage cannot be negative")
        return Money((self.amount * basis_points + 5000) // 10000, self.currency)

    def min(self, other: Money) -> Money:
        return self if self <= other else other

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    # --- Display --------------------------------------------------------------

    def to_major(self) -> Decimal:
        """Display units, e.g. 50000 paise -> Decimal('500.00')."""
        return (Decimal(self.amount) / MINOR_UNITS_PER_MAJOR).quantize(Decimal("0.01"))

    def __str__(self) -> str:
        symbol = _SYMBOLS.get(self.currency)
        if symbol is None:
            return f"{self.currency} {self.to_major():.2f}"
        return f"{symbol}{self.to_major():.2f}"

    # --- Internal helpers -----------------------------------------------------

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    # --- Factories ------------------------------------------------------------

    @staticmethod
    def zero(currency: str = DEFAULT_CURRENCY) -> Money:
        return Money(0, currency)

    @staticmethod
    def sum(amounts: list[Money], currency: str = DEFAULT_CURRENCY) -> Money:
        result = Money.zero(currency)
        for amount in amounts:
            result = result + amount
        return result

    @staticmethod
    def from_major(
        amount: str | int | Decimal, currency: str = DEFAULT_CURRENCY
    ) -> Money:
        """Parse a display-unit amount (e.g. "500.00") into minor units.

        Floats are rejected; more than two decimal places is an error rather
        than a silent rounding.
        """
        if isinstance(amount, float):
            raise ValidationError("Money amounts must not be given as floats")
        try:
            value = Decimal(str(amount).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc
        if not value.is_finite():
            raise ValidationError(f"Invalid money amount: {amount!r}")
        minor = value * MINOR_UNITS_PER_MAJOR
        if minor != minor.to_integral_value(rounding=ROUND_HALF_UP):
            raise ValidationError(
                f"Money amount {amount!r} has more than two decimal places"
            )
        return Money(int(minor), currency)


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity.

    Enforces the invariant that you cannot order zero or negative items.
    """

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)
