"""Domain service: order charges.

Pure integer arithmetic over minor units: a flat shipping fee below a
free-shipping threshold, a fixed tax rate, and store credit applied up to
the order total.
"""

from __future__ import annotations

from dataclasses import dataclass

from marketplace.domain.exceptions import ValidationError
from marketplace.domain.model.order import OrderCharges
from marketplace.domain.model.value_objects import Money


@dataclass(frozen=True)
class PricingPolicy:
    free_shipping_threshold: Money = Money(99900)
    shipping_fee: Money = Money(9900)
    tax_rate_bps: int = 1800

    def __post_init__(self) -> None:
        if self.tax_rate_bps < 0:
            raise ValidationError("Tax rate cannot be negative")
        if self.free_shipping_threshold.currency != self.shipping_fee.currency:
            raise ValidationError("Pricing amounts must share one currency")

    @property
    def currency(self) -> str:
        return self.shipping_fee.currency

    def shipping_for(self, gross: Money) -> Money:
        if gross >= self.free_shipping_threshold:
            return Money.zero(self.currency)
        return self.shipping_fee

    def tax_for(self, gross: Money) -> Money:
        return gross.percentage(self.tax_rate_bps)

    def quote(self, gross: Money, available_credit: Money | None = None) -> OrderCharges:
        shipping = self.shipping_for(gross)
        tax = self.tax_for(gross)
        total = gross + shipping + tax
        credit = available_credit or Money.zero(self.currency)
        return OrderCharges(
            gross=gross,
            shipping=shipping,
            tax=tax,
            credits=credit.min(total),
        )
