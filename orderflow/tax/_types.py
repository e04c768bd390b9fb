"""
Tax types.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from orderflow._money import ZERO
from orderflow.context import Address
from orderflow.pricing import PricedLine


@dataclass(frozen=True, slots=True)
class TaxRule:
    """
    A tax rate for a jurisdiction.

    country / zone of None match any value. rate is a fraction (0.10 = 10%).
    """

    code: str
    title: str
    rate: Decimal
    country: str | None = None
    zone: str | None = None
    priority: int = 0

    def applies_to(self, address: Address) -> bool:
        if self.country is not None and self.country != address.country:
            return False
        if self.zone is not None and self.zone != address.zone:
            return False
        return True


@dataclass(frozen=True, slots=True)
class TaxedLines:
    """Priced lines with tax populated, plus what the aggregator needs for shipping."""

    lines: tuple[PricedLine, ...]
    rules: tuple[TaxRule, ...]
    tax_on_shipping: bool

    @property
    def subtotal(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), ZERO)

    @property
    def tax_amount(self) -> Decimal:
        return sum((line.tax for line in self.lines), ZERO)


__all__ = ("TaxRule", "TaxedLines")
