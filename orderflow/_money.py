"""
Money — Decimal amounts rounded to a currency's minor unit.

All rounding in the pipeline goes through `Currency.round`
(ROUND_HALF_UP), so line, tax and shipping amounts agree on precision.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP


ZERO = Decimal(0)


@dataclass(frozen=True, slots=True)
class Currency:
    """ISO currency code with its minor-unit precision (USD → 2, JPY → 0)."""

    code: str
    precision: int = 2

    def __post_init__(self) -> None:
        if len(self.code) != 3:
            raise ValueError(f"Invalid currency code: {self.code!r}")
        if not 0 <= self.precision <= 6:
            raise ValueError(f"Invalid minor-unit precision: {self.precision}")

    @property
    def quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.precision)

    def round(self, amount: Decimal) -> Decimal:
        return amount.quantize(self.quantum, rounding=ROUND_HALF_UP)

    def is_exact(self, amount: Decimal) -> bool:
        """True if amount has no digits below the minor unit."""
        return self.round(amount) == amount

    def to_minor(self, amount: Decimal) -> int:
        """Amount in minor units (cents for USD)."""
        return int(self.round(amount).scaleb(self.precision))

    def from_minor(self, minor: int) -> Decimal:
        return Decimal(minor).scaleb(-self.precision).quantize(self.quantum)

    def format(self, amount: Decimal) -> str:
        return f"{self.round(amount):,.{self.precision}f} {self.code}"


USD = Currency("USD", 2)
EUR = Currency("EUR", 2)
JPY = Currency("JPY", 0)


__all__ = ("ZERO", "Currency", "USD", "EUR", "JPY")
