"""
Totals types — the ordered, summable breakdown shown to the customer.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from orderflow._money import Currency, ZERO


class TotalCode(Enum):
    SUBTOTAL = "SUBTOTAL"
    DISCOUNT = "DISCOUNT"
    TAX = "TAX"
    SHIPPING = "SHIPPING"
    SHIPPING_TAX = "SHIPPING_TAX"


DEFAULT_ORDER: tuple[TotalCode, ...] = (
    TotalCode.SUBTOTAL,
    TotalCode.DISCOUNT,
    TotalCode.TAX,
    TotalCode.SHIPPING,
    TotalCode.SHIPPING_TAX,
)


@dataclass(frozen=True, slots=True)
class OrderTotal:
    code: TotalCode
    title: str
    text: str
    value: Decimal
    sort_order: int


@dataclass(frozen=True, slots=True)
class OrderTotalSummary:
    """
    Ordered totals. grand_total is the sum of every value and is
    recomputed on each access, never stored.
    """

    totals: tuple[OrderTotal, ...]
    currency: Currency

    @property
    def grand_total(self) -> Decimal:
        return sum((total.value for total in self.totals), ZERO)

    @property
    def grand_total_text(self) -> str:
        return self.currency.format(self.grand_total)

    def of(self, code: TotalCode) -> tuple[OrderTotal, ...]:
        return tuple(total for total in self.totals if total.code is code)

    def value_of(self, code: TotalCode) -> Decimal:
        return sum((total.value for total in self.of(code)), ZERO)


__all__ = ("TotalCode", "DEFAULT_ORDER", "OrderTotal", "OrderTotalSummary")
