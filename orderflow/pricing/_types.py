"""
Pricing types — cart, price records, priced lines.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum, auto

from orderflow._clock import as_utc
from orderflow._money import ZERO
from orderflow._types import CartId, CustomerId, Sku, StoreId
from orderflow.context import Address, Dimensions


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartItem:
    """
    One cart line. quantity units of the same sku.

    unit_price is the snapshot shown when the item was added; the
    calculator always resolves the current price from the price table.
    """

    line_id: str
    sku: Sku
    quantity: int
    weight: Decimal  # kg per unit
    dimensions: Dimensions  # per unit
    unit_price: Decimal | None = None


@dataclass(frozen=True, slots=True)
class Discount:
    code: str
    title: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class ShoppingCart:
    id: CartId
    store_id: StoreId
    items: tuple[CartItem, ...]
    discounts: tuple[Discount, ...] = ()
    destination: Address | None = None
    customer_id: CustomerId | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Price records
# ═══════════════════════════════════════════════════════════════════════════════


class PriceKind(Enum):
    DEFAULT = auto()
    PROMOTIONAL = auto()
    CUSTOMER = auto()


@dataclass(frozen=True, slots=True)
class PriceRecord:
    """
    A price table row for one sku in one store.

    Active when valid_from <= at < valid_until; open bounds allowed.
    Naive timestamps are read as UTC.
    CUSTOMER records only apply to their customer_id.
    """

    sku: Sku
    amount: Decimal
    kind: PriceKind = PriceKind.DEFAULT
    customer_id: CustomerId | None = None
    valid_from: datetime | None = None
    valid_until: datetime | None = None

    def is_active(self, at: datetime, customer: CustomerId | None) -> bool:
        at = as_utc(at)
        if self.valid_from is not None and at < as_utc(self.valid_from):
            return False
        if self.valid_until is not None and at >= as_utc(self.valid_until):
            return False
        if self.kind is PriceKind.CUSTOMER:
            return customer is not None and self.customer_id == customer
        return True


# ═══════════════════════════════════════════════════════════════════════════════
# Priced line
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PricedLine:
    item: CartItem
    unit_price: Decimal
    price_kind: PriceKind
    subtotal: Decimal
    tax: Decimal = ZERO

    @property
    def sku(self) -> Sku:
        return self.item.sku

    def with_tax(self, tax: Decimal) -> PricedLine:
        return replace(self, tax=tax)


__all__ = (
    "CartItem",
    "Discount",
    "ShoppingCart",
    "PriceKind",
    "PriceRecord",
    "PricedLine",
)
