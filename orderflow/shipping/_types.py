"""
Shipping types — packed units, packages, quotes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from orderflow._money import Currency, ZERO
from orderflow._types import CartId, QuoteId, Sku, StoreId
from orderflow.context import Dimensions, PackageType


# ═══════════════════════════════════════════════════════════════════════════════
# Packing
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PackedUnit:
    """One physical unit of a cart line (a line of quantity 3 is 3 units)."""

    line_id: str
    sku: Sku
    unit_index: int
    weight: Decimal
    dimensions: Dimensions


@dataclass(frozen=True, slots=True)
class Package:
    package_type: PackageType
    units: tuple[PackedUnit, ...]

    @property
    def weight(self) -> Decimal:
        return sum((unit.weight for unit in self.units), ZERO)

    @property
    def volume_used(self) -> Decimal:
        return sum((unit.dimensions.volume for unit in self.units), ZERO)


@dataclass(frozen=True, slots=True)
class PackedShipment:
    """The assignment of cart items to one or more physical packages."""

    packages: tuple[Package, ...]

    @property
    def weight(self) -> Decimal:
        return sum((package.weight for package in self.packages), ZERO)

    @property
    def handling_fee(self) -> Decimal:
        return sum((package.package_type.handling_fee for package in self.packages), ZERO)

    @property
    def is_empty(self) -> bool:
        return not self.packages

    def __len__(self) -> int:
        return len(self.packages)


# ═══════════════════════════════════════════════════════════════════════════════
# Quotes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Quote:
    """
    A priced, time-limited shipping offer from one carrier.

    Lifecycle: created by the quote engine, read by checkout,
    ignored once expired. Never mutated.
    """

    id: QuoteId
    cart_ref: CartId
    store_id: StoreId
    carrier: str
    amount: Decimal
    currency: Currency
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True, slots=True)
class ShippingSummary:
    """What checkout reads back for a chosen quote."""

    quote_id: QuoteId | None  # None for the store fallback rate
    carrier: str
    amount: Decimal
    currency: Currency
    expires_at: datetime | None

    @classmethod
    def of(cls, quote: Quote) -> ShippingSummary:
        return cls(
            quote_id=quote.id,
            carrier=quote.carrier,
            amount=quote.amount,
            currency=quote.currency,
            expires_at=quote.expires_at,
        )


__all__ = (
    "PackedUnit",
    "Package",
    "PackedShipment",
    "Quote",
    "ShippingSummary",
)
