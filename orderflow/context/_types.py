"""
Store context — read-only configuration owned by external collaborators.

Store settings are loaded elsewhere and handed to the pipeline as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from orderflow._money import Currency, ZERO
from orderflow._types import CustomerId, StoreId


# ═══════════════════════════════════════════════════════════════════════════════
# Geometry
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Dimensions:
    """Length × width × height in centimetres."""

    length: Decimal
    width: Decimal
    height: Decimal

    @property
    def axes(self) -> tuple[Decimal, Decimal, Decimal]:
        return (self.length, self.width, self.height)

    @property
    def volume(self) -> Decimal:
        return self.length * self.width * self.height

    @property
    def is_valid(self) -> bool:
        return all(axis > 0 for axis in self.axes)

    def fits_within(self, other: Dimensions) -> bool:
        """Axis-aligned fit, no rotation."""
        return all(mine <= theirs for mine, theirs in zip(self.axes, other.axes))


@dataclass(frozen=True, slots=True)
class Address:
    country: str  # ISO 3166-1 alpha-2
    zone: str | None = None  # state / province code
    postal_code: str = ""
    city: str = ""

    @property
    def jurisdiction(self) -> str:
        return f"{self.country}-{self.zone}" if self.zone else self.country


# ═══════════════════════════════════════════════════════════════════════════════
# Shipping reference data
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PackageType:
    code: str
    max_weight: Decimal  # kg
    dimensions: Dimensions
    handling_fee: Decimal = ZERO

    @property
    def volume(self) -> Decimal:
        return self.dimensions.volume

    def holds(self, weight: Decimal, dimensions: Dimensions) -> bool:
        """Whether a single unit fits into an empty package of this type."""
        return (
            weight <= self.max_weight
            and dimensions.fits_within(self.dimensions)
            and dimensions.volume <= self.volume
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Store / Customer
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StoreSettings:
    """
    Store configuration consumed by the pipeline.

    tax_mandatory: None defers to Settings.tax_mandatory.
    carriers: codes of enabled carrier modules.
    fallback_shipping_rate: flat rate used when every carrier fails.
    total_order: display order of total codes, None for the default.
    """

    id: StoreId
    currency: Currency
    origin: Address
    tax_on_shipping: bool = False
    tax_mandatory: bool | None = None
    package_types: tuple[PackageType, ...] = ()
    carriers: tuple[str, ...] = ()
    fallback_shipping_rate: Decimal | None = None
    total_order: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class Customer:
    id: CustomerId
    group: str | None = None


__all__ = (
    "Dimensions",
    "Address",
    "PackageType",
    "StoreSettings",
    "Customer",
)
