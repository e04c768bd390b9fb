"""
ShippingPackageSelector — first-fit-decreasing bin packing.

    1. Expand lines into physical units, heaviest first
       (ties: line id, then unit index).
    2. Put each unit into the first open package, in creation order,
       with room left for its weight and volume and no shorter axis.
    3. Otherwise open the smallest package type that holds the unit
       alone: smallest max weight, then smallest volume, then code.
       None holds it → NO_APPLICABLE_PACKAGE.

Greedy, not optimal. Carrier rates are tiered per package rather than
continuous, so near-optimal packing is enough.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from kungfu import Result, Ok, Error

from orderflow._errors import Errors, PricingError
from orderflow._money import ZERO
from orderflow.context import PackageType
from orderflow.pricing import CartItem
from orderflow.shipping._types import Package, PackedShipment, PackedUnit


@dataclass(slots=True)
class _OpenPackage:
    package_type: PackageType
    units: list[PackedUnit] = field(default_factory=list)
    weight: Decimal = ZERO
    volume: Decimal = ZERO

    def accepts(self, unit: PackedUnit) -> bool:
        limits = self.package_type
        return (
            self.weight + unit.weight <= limits.max_weight
            and unit.dimensions.fits_within(limits.dimensions)
            and self.volume + unit.dimensions.volume <= limits.volume
        )

    def add(self, unit: PackedUnit) -> None:
        self.units.append(unit)
        self.weight += unit.weight
        self.volume += unit.dimensions.volume

    def close(self) -> Package:
        return Package(self.package_type, tuple(self.units))


def _units(items: Sequence[CartItem]) -> Result[list[PackedUnit], PricingError]:
    units: list[PackedUnit] = []
    for item in items:
        if item.quantity <= 0:
            return Error(Errors.invalid_quantity(item.sku.value, item.quantity))
        if item.weight < 0 or not item.dimensions.is_valid:
            return Error(Errors.validation("item weight or dimensions are invalid", item.sku.value))
        units.extend(
            PackedUnit(item.line_id, item.sku, index, item.weight, item.dimensions)
            for index in range(item.quantity)
        )
    return Ok(sorted(units, key=lambda u: (-u.weight, u.line_id, u.unit_index)))


def _check_types(package_types: Sequence[PackageType]) -> Result[None, PricingError]:
    for package_type in package_types:
        if package_type.max_weight <= 0 or not package_type.dimensions.is_valid:
            return Error(Errors.validation("package type limits must be positive", package_type.code))
    return Ok(None)


class ShippingPackageSelector:
    """Packs cart items into the package types a store has configured."""

    def pack(
        self,
        items: Sequence[CartItem],
        package_types: Sequence[PackageType],
    ) -> Result[PackedShipment, PricingError]:
        match _check_types(package_types):
            case Error(e):
                return Error(e)

        match _units(items):
            case Ok(units):
                pass
            case Error(e):
                return Error(e)

        by_size = sorted(package_types, key=lambda t: (t.max_weight, t.volume, t.code))
        open_packages: list[_OpenPackage] = []

        for unit in units:
            target = next((p for p in open_packages if p.accepts(unit)), None)
            if target is None:
                package_type = next((t for t in by_size if t.holds(unit.weight, unit.dimensions)), None)
                if package_type is None:
                    return Error(Errors.no_applicable_package(unit.sku.value, unit.weight))
                target = _OpenPackage(package_type)
                open_packages.append(target)
            target.add(unit)

        return Ok(PackedShipment(tuple(p.close() for p in open_packages)))


__all__ = ("ShippingPackageSelector",)
