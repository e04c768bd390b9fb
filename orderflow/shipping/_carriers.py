"""
Carrier modules — pluggable rate backends.

A carrier is anything with a `code` and an async `rate(...)` that
returns the price of shipping a packed shipment. Real integrations
(HTTP APIs) implement the same protocol; the quote engine bounds every
call with a timeout and treats exceptions as failures.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Protocol

from kungfu import Result, Ok, Error

from orderflow._errors import Errors, PricingError
from orderflow._money import ZERO
from orderflow.context import Address
from orderflow.shipping._types import PackedShipment


class CarrierModule(Protocol):
    @property
    def code(self) -> str: ...

    async def rate(
        self,
        shipment: PackedShipment,
        origin: Address,
        destination: Address,
    ) -> Result[Decimal, PricingError]:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Built-in carriers
# ═══════════════════════════════════════════════════════════════════════════════


class FlatRateCarrier:
    """Same price for every package. countries=None serves everywhere."""

    def __init__(
        self,
        code: str,
        per_package: Decimal,
        countries: Iterable[str] | None = None,
    ) -> None:
        self._code = code
        self._per_package = per_package
        self._countries = frozenset(countries) if countries is not None else None

    @property
    def code(self) -> str:
        return self._code

    async def rate(
        self,
        shipment: PackedShipment,
        origin: Address,
        destination: Address,
    ) -> Result[Decimal, PricingError]:
        if self._countries is not None and destination.country not in self._countries:
            return Error(Errors.carrier_failed(self._code, f"does not ship to {destination.country}"))
        return Ok(self._per_package * len(shipment))


class WeightRateCarrier:
    """
    base + per_kg × weight, per package.

    domestic_only rejects destinations outside the origin country.
    free_over_weight ships for free once the whole shipment weighs at
    least that many kg.
    """

    def __init__(
        self,
        code: str,
        base: Decimal,
        per_kg: Decimal,
        domestic_only: bool = False,
        free_over_weight: Decimal | None = None,
    ) -> None:
        self._code = code
        self._base = base
        self._per_kg = per_kg
        self._domestic_only = domestic_only
        self._free_over_weight = free_over_weight

    @property
    def code(self) -> str:
        return self._code

    async def rate(
        self,
        shipment: PackedShipment,
        origin: Address,
        destination: Address,
    ) -> Result[Decimal, PricingError]:
        if self._domestic_only and destination.country != origin.country:
            return Error(Errors.carrier_failed(self._code, "domestic shipping only"))
        if self._free_over_weight is not None and shipment.weight >= self._free_over_weight:
            return Ok(ZERO)
        return Ok(sum(
            (self._base + self._per_kg * package.weight for package in shipment.packages),
            ZERO,
        ))


# ═══════════════════════════════════════════════════════════════════════════════
# Registry
# ═══════════════════════════════════════════════════════════════════════════════


class CarrierRegistry:
    """Installed carrier modules by code; stores enable a subset."""

    def __init__(self, carriers: Iterable[CarrierModule] = ()) -> None:
        self._carriers: dict[str, CarrierModule] = {}
        for carrier in carriers:
            self.register(carrier)

    def register(self, carrier: CarrierModule) -> None:
        self._carriers[carrier.code] = carrier

    def get(self, code: str) -> CarrierModule | None:
        return self._carriers.get(code)

    @property
    def modules(self) -> Mapping[str, CarrierModule]:
        return dict(self._carriers)


__all__ = (
    "CarrierModule",
    "FlatRateCarrier",
    "WeightRateCarrier",
    "CarrierRegistry",
)
