"""
Zones — country / zone reference data for destination validation.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from kungfu import Result, Ok, Error

from orderflow._errors import Errors, PricingError
from orderflow.context._types import Address


class ZoneResolver(Protocol):
    """Validates and normalizes a destination against reference data."""

    async def resolve(self, address: Address) -> Result[Address, PricingError]:
        ...


class MemoryZones:
    """
    Reference data held in memory.

    countries maps a country code to its zone codes; an empty set means
    the country has no zones and any zone value is dropped.
    """

    def __init__(self, countries: Mapping[str, frozenset[str]]) -> None:
        self._countries = {code.upper(): frozenset(z.upper() for z in zones) for code, zones in countries.items()}

    async def resolve(self, address: Address) -> Result[Address, PricingError]:
        country = address.country.strip().upper()
        zones = self._countries.get(country)
        if zones is None:
            return Error(Errors.validation(f"unknown destination country {address.country!r}", country))

        if not zones:
            return Ok(Address(country, None, address.postal_code, address.city))

        zone = (address.zone or "").strip().upper()
        if zone not in zones:
            return Error(Errors.validation(f"unknown zone {address.zone!r} for {country}", country))
        return Ok(Address(country, zone, address.postal_code, address.city))


__all__ = ("ZoneResolver", "MemoryZones")
