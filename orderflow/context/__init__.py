"""
Context — store configuration and reference data.

    from orderflow import context as X

    store = X.StoreSettings(id=StoreId("main"), currency=USD, origin=X.Address("US", "CA"))
"""

from orderflow.context._types import (
    Dimensions,
    Address,
    PackageType,
    StoreSettings,
    Customer,
)
from orderflow.context._zones import ZoneResolver, MemoryZones

__all__ = (
    "Dimensions",
    "Address",
    "PackageType",
    "StoreSettings",
    "Customer",
    "ZoneResolver",
    "MemoryZones",
)
