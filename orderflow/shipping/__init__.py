"""
Shipping — package selection, carrier quotes, quote storage.

    from orderflow import shipping as SH

    shipment = SH.ShippingPackageSelector().pack(cart.items, store.package_types).unwrap()
    quotes = await SH.ShippingQuoteEngine(registry, SH.MemoryQuoteStore(), zones).quote(
        shipment, store.origin, destination, store, cart.id,
    )
"""

from orderflow.shipping._types import (
    PackedUnit,
    Package,
    PackedShipment,
    Quote,
    ShippingSummary,
)
from orderflow.shipping._packing import ShippingPackageSelector
from orderflow.shipping._carriers import (
    CarrierModule,
    FlatRateCarrier,
    WeightRateCarrier,
    CarrierRegistry,
)
from orderflow.shipping._store import (
    QuoteStore,
    MemoryQuoteStore,
    SQLAlchemyQuoteStore,
)
from orderflow.shipping._quotes import QuotePolicy, ShippingQuoteEngine

__all__ = (
    # Types
    "PackedUnit",
    "Package",
    "PackedShipment",
    "Quote",
    "ShippingSummary",
    # Packing
    "ShippingPackageSelector",
    # Carriers
    "CarrierModule",
    "FlatRateCarrier",
    "WeightRateCarrier",
    "CarrierRegistry",
    # Stores
    "QuoteStore",
    "MemoryQuoteStore",
    "SQLAlchemyQuoteStore",
    # Engine
    "QuotePolicy",
    "ShippingQuoteEngine",
)
