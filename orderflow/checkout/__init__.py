"""
Checkout — the pricing graph and the caller-facing service.

    from orderflow import checkout as CO

    service = CO.build_service(settings, prices=..., tax_rules=..., zones=..., carriers=...)
    summary = (await service.calculate(cart, store)).unwrap()
"""

from orderflow.checkout._graph import Pipeline
from orderflow.checkout._nodes import (
    PricingRequest,
    PricingServices,
    PricedLinesNode,
    DestinationNode,
    TaxedLinesNode,
    PackedShipmentNode,
    ShippingNode,
    SummaryNode,
)
from orderflow.checkout._service import CheckoutService, build_service

__all__ = (
    # Graph
    "Pipeline",
    # Nodes
    "PricingRequest",
    "PricingServices",
    "PricedLinesNode",
    "DestinationNode",
    "TaxedLinesNode",
    "PackedShipmentNode",
    "ShippingNode",
    "SummaryNode",
    # Service
    "CheckoutService",
    "build_service",
)
