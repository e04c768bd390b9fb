"""
Checkout graph — one node per pipeline stage.

    DestinationNode ─┬─> TaxedLinesNode ────────────────────┬─> SummaryNode
    PricedLinesNode ─┤                                       │
                     └─> PackedShipmentNode ─> ShippingNode ─┘
                                  (ShippingNode also reads DestinationNode)

The destination is resolved against zone reference data once, so tax and
shipping match the same normalized address. Tax and shipping only meet
at the summary, so nodnod runs them concurrently.

A node that gets an Error raises it; the service turns the PricingError
back into a Result.
"""

# nodnod reads __compose__ annotations at decoration time: no postponed annotations here.

from dataclasses import dataclass
from typing import NoReturn

import structlog
from kungfu import Result, Ok, Error
from nodnod import scalar_node as node

from orderflow._errors import ErrorKind, Errors, PricingError
from orderflow._types import QuoteId
from orderflow.context import Address, Customer, StoreSettings
from orderflow.pricing import CartPriceCalculator, PricedLine, ShoppingCart
from orderflow.shipping import (
    PackedShipment,
    ShippingPackageSelector,
    ShippingQuoteEngine,
    ShippingSummary,
)
from orderflow.tax import TaxedLines, TaxResolver
from orderflow.totals import OrderTotalAggregator, OrderTotalSummary


log = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Inputs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PricingRequest:
    cart: ShoppingCart
    store: StoreSettings
    language: str = "en"
    customer: Customer | None = None
    quote_id: QuoteId | None = None


@dataclass(frozen=True, slots=True)
class PricingServices:
    calculator: CartPriceCalculator
    tax: TaxResolver
    packer: ShippingPackageSelector
    quotes: ShippingQuoteEngine
    aggregator: OrderTotalAggregator


def _raise(e: PricingError) -> NoReturn:
    raise e


def _ok[T](result: Result[T, PricingError]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            _raise(e)


# ═══════════════════════════════════════════════════════════════════════════════
# Nodes
# ═══════════════════════════════════════════════════════════════════════════════


@node
class PricedLinesNode:
    def __init__(self, lines: tuple[PricedLine, ...]) -> None:
        self.lines = lines

    @classmethod
    async def __compose__(cls, request: PricingRequest, services: PricingServices) -> "PricedLinesNode":
        return cls(_ok(await services.calculator.price(request.cart, request.store, request.customer)))


@node
class DestinationNode:
    """The cart destination as zone reference data knows it; None when the cart has none."""

    def __init__(self, address: Address | None) -> None:
        self.address = address

    @classmethod
    async def __compose__(cls, request: PricingRequest, services: PricingServices) -> "DestinationNode":
        destination = request.cart.destination
        if destination is None:
            return cls(None)
        return cls(_ok(await services.quotes.resolve_destination(destination)))


@node
class TaxedLinesNode:
    def __init__(self, taxed: TaxedLines) -> None:
        self.taxed = taxed

    @classmethod
    async def __compose__(
        cls,
        priced: PricedLinesNode,
        destination: DestinationNode,
        request: PricingRequest,
        services: PricingServices,
    ) -> "TaxedLinesNode":
        taxed = await services.tax.apply_tax(priced.lines, request.store, destination.address)
        return cls(_ok(taxed))


@node
class PackedShipmentNode:
    """Packs after pricing succeeded so an unpriceable cart never reaches a carrier."""

    def __init__(self, shipment: PackedShipment) -> None:
        self.shipment = shipment

    @classmethod
    async def __compose__(
        cls,
        priced: PricedLinesNode,
        request: PricingRequest,
        services: PricingServices,
    ) -> "PackedShipmentNode":
        items = [line.item for line in priced.lines]
        return cls(_ok(services.packer.pack(items, request.store.package_types)))


@node
class ShippingNode:
    """
    The shipping charge of the order.

    None when nothing ships. A requested quote is read back through its
    summary; otherwise carriers are quoted and the cheapest wins. When
    every carrier fails the store fallback rate applies, if it has one.
    """

    def __init__(self, summary: ShippingSummary | None) -> None:
        self.summary = summary

    @classmethod
    async def __compose__(
        cls,
        packed: PackedShipmentNode,
        resolved: DestinationNode,
        request: PricingRequest,
        services: PricingServices,
    ) -> "ShippingNode":
        if packed.shipment.is_empty:
            return cls(None)

        store = request.store
        if request.quote_id is not None:
            summary = services.quotes.shipping_summary(request.quote_id, store, request.cart.id)
            return cls(_ok(await summary))

        destination = resolved.address
        if destination is None:
            _raise(Errors.validation("cart has no shipping destination", request.cart.id.value))

        quoted = await services.quotes.quote(
            packed.shipment, store.origin, destination, store, request.cart.id,
        )
        match quoted:
            case Ok(quotes):
                return cls(ShippingSummary.of(quotes[0]))
            case Error(e) if e.kind is ErrorKind.CARRIER_UNAVAILABLE and store.fallback_shipping_rate is not None:
                log.warning(
                    "shipping_fallback_rate_used",
                    cart=request.cart.id.value,
                    amount=str(store.fallback_shipping_rate),
                )
                return cls(ShippingSummary(
                    quote_id=None,
                    carrier="fallback",
                    amount=store.currency.round(store.fallback_shipping_rate),
                    currency=store.currency,
                    expires_at=None,
                ))
            case Error(e):
                _raise(e)


@node
class SummaryNode:
    def __init__(self, summary: OrderTotalSummary) -> None:
        self.summary = summary

    @classmethod
    async def __compose__(
        cls,
        taxed: TaxedLinesNode,
        shipping: ShippingNode,
        request: PricingRequest,
        services: PricingServices,
    ) -> "SummaryNode":
        lines = taxed.taxed
        summary = services.aggregator.aggregate(
            subtotal=lines.subtotal,
            discounts=request.cart.discounts,
            tax_amount=lines.tax_amount,
            shipping=shipping.summary,
            tax_on_shipping=lines.tax_on_shipping,
            store=request.store,
            shipping_tax_rules=lines.rules,
            language=request.language,
        )
        return cls(_ok(summary))


__all__ = (
    "PricingRequest",
    "PricingServices",
    "PricedLinesNode",
    "DestinationNode",
    "TaxedLinesNode",
    "PackedShipmentNode",
    "ShippingNode",
    "SummaryNode",
)
