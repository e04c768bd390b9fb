"""
CheckoutService — the caller-facing surface.

    service = build_service(
        settings,
        prices=MemoryPriceSource({...}),
        tax_rules=MemoryTaxRules({...}),
        zones=MemoryZones({"US": frozenset({"CA", "NY"})}),
        carriers=CarrierRegistry([FlatRateCarrier("flat", Decimal("5.00"))]),
    )

    match await service.calculate(cart, store):
        case Ok(summary): print(summary.grand_total_text)
        case Error(e): print(e.kind, e.message)

Nothing raises across these methods: failures come back as Error(PricingError).
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from kungfu import Result, Ok, Error
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow._clock import Clock, utcnow
from orderflow._errors import Errors, PricingError
from orderflow._types import QuoteId
from orderflow.checkout._graph import Pipeline
from orderflow.checkout._nodes import PricingRequest, PricingServices, SummaryNode
from orderflow.config import Settings, get_settings
from orderflow.context import Customer, StoreSettings, ZoneResolver
from orderflow.ledger import (
    MemoryTransactionStore,
    OrderRef,
    SQLAlchemyTransactionStore,
    Transaction,
    TransactionLedger,
    TransactionStore,
)
from orderflow.pricing import CartPriceCalculator, PriceSource, ShoppingCart
from orderflow.shipping import (
    CarrierRegistry,
    MemoryQuoteStore,
    Quote,
    QuotePolicy,
    QuoteStore,
    SQLAlchemyQuoteStore,
    ShippingPackageSelector,
    ShippingQuoteEngine,
    ShippingSummary,
)
from orderflow.tax import TaxResolver, TaxRuleSource
from orderflow.totals import OrderTotalAggregator, OrderTotalSummary, TitleSource


log = structlog.get_logger(__name__)


class CheckoutService:
    def __init__(
        self,
        calculator: CartPriceCalculator,
        tax: TaxResolver,
        packer: ShippingPackageSelector,
        quotes: ShippingQuoteEngine,
        aggregator: OrderTotalAggregator,
        ledger: TransactionLedger,
    ) -> None:
        self._services = PricingServices(
            calculator=calculator,
            tax=tax,
            packer=packer,
            quotes=quotes,
            aggregator=aggregator,
        )
        self._ledger = ledger
        self._pipeline = Pipeline.compile(SummaryNode)

    # ───────────────────────────────────────────────────────────────────────────
    # Pricing
    # ───────────────────────────────────────────────────────────────────────────

    async def calculate(
        self,
        cart: ShoppingCart,
        store: StoreSettings,
        language: str = "en",
        customer: Customer | None = None,
        quote_id: QuoteId | None = None,
    ) -> Result[OrderTotalSummary, PricingError]:
        """
        Price the cart end to end.

        Uses the quote behind quote_id when given, otherwise the cheapest
        fresh quote. Carts without physical units carry no shipping.
        """
        request = PricingRequest(cart, store, language, customer, quote_id)
        try:
            result = await self._pipeline(request, self._services)
        except PricingError as e:
            log.info("cart_rejected", cart=cart.id.value, kind=e.kind.name, reason=e.message)
            return Error(e)

        log.debug(
            "pipeline_completed",
            cart=cart.id.value,
            grand_total=str(result.summary.grand_total),
            lines=len(result.summary.totals),
        )
        return Ok(result.summary)

    async def request_shipping_quote(
        self,
        cart: ShoppingCart,
        store: StoreSettings,
    ) -> Result[tuple[Quote, ...], PricingError]:
        """Pack the cart and collect fresh quotes, cheapest first."""
        if cart.store_id != store.id:
            return Error(Errors.validation("cart belongs to another store", cart.id.value))
        if cart.destination is None:
            return Error(Errors.validation("cart has no shipping destination", cart.id.value))

        services = self._services
        match services.packer.pack(cart.items, store.package_types):
            case Ok(shipment) if shipment.is_empty:
                return Ok(())
            case Ok(shipment):
                return await services.quotes.quote(shipment, store.origin, cart.destination, store, cart.id)
            case Error(e):
                return Error(e)

    async def get_shipping_summary(
        self,
        quote_id: QuoteId,
        store: StoreSettings,
    ) -> Result[ShippingSummary, PricingError]:
        return await self._services.quotes.shipping_summary(quote_id, store)

    # ───────────────────────────────────────────────────────────────────────────
    # Ledger
    # ───────────────────────────────────────────────────────────────────────────

    async def get_capturable_transaction(self, order: OrderRef) -> Result[Transaction | None, PricingError]:
        return await self._ledger.get_capturable_transaction(order)

    async def capture(
        self,
        order: OrderRef,
        amount: Decimal,
        idempotency_key: str | None = None,
    ) -> Result[Transaction, PricingError]:
        return await self._ledger.capture(order, amount, idempotency_key)

    async def get_refundable_transaction(self, order: OrderRef) -> Result[Transaction | None, PricingError]:
        return await self._ledger.get_refundable_transaction(order)

    async def refund(
        self,
        order: OrderRef,
        amount: Decimal,
        idempotency_key: str | None = None,
    ) -> Result[Transaction, PricingError]:
        return await self._ledger.refund(order, amount, idempotency_key)

    async def last_transaction(
        self,
        order: OrderRef,
        store: StoreSettings,
    ) -> Result[Transaction | None, PricingError]:
        return await self._ledger.last_transaction(order, store)

    @property
    def ledger(self) -> TransactionLedger:
        """For payment processing to record authorizations."""
        return self._ledger


# ═══════════════════════════════════════════════════════════════════════════════
# Wiring
# ═══════════════════════════════════════════════════════════════════════════════


def build_service(
    settings: Settings | None = None,
    *,
    prices: PriceSource,
    tax_rules: TaxRuleSource,
    zones: ZoneResolver,
    carriers: CarrierRegistry,
    titles: TitleSource | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    clock: Clock = utcnow,
) -> CheckoutService:
    """
    Wire a CheckoutService from settings and collaborators.

    With a session_factory quotes and transactions go to the database,
    without one they stay in memory.
    """
    settings = settings if settings is not None else get_settings()

    if session_factory is not None:
        quote_store: QuoteStore = SQLAlchemyQuoteStore(session_factory)
        tx_store: TransactionStore = SQLAlchemyTransactionStore(session_factory)
    else:
        quote_store = MemoryQuoteStore()
        tx_store = MemoryTransactionStore()

    return CheckoutService(
        calculator=CartPriceCalculator(prices, clock=clock),
        tax=TaxResolver(tax_rules, mandatory=settings.tax_mandatory),
        packer=ShippingPackageSelector(),
        quotes=ShippingQuoteEngine(
            carriers,
            quote_store,
            zones,
            policy=QuotePolicy.from_settings(settings),
            clock=clock,
        ),
        aggregator=OrderTotalAggregator(titles),
        ledger=TransactionLedger(tx_store, clock=clock, retry_times=settings.ledger_retry_times),
    )


__all__ = ("CheckoutService", "build_service")
