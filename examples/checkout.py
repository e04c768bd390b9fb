"""
Checkout Example — price a cart, pick a quote, take the payment.

Run: uv run python examples/checkout.py
"""

import asyncio
from decimal import Decimal

from kungfu import Ok, Error

from orderflow import USD, CartId, OrderId, Sku, StoreId
from orderflow._logging import configure_logging
from orderflow.checkout import build_service
from orderflow.config import Settings
from orderflow.context import Address, Dimensions, MemoryZones, PackageType, StoreSettings
from orderflow.db import create_database
from orderflow.ledger import OrderRef
from orderflow.pricing import CartItem, Discount, MemoryPriceSource, PriceKind, PriceRecord, ShoppingCart
from orderflow.shipping import CarrierRegistry, FlatRateCarrier, WeightRateCarrier
from orderflow.tax import MemoryTaxRules, TaxRule


D = Decimal
STORE = StoreId("demo")


def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


class FlakyExpressCarrier:
    """Always down: shows partial carrier failure."""

    code = "express"

    async def rate(self, shipment, origin, destination):
        raise ConnectionError("express API unavailable")


def store_settings() -> StoreSettings:
    return StoreSettings(
        id=STORE,
        currency=USD,
        origin=Address("US", "CA", "94105", "San Francisco"),
        tax_on_shipping=True,
        package_types=(
            PackageType("small", D("5"), Dimensions(D("30"), D("20"), D("15"))),
            PackageType("large", D("20"), Dimensions(D("60"), D("40"), D("40")), handling_fee=D("1.50")),
        ),
        carriers=("ground", "post", "express"),
        fallback_shipping_rate=D("12.00"),
    )


def shopping_cart() -> ShoppingCart:
    return ShoppingCart(
        id=CartId("demo-cart"),
        store_id=STORE,
        items=(
            CartItem("l1", Sku("kettle"), 1, D("1.8"), Dimensions(D("25"), D("18"), D("25"))),
            CartItem("l2", Sku("mug"), 4, D("0.4"), Dimensions(D("10"), D("10"), D("12"))),
        ),
        discounts=(Discount("WELCOME", "Welcome discount", D("5.00")),),
        destination=Address("US", "NY", "10001", "New York"),
    )


async def main() -> None:
    settings = Settings(_env_file=None, log_json=False, log_level="WARNING")
    configure_logging(settings)
    session_factory, engine = await create_database(echo=settings.database_echo)

    service = build_service(
        settings,
        prices=MemoryPriceSource({STORE: [
            PriceRecord(Sku("kettle"), D("39.90")),
            PriceRecord(Sku("mug"), D("8.50")),
            PriceRecord(Sku("mug"), D("6.99"), PriceKind.PROMOTIONAL),
        ]}),
        tax_rules=MemoryTaxRules({STORE: [
            TaxRule("ny-state", "NY State", D("0.04"), country="US", zone="NY"),
            TaxRule("nyc", "NYC", D("0.045"), country="US", zone="NY", priority=1),
        ]}),
        zones=MemoryZones({"US": frozenset({"CA", "NY"})}),
        carriers=CarrierRegistry([
            FlatRateCarrier("ground", D("7.95")),
            WeightRateCarrier("post", D("4.00"), D("1.20"), domestic_only=True),
            FlakyExpressCarrier(),
        ]),
        session_factory=session_factory,
    )
    store, cart = store_settings(), shopping_cart()

    try:
        banner("1. Shipping quotes (express is down)")
        match await service.request_shipping_quote(cart, store):
            case Ok(quotes):
                for quote in quotes:
                    print(f"   {quote.carrier:<8} {store.currency.format(quote.amount)}  ({quote.id.value})")
            case Error(e):
                print(f"   {e}")
                return

        banner("2. Totals with the slower, pricier quote")
        chosen = quotes[-1]
        match await service.calculate(cart, store, quote_id=chosen.id):
            case Ok(summary):
                for total in summary.totals:
                    print(f"   {total.title:<20} {total.text:>14}")
                print(f"   {'Total':<20} {summary.grand_total_text:>14}")
            case Error(e):
                print(f"   {e}")
                return

        banner("3. Payment")
        order = OrderRef(OrderId("demo-order"), STORE, USD)
        await service.ledger.authorize(order, summary.grand_total)

        for label, outcome in [
            ("capture all", await service.capture(order, summary.grand_total)),
            ("capture again", await service.capture(order, D("1.00"))),
            ("refund 10.00", await service.refund(order, D("10.00"))),
        ]:
            match outcome:
                case Ok(tx):
                    print(f"   {label:<14} ok   {tx.type.value} {tx.amount}")
                case Error(e):
                    print(f"   {label:<14} {e.kind.name}: {e.message}")

    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
