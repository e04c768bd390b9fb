"""End-to-end tests for CheckoutService."""

from datetime import timedelta
from decimal import Decimal

import pytest

from orderflow import ErrorKind, QuoteId
from orderflow.checkout import CheckoutService, build_service
from orderflow.context import Address
from orderflow.pricing import Discount
from orderflow.shipping import CarrierRegistry, FlatRateCarrier
from orderflow.totals import TotalCode

from factories import OTHER, cart, item, order, store


D = Decimal


class DownCarrier:
    code = "down"

    async def rate(self, shipment, origin, destination):
        raise TimeoutError("carrier gateway timeout")


class BrokenZones:
    async def resolve(self, address):
        raise ConnectionError("reference data unavailable")


@pytest.fixture
def service(settings, prices, tax_rules, zones, carriers, clock) -> CheckoutService:
    return build_service(
        settings,
        prices=prices,
        tax_rules=tax_rules,
        zones=zones,
        carriers=carriers,
        clock=clock,
    )


class TestCalculate:
    async def test_full_pipeline(self, service):
        summary = (await service.calculate(cart(item("widget", 3)), store())).unwrap()

        assert [(t.code, t.value) for t in summary.totals] == [
            (TotalCode.SUBTOTAL, D("30.00")),
            (TotalCode.TAX, D("3.00")),
            (TotalCode.SHIPPING, D("5.00")),
        ]
        assert summary.grand_total == D("38.00")
        assert summary.grand_total == sum(t.value for t in summary.totals)

    async def test_cheapest_quote_is_used(self, service):
        # weight carrier: 3.00 + 1.00 per kg beats the 5.00 flat rate for one light unit
        summary = (await service.calculate(cart(item("widget")), store())).unwrap()
        assert summary.value_of(TotalCode.SHIPPING) == D("4.00")

    async def test_discount_and_tax_on_shipping(self, service):
        shopping = cart(item("widget", 3), discounts=(Discount("SAVE5", "Save 5", D("5.00")),))

        summary = (await service.calculate(shopping, store(tax_on_shipping=True))).unwrap()

        assert summary.value_of(TotalCode.DISCOUNT) == D("-5.00")
        assert summary.value_of(TotalCode.SHIPPING_TAX) == D("0.50")
        assert summary.grand_total == D("33.50")

    async def test_same_cart_same_summary(self, service):
        shopping = cart(item("widget", 2), item("gadget"))

        first = (await service.calculate(shopping, store())).unwrap()
        second = (await service.calculate(shopping, store())).unwrap()

        assert first == second

    async def test_chosen_quote(self, service):
        quotes = (await service.request_shipping_quote(cart(item("widget")), store())).unwrap()
        flat = next(q for q in quotes if q.carrier == "flat")

        summary = (await service.calculate(cart(item("widget")), store(), quote_id=flat.id)).unwrap()

        assert summary.value_of(TotalCode.SHIPPING) == D("5.00")

    async def test_chosen_quote_expired(self, service, clock):
        quotes = (await service.request_shipping_quote(cart(item("widget")), store())).unwrap()
        clock.advance(timedelta(minutes=31))

        error = (await service.calculate(cart(item("widget")), store(), quote_id=quotes[0].id)).unwrap_err()

        assert error.kind is ErrorKind.EXPIRED

    async def test_unknown_quote(self, service):
        error = (await service.calculate(cart(item()), store(), quote_id=QuoteId("q_nope"))).unwrap_err()
        assert error.kind is ErrorKind.NOT_FOUND

    async def test_quote_of_another_cart(self, service):
        quotes = (await service.request_shipping_quote(cart(item("widget")), store())).unwrap()
        other = cart(item("widget", 10), cart_id="cart-2")

        error = (await service.calculate(other, store(), quote_id=quotes[0].id)).unwrap_err()

        assert error.kind is ErrorKind.NOT_FOUND

    async def test_destination_is_normalized_before_tax(self, service):
        shopping = cart(item("widget", 3), destination=Address("us", "ny"))

        summary = (await service.calculate(shopping, store())).unwrap()

        assert summary.value_of(TotalCode.TAX) == D("3.00")
        assert summary.value_of(TotalCode.SHIPPING) == D("5.00")

    async def test_nothing_to_ship(self, service):
        summary = (await service.calculate(cart(), store())).unwrap()

        assert summary.of(TotalCode.SHIPPING) == ()
        assert summary.grand_total == 0

    async def test_localized_titles(self, settings, prices, tax_rules, zones, carriers, clock):
        from orderflow.totals import DefaultTitles

        service = build_service(
            settings,
            prices=prices,
            tax_rules=tax_rules,
            zones=zones,
            carriers=carriers,
            titles=DefaultTitles({"fr": {TotalCode.SUBTOTAL: "Sous-total"}}),
            clock=clock,
        )

        summary = (await service.calculate(cart(item()), store(), language="fr")).unwrap()

        assert summary.totals[0].title == "Sous-total"


class TestCalculateErrors:
    async def test_missing_price(self, service):
        error = (await service.calculate(cart(item("unobtainium")), store())).unwrap_err()

        assert error.kind is ErrorKind.PRICE_UNAVAILABLE
        assert error.ref == "unobtainium"

    async def test_invalid_quantity(self, service):
        error = (await service.calculate(cart(item("widget", -1)), store())).unwrap_err()
        assert error.kind is ErrorKind.INVALID_QUANTITY

    async def test_item_too_heavy_to_ship(self, service):
        error = (await service.calculate(cart(item("widget", weight="45")), store())).unwrap_err()
        assert error.kind is ErrorKind.NO_APPLICABLE_PACKAGE

    async def test_no_destination(self, service):
        error = (await service.calculate(cart(item(), destination=None), store())).unwrap_err()
        assert error.kind is ErrorKind.VALIDATION

    async def test_unknown_destination_with_chosen_quote(self, service):
        quotes = (await service.request_shipping_quote(cart(item()), store())).unwrap()
        moved = cart(item(), destination=Address("US", "TX"))

        error = (await service.calculate(moved, store(), quote_id=quotes[0].id)).unwrap_err()

        assert error.kind is ErrorKind.VALIDATION

    async def test_zone_lookup_failure(self, settings, prices, tax_rules, carriers, clock):
        service = build_service(
            settings, prices=prices, tax_rules=tax_rules, zones=BrokenZones(),
            carriers=carriers, clock=clock,
        )

        calculated = (await service.calculate(cart(item()), store())).unwrap_err()
        quoted = (await service.request_shipping_quote(cart(item()), store())).unwrap_err()

        assert calculated.kind is ErrorKind.STORE
        assert quoted.kind is ErrorKind.STORE

    async def test_mandatory_tax_missing(self, service):
        shopping = cart(item(), destination=Address("GB"))
        error = (await service.calculate(shopping, store(tax_mandatory=True))).unwrap_err()

        assert error.kind is ErrorKind.TAX_CONFIGURATION_MISSING

    async def test_carriers_down_without_fallback(self, settings, prices, tax_rules, zones, clock):
        service = build_service(
            settings, prices=prices, tax_rules=tax_rules, zones=zones,
            carriers=CarrierRegistry([DownCarrier()]), clock=clock,
        )

        error = (await service.calculate(cart(item()), store(carriers=("down",)))).unwrap_err()

        assert error.kind is ErrorKind.CARRIER_UNAVAILABLE

    async def test_carriers_down_with_fallback(self, settings, prices, tax_rules, zones, clock):
        service = build_service(
            settings, prices=prices, tax_rules=tax_rules, zones=zones,
            carriers=CarrierRegistry([DownCarrier()]), clock=clock,
        )
        fallback_store = store(carriers=("down",), fallback_shipping_rate=D("9.99"))

        summary = (await service.calculate(cart(item()), fallback_store)).unwrap()

        assert summary.value_of(TotalCode.SHIPPING) == D("9.99")


class TestShippingQuotes:
    async def test_request_and_read_back(self, service):
        quotes = (await service.request_shipping_quote(cart(item("widget")), store())).unwrap()

        assert [q.carrier for q in quotes] == ["weight", "flat"]
        summary = (await service.get_shipping_summary(quotes[0].id, store())).unwrap()
        assert (summary.carrier, summary.amount) == ("weight", D("4.00"))

    async def test_nothing_to_ship(self, service):
        assert (await service.request_shipping_quote(cart(), store())).unwrap() == ()

    async def test_cart_of_another_store(self, service):
        error = (await service.request_shipping_quote(cart(item(), store_id=OTHER), store())).unwrap_err()
        assert error.kind is ErrorKind.VALIDATION

    async def test_no_destination(self, service):
        error = (await service.request_shipping_quote(cart(item(), destination=None), store())).unwrap_err()
        assert error.kind is ErrorKind.VALIDATION


class TestPayments:
    async def test_capture_and_refund(self, service):
        await service.ledger.authorize(order(), D("38.00"))

        assert (await service.get_capturable_transaction(order())).unwrap() is not None
        capture = (await service.capture(order(), D("38.00"))).unwrap()
        assert (await service.get_refundable_transaction(order())).unwrap() == capture

        refund = (await service.refund(order(), D("8.00"))).unwrap()
        assert (await service.last_transaction(order(), store())).unwrap() == refund

        error = (await service.capture(order(), D("0.01"))).unwrap_err()
        assert error.kind is ErrorKind.TRANSACTION_STATE_CONFLICT

    async def test_last_transaction_of_another_store(self, service):
        await service.ledger.authorize(order(), D("10.00"))

        error = (await service.last_transaction(order(), store(id=OTHER))).unwrap_err()

        assert error.kind is ErrorKind.VALIDATION


class TestDatabaseBackedService:
    async def test_quotes_and_ledger_persist(
        self, settings, prices, tax_rules, zones, carriers, clock, session_factory,
    ):
        def make() -> CheckoutService:
            return build_service(
                settings, prices=prices, tax_rules=tax_rules, zones=zones,
                carriers=carriers, session_factory=session_factory, clock=clock,
            )

        quotes = (await make().request_shipping_quote(cart(item()), store())).unwrap()
        summary = (await make().calculate(cart(item()), store(), quote_id=quotes[-1].id)).unwrap()
        assert summary.value_of(TotalCode.SHIPPING) == quotes[-1].amount

        await make().ledger.authorize(order(), summary.grand_total)
        assert (await make().capture(order(), summary.grand_total)).unwrap()
        assert (await make().get_capturable_transaction(order())).unwrap() is None
