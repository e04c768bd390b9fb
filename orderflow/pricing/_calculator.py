"""
CartPriceCalculator — resolve a unit price per cart line.

Price selection for one sku at instant `at`:
    1. Keep records active at `at` (CUSTOMER records only for that customer).
    2. Any active PROMOTIONAL / CUSTOMER price wins over DEFAULT;
       the lowest one is taken, ties go to the customer-specific price.
    3. Otherwise the most recent active DEFAULT price.

Unit price and line subtotal are rounded half-up to the minor unit.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import structlog
from kungfu import Result, Ok, Error, LazyCoroResult
from combinators import lift as L, traverse_par

from orderflow._clock import Clock, as_utc, utcnow
from orderflow._errors import Errors, PricingError, StoreError
from orderflow._types import CustomerId
from orderflow.context import Customer, StoreSettings
from orderflow.pricing._source import PriceSource
from orderflow.pricing._types import CartItem, PriceKind, PriceRecord, PricedLine, ShoppingCart


log = structlog.get_logger(__name__)


def resolve_price(
    records: Sequence[PriceRecord],
    at: datetime,
    customer: CustomerId | None,
) -> PriceRecord | None:
    active = [r for r in records if r.is_active(at, customer)]

    special = [r for r in active if r.kind is not PriceKind.DEFAULT]
    if special:
        return min(special, key=lambda r: (r.amount, r.kind is not PriceKind.CUSTOMER))

    defaults = [r for r in active if r.kind is PriceKind.DEFAULT]
    if not defaults:
        return None
    return max(defaults, key=lambda r: (r.valid_from is not None, r.valid_from and as_utc(r.valid_from)))


class CartPriceCalculator:
    """
    Prices every line of a cart against the store price table.

    Pure over its inputs: the same cart, store, customer and instant
    always produce the same lines.
    """

    def __init__(self, prices: PriceSource, clock: Clock = utcnow) -> None:
        self._prices = prices
        self._clock = clock

    def price(
        self,
        cart: ShoppingCart,
        store: StoreSettings,
        customer: Customer | None = None,
        at: datetime | None = None,
    ) -> LazyCoroResult[tuple[PricedLine, ...], PricingError]:
        async def run() -> Result[tuple[PricedLine, ...], PricingError]:
            if cart.store_id != store.id:
                return Error(Errors.validation("cart belongs to another store", cart.id.value))

            for item in cart.items:
                if item.quantity <= 0:
                    return Error(Errors.invalid_quantity(item.sku.value, item.quantity))

            moment = at if at is not None else self._clock()
            customer_id = customer.id if customer is not None else None

            lines = await traverse_par(
                list(cart.items),
                lambda item: self._line(item, store, customer_id, moment),
            )
            match lines:
                case Ok(priced):
                    log.debug("cart_priced", cart=cart.id.value, lines=len(priced))
                    return Ok(tuple(priced))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(run)

    def _line(
        self,
        item: CartItem,
        store: StoreSettings,
        customer: CustomerId | None,
        at: datetime,
    ) -> LazyCoroResult[PricedLine, PricingError]:
        def to_line(records: Sequence[PriceRecord]) -> Result[PricedLine, PricingError]:
            record = resolve_price(records, at, customer)
            if record is None:
                return Error(Errors.price_unavailable(item.sku.value, store.id.value))

            unit = store.currency.round(record.amount)
            return Ok(PricedLine(
                item=item,
                unit_price=unit,
                price_kind=record.kind,
                subtotal=store.currency.round(unit * item.quantity),
            ))

        return L.catching_async(
            lambda: self._prices.prices(store.id, item.sku),
            on_error=lambda e: Errors.store(StoreError(f"price lookup failed: {e}", e)),
        ).then(lambda records: L.from_result(to_line(records)))


__all__ = ("CartPriceCalculator", "resolve_price")
