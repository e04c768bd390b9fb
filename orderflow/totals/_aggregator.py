"""
OrderTotalAggregator — merge subtotal, discounts, tax and shipping.

Default order: subtotal, discounts, tax, shipping, tax on shipping.
A store can reorder the codes with `StoreSettings.total_order`; codes it
leaves out keep their default relative order after the listed ones.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from kungfu import Result, Ok, Error

from orderflow._errors import Errors, PricingError
from orderflow._money import ZERO
from orderflow.context import StoreSettings
from orderflow.pricing import Discount
from orderflow.shipping import ShippingSummary
from orderflow.tax import TaxRule, rule_tax
from orderflow.totals._titles import DefaultTitles, TitleSource
from orderflow.totals._types import DEFAULT_ORDER, OrderTotal, OrderTotalSummary, TotalCode


def display_order(store: StoreSettings) -> Result[tuple[TotalCode, ...], PricingError]:
    if store.total_order is None:
        return Ok(DEFAULT_ORDER)

    listed: list[TotalCode] = []
    for name in store.total_order:
        try:
            code = TotalCode(name.upper())
        except ValueError:
            return Error(Errors.validation(f"unknown total code {name!r}", store.id.value))
        if code not in listed:
            listed.append(code)
    return Ok((*listed, *(code for code in DEFAULT_ORDER if code not in listed)))


class OrderTotalAggregator:
    def __init__(self, titles: TitleSource | None = None) -> None:
        self._titles = titles if titles is not None else DefaultTitles()

    def aggregate(
        self,
        subtotal: Decimal,
        discounts: Sequence[Discount],
        tax_amount: Decimal,
        shipping: ShippingSummary | None,
        tax_on_shipping: bool,
        store: StoreSettings,
        shipping_tax_rules: Sequence[TaxRule] = (),
        language: str = "en",
    ) -> Result[OrderTotalSummary, PricingError]:
        """
        Build the summary.

        shipping: None when nothing ships; SHIPPING and SHIPPING_TAX are omitted.
        shipping_tax_rules: rules taxed on the shipping amount when
        tax_on_shipping is set, rounded per rule like line tax.
        """
        currency = store.currency

        for discount in discounts:
            if discount.amount <= 0:
                return Error(Errors.validation("discount amount must be positive", discount.code))
        discount_total = sum((currency.round(d.amount) for d in discounts), ZERO)
        if discount_total > subtotal:
            return Error(Errors.validation("discounts exceed the subtotal", amount=discount_total))

        if shipping is not None and shipping.currency != currency:
            return Error(Errors.validation("shipping quoted in another currency", shipping.carrier))

        match display_order(store):
            case Ok(order):
                pass
            case Error(e):
                return Error(e)

        entries: dict[TotalCode, list[tuple[str, Decimal]]] = {
            TotalCode.SUBTOTAL: [(self._titles.title(TotalCode.SUBTOTAL, language), currency.round(subtotal))],
            TotalCode.DISCOUNT: [(d.title, -currency.round(d.amount)) for d in discounts],
            TotalCode.TAX: [(self._titles.title(TotalCode.TAX, language), currency.round(tax_amount))],
            TotalCode.SHIPPING: [],
            TotalCode.SHIPPING_TAX: [],
        }
        if shipping is not None:
            entries[TotalCode.SHIPPING].append(
                (self._titles.title(TotalCode.SHIPPING, language), currency.round(shipping.amount))
            )
            if tax_on_shipping:
                entries[TotalCode.SHIPPING_TAX].append((
                    self._titles.title(TotalCode.SHIPPING_TAX, language),
                    rule_tax(shipping.amount, shipping_tax_rules, currency),
                ))

        totals: list[OrderTotal] = []
        for code in order:
            for title, value in entries[code]:
                totals.append(OrderTotal(
                    code=code,
                    title=title,
                    text=currency.format(value),
                    value=value,
                    sort_order=(len(totals) + 1) * 10,
                ))

        return Ok(OrderTotalSummary(tuple(totals), currency))


__all__ = ("OrderTotalAggregator", "display_order")
