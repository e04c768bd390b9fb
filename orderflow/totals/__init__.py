"""
Totals — the ordered, summable order breakdown.

    from orderflow import totals as TT

    summary = TT.OrderTotalAggregator().aggregate(
        subtotal, cart.discounts, tax, shipping, store.tax_on_shipping, store, rules,
    ).unwrap()
    assert summary.grand_total == sum(t.value for t in summary.totals)
"""

from orderflow.totals._types import (
    TotalCode,
    DEFAULT_ORDER,
    OrderTotal,
    OrderTotalSummary,
)
from orderflow.totals._titles import TitleSource, DefaultTitles, ENGLISH
from orderflow.totals._aggregator import OrderTotalAggregator, display_order

__all__ = (
    "TotalCode",
    "DEFAULT_ORDER",
    "OrderTotal",
    "OrderTotalSummary",
    "TitleSource",
    "DefaultTitles",
    "ENGLISH",
    "OrderTotalAggregator",
    "display_order",
)
