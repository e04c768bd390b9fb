"""
Pricing — resolve unit prices for cart lines.

    from orderflow import pricing as P

    calculator = P.CartPriceCalculator(P.MemoryPriceSource(table))
    match await calculator.price(cart, store, customer):
        case Ok(lines): ...
        case Error(e): ...  # INVALID_QUANTITY / PRICE_UNAVAILABLE
"""

from orderflow.pricing._types import (
    CartItem,
    Discount,
    ShoppingCart,
    PriceKind,
    PriceRecord,
    PricedLine,
)
from orderflow.pricing._source import PriceSource, MemoryPriceSource
from orderflow.pricing._calculator import CartPriceCalculator, resolve_price

__all__ = (
    "CartItem",
    "Discount",
    "ShoppingCart",
    "PriceKind",
    "PriceRecord",
    "PricedLine",
    "PriceSource",
    "MemoryPriceSource",
    "CartPriceCalculator",
    "resolve_price",
)
