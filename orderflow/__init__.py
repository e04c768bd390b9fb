"""
orderflow — order pricing, shipping quotes and the payment ledger.

    from orderflow import pricing as P    # Cart line prices
    from orderflow import tax as T        # Tax rules
    from orderflow import shipping as SH  # Packing and carrier quotes
    from orderflow import totals as TT    # Order total breakdown
    from orderflow import ledger as TX    # Authorize / capture / refund
    from orderflow import checkout as CO  # The service tying them together
"""

from orderflow import context
from orderflow import pricing
from orderflow import tax
from orderflow import shipping
from orderflow import totals
from orderflow import ledger
from orderflow import checkout
from orderflow._errors import ErrorKind, PricingError, StoreError, Errors
from orderflow._money import Currency, USD, EUR, JPY
from orderflow._types import (
    StoreId,
    CartId,
    OrderId,
    CustomerId,
    Sku,
    QuoteId,
    TransactionId,
)

__version__ = "0.1.0"

__all__ = (
    "context",
    "pricing",
    "tax",
    "shipping",
    "totals",
    "ledger",
    "checkout",
    "ErrorKind",
    "PricingError",
    "StoreError",
    "Errors",
    "Currency",
    "USD",
    "EUR",
    "JPY",
    "StoreId",
    "CartId",
    "OrderId",
    "CustomerId",
    "Sku",
    "QuoteId",
    "TransactionId",
)
