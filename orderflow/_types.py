"""
Ids — single-field value wrappers.

Wrapping keeps a cart id from being passed where an order id is expected.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StoreId:
    value: str


@dataclass(frozen=True, slots=True)
class CartId:
    value: str


@dataclass(frozen=True, slots=True)
class OrderId:
    value: str


@dataclass(frozen=True, slots=True)
class CustomerId:
    value: str


@dataclass(frozen=True, slots=True)
class Sku:
    value: str


@dataclass(frozen=True, slots=True)
class QuoteId:
    value: str

    @classmethod
    def new(cls) -> QuoteId:
        return cls(f"q_{uuid.uuid4().hex}")


@dataclass(frozen=True, slots=True)
class TransactionId:
    value: str

    @classmethod
    def new(cls) -> TransactionId:
        return cls(f"tx_{uuid.uuid4().hex}")


__all__ = (
    "StoreId",
    "CartId",
    "OrderId",
    "CustomerId",
    "Sku",
    "QuoteId",
    "TransactionId",
)
