"""
Ledger types — append-only payment transactions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from orderflow._money import Currency
from orderflow._types import OrderId, StoreId, TransactionId


class TransactionType(Enum):
    AUTHORIZE = "authorize"
    CAPTURE = "capture"
    REFUND = "refund"


class TransactionStatus(Enum):
    """Only APPROVED transactions move money; DECLINED ones are history."""

    APPROVED = "approved"
    DECLINED = "declined"


@dataclass(frozen=True, slots=True)
class OrderRef:
    """The persisted order a ledger operation applies to."""

    id: OrderId
    store_id: StoreId
    currency: Currency


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    One payment event.

    parent_id links a capture to its authorization and a refund to its
    capture. Never updated or deleted.
    """

    id: TransactionId
    order_id: OrderId
    store_id: StoreId
    type: TransactionType
    amount: Decimal
    currency: Currency
    created_at: datetime
    status: TransactionStatus = TransactionStatus.APPROVED
    parent_id: TransactionId | None = None
    idempotency_key: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.status is TransactionStatus.APPROVED


@dataclass(frozen=True, slots=True)
class LedgerBalance:
    authorized: Decimal
    captured: Decimal
    refunded: Decimal

    @property
    def capturable(self) -> Decimal:
        return self.authorized - self.captured

    @property
    def refundable(self) -> Decimal:
        return self.captured - self.refunded


__all__ = (
    "TransactionType",
    "TransactionStatus",
    "OrderRef",
    "Transaction",
    "LedgerBalance",
)
