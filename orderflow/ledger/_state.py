"""
Ledger state — derived from an order's chronological history.

    NONE → AUTHORIZED → CAPTURED → REFUNDED

A partial refund is an amount, not a state: an order can carry several
refunds as long as they stay within what was captured.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from orderflow._money import ZERO
from orderflow.ledger._types import LedgerBalance, Transaction, TransactionType


def applied(history: Sequence[Transaction], parent: Transaction, kind: TransactionType) -> Decimal:
    """Sum of approved `kind` transactions recorded against parent."""
    return sum(
        (tx.amount for tx in history if tx.is_approved and tx.type is kind and tx.parent_id == parent.id),
        ZERO,
    )


def _open(
    history: Sequence[Transaction],
    parent_kind: TransactionType,
    child_kind: TransactionType,
) -> tuple[Transaction, Decimal] | None:
    for tx in reversed(history):
        if tx.is_approved and tx.type is parent_kind:
            remainder = tx.amount - applied(history, tx, child_kind)
            if remainder > 0:
                return tx, remainder
    return None


def capturable(history: Sequence[Transaction]) -> tuple[Transaction, Decimal] | None:
    """Most recent authorization not yet fully captured, with its remainder."""
    return _open(history, TransactionType.AUTHORIZE, TransactionType.CAPTURE)


def refundable(history: Sequence[Transaction]) -> tuple[Transaction, Decimal] | None:
    """Most recent capture not yet fully refunded, with its remainder."""
    return _open(history, TransactionType.CAPTURE, TransactionType.REFUND)


def balance(history: Sequence[Transaction]) -> LedgerBalance:
    def total(kind: TransactionType) -> Decimal:
        return sum((tx.amount for tx in history if tx.is_approved and tx.type is kind), ZERO)

    return LedgerBalance(
        authorized=total(TransactionType.AUTHORIZE),
        captured=total(TransactionType.CAPTURE),
        refunded=total(TransactionType.REFUND),
    )


__all__ = ("applied", "capturable", "refundable", "balance")
