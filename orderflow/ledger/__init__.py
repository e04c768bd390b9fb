"""
Ledger — authorize / capture / refund with bounded amounts.

    from orderflow import ledger as TX

    ledger = TX.TransactionLedger(TX.SQLAlchemyTransactionStore(session_factory))

    match await ledger.capture(order, Decimal("100.00")):
        case Ok(tx): ...
        case Error(e) if e.kind is ErrorKind.TRANSACTION_STATE_CONFLICT: ...
"""

from orderflow.ledger._types import (
    TransactionType,
    TransactionStatus,
    OrderRef,
    Transaction,
    LedgerBalance,
)
from orderflow.ledger._state import applied, capturable, refundable, balance
from orderflow.ledger._store import (
    LedgerUnit,
    TransactionStore,
    MemoryTransactionStore,
    SQLAlchemyTransactionStore,
)
from orderflow.ledger._ledger import TransactionLedger

__all__ = (
    # Types
    "TransactionType",
    "TransactionStatus",
    "OrderRef",
    "Transaction",
    "LedgerBalance",
    # State
    "applied",
    "capturable",
    "refundable",
    "balance",
    # Stores
    "LedgerUnit",
    "TransactionStore",
    "MemoryTransactionStore",
    "SQLAlchemyTransactionStore",
    # Ledger
    "TransactionLedger",
)
