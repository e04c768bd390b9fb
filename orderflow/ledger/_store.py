"""
Transaction store — append-only ledger persistence.

Writes go through `unit(order)`: an async context manager that holds
the order's ledger exclusively, hands out its current history and
commits appended transactions on exit. Validation inside the unit
always sees the latest captured / refunded sums.

Units raise; the ledger turns exceptions into typed errors.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Protocol, cast

from sqlalchemy import Select, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kungfu import Result, Ok, Error

from orderflow._clock import as_utc
from orderflow._errors import Errors, StoreError
from orderflow._money import Currency
from orderflow._types import OrderId, StoreId, TransactionId
from orderflow.db import LedgerHeadTable, TransactionTable, insert_ignore
from orderflow.ledger._types import (
    OrderRef,
    Transaction,
    TransactionStatus,
    TransactionType,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Protocols
# ═══════════════════════════════════════════════════════════════════════════════


class LedgerUnit(Protocol):
    async def transactions(self) -> list[Transaction]:
        """The order's history, oldest first."""
        ...

    def append(self, transaction: Transaction) -> None:
        """Queue a transaction; written when the unit exits cleanly."""
        ...


class TransactionStore(Protocol):
    def unit(self, order: OrderRef) -> AbstractAsyncContextManager[LedgerUnit]:
        """
        Exclusive, atomic access to one order's ledger.

        Raises PricingError(VALIDATION) if the order belongs to another
        store and PricingError(CONCURRENT_UPDATE) if another writer won.
        """
        ...

    async def history(self, order_id: OrderId) -> Result[tuple[Transaction, ...], StoreError]:
        ...

    async def last(self, order_id: OrderId) -> Result[Transaction | None, StoreError]:
        ...


class _PendingUnit:
    __slots__ = ("_history", "pending")

    def __init__(self, history: list[Transaction]) -> None:
        self._history = history
        self.pending: list[Transaction] = []

    async def transactions(self) -> list[Transaction]:
        return [*self._history, *self.pending]

    def append(self, transaction: Transaction) -> None:
        self.pending.append(transaction)


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store — one lock per order
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryTransactionStore:
    """
    In-memory ledger.

    Note: single process only, units of one order are serialized by an
    asyncio.Lock. A lock lives only while some unit holds or awaits it.
    """

    def __init__(self) -> None:
        self._ledgers: dict[OrderId, list[Transaction]] = {}
        self._owners: dict[OrderId, StoreId] = {}
        self._locks: dict[OrderId, asyncio.Lock] = {}
        self._users: dict[OrderId, int] = {}

    @asynccontextmanager
    async def unit(self, order: OrderRef) -> AsyncIterator[LedgerUnit]:
        lock = self._locks.setdefault(order.id, asyncio.Lock())
        self._users[order.id] = self._users.get(order.id, 0) + 1
        try:
            async with lock:
                owner = self._owners.get(order.id, order.store_id)
                if owner != order.store_id:
                    raise Errors.validation("order belongs to another store", order.id.value)

                unit = _PendingUnit(list(self._ledgers.get(order.id, ())))
                yield unit

                if unit.pending:
                    self._owners[order.id] = order.store_id
                    self._ledgers.setdefault(order.id, []).extend(unit.pending)
        finally:
            self._users[order.id] -= 1
            if not self._users[order.id]:
                del self._users[order.id]
                del self._locks[order.id]

    async def history(self, order_id: OrderId) -> Result[tuple[Transaction, ...], StoreError]:
        return Ok(tuple(self._ledgers.get(order_id, ())))

    async def last(self, order_id: OrderId) -> Result[Transaction | None, StoreError]:
        ledger = self._ledgers.get(order_id)
        return Ok(ledger[-1] if ledger else None)


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemy Store — row lock + optimistic version
# ═══════════════════════════════════════════════════════════════════════════════


def _to_row(tx: Transaction) -> TransactionTable:
    return TransactionTable(
        id=tx.id.value,
        order_id=tx.order_id.value,
        store_id=tx.store_id.value,
        type=tx.type.value,
        status=tx.status.value,
        amount_minor=tx.currency.to_minor(tx.amount),
        currency=tx.currency.code,
        precision=tx.currency.precision,
        created_at=as_utc(tx.created_at),
        parent_id=tx.parent_id.value if tx.parent_id is not None else None,
        idempotency_key=tx.idempotency_key,
    )


def _to_transaction(row: TransactionTable) -> Transaction:
    currency = Currency(row.currency, row.precision)
    return Transaction(
        id=TransactionId(row.id),
        order_id=OrderId(row.order_id),
        store_id=StoreId(row.store_id),
        type=TransactionType(row.type),
        amount=currency.from_minor(row.amount_minor),
        currency=currency,
        created_at=as_utc(row.created_at),
        status=TransactionStatus(row.status),
        parent_id=TransactionId(row.parent_id) if row.parent_id is not None else None,
        idempotency_key=row.idempotency_key,
    )


def _chronological(order_id: OrderId) -> Select[tuple[TransactionTable]]:
    return (
        select(TransactionTable)
        .where(TransactionTable.order_id == order_id.value)
        .order_by(TransactionTable.created_at, TransactionTable.seq)
    )


class SQLAlchemyTransactionStore:
    """
    Ledger on an async SQLAlchemy session factory.

    Each unit runs in one database transaction:
        1. ensure the order's head row exists, lock it (FOR UPDATE)
        2. read the history, let the caller validate and append
        3. insert the new rows, bump the head version where it is unchanged

    The version check catches writers that slipped past the lock on
    backends without row locks.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def unit(self, order: OrderRef) -> AsyncIterator[LedgerUnit]:
        async with self._session_factory() as session, session.begin():
            dialect = session.get_bind().dialect.name
            await session.execute(insert_ignore(
                dialect,
                LedgerHeadTable,
                {"order_id": order.id.value, "store_id": order.store_id.value, "version": 0},
                ["order_id"],
            ))
            head = (await session.execute(
                select(LedgerHeadTable.store_id, LedgerHeadTable.version)
                .where(LedgerHeadTable.order_id == order.id.value)
                .with_for_update()
            )).one()

            if head.store_id != order.store_id.value:
                raise Errors.validation("order belongs to another store", order.id.value)

            rows = (await session.execute(_chronological(order.id))).scalars()
            unit = _PendingUnit([_to_transaction(row) for row in rows])
            yield unit

            if not unit.pending:
                return

            session.add_all([_to_row(tx) for tx in unit.pending])
            bumped = cast(CursorResult[Any], await session.execute(
                update(LedgerHeadTable)
                .where(
                    LedgerHeadTable.order_id == order.id.value,
                    LedgerHeadTable.version == head.version,
                )
                .values(version=head.version + 1)
            ))
            if bumped.rowcount != 1:
                raise Errors.concurrent_update(order.id.value)

    async def history(self, order_id: OrderId) -> Result[tuple[Transaction, ...], StoreError]:
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(_chronological(order_id))).scalars()
                return Ok(tuple(_to_transaction(row) for row in rows))

        except Exception as e:
            return Error(StoreError(f"Failed to read ledger: {e}", e))

    async def last(self, order_id: OrderId) -> Result[Transaction | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = (await session.execute(
                    select(TransactionTable)
                    .where(TransactionTable.order_id == order_id.value)
                    .order_by(TransactionTable.created_at.desc(), TransactionTable.seq.desc())
                    .limit(1)
                )).scalar_one_or_none()
                return Ok(_to_transaction(row) if row is not None else None)

        except Exception as e:
            return Error(StoreError(f"Failed to read last transaction: {e}", e))


__all__ = (
    "LedgerUnit",
    "TransactionStore",
    "MemoryTransactionStore",
    "SQLAlchemyTransactionStore",
)
