"""
Quote store — insert-only persistence for shipping quotes.

All methods return Result for explicit error handling. Writes never
update a row, so no locking is needed; reads filter on expiry at
query time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kungfu import Result, Ok, Error

from orderflow._clock import as_utc
from orderflow._errors import StoreError
from orderflow._money import Currency
from orderflow._types import CartId, QuoteId, StoreId
from orderflow.db import QUOTE_KEY, QuoteTable, insert_ignore
from orderflow.shipping._types import Quote


# ═══════════════════════════════════════════════════════════════════════════════
# Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class QuoteStore(Protocol):
    async def add(self, quotes: Sequence[Quote], now: datetime) -> Result[tuple[Quote, ...], StoreError]:
        """
        Persist quotes for one cart.

        A live quote with the same (store, cart, carrier, amount) is kept
        and returned in place of the new one. Expired quotes of the cart
        are discarded.
        """
        ...

    async def get(self, quote_id: QuoteId) -> Result[Quote | None, StoreError]:
        """Quote by id, expired or not. Ok(None) if unknown."""
        ...

    async def active(
        self,
        store_id: StoreId,
        cart_ref: CartId,
        now: datetime,
    ) -> Result[tuple[Quote, ...], StoreError]:
        """Unexpired quotes of a cart."""
        ...


def _same_cart(quotes: Sequence[Quote]) -> bool:
    return len({(q.store_id, q.cart_ref) for q in quotes}) <= 1


def _combination(quote: Quote) -> tuple[StoreId, CartId, str, int]:
    return (quote.store_id, quote.cart_ref, quote.carrier, quote.currency.to_minor(quote.amount))


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store — for tests and single-process use
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryQuoteStore:
    def __init__(self) -> None:
        self._quotes: dict[QuoteId, Quote] = {}
        self._lock = asyncio.Lock()

    async def add(self, quotes: Sequence[Quote], now: datetime) -> Result[tuple[Quote, ...], StoreError]:
        if not quotes:
            return Ok(())
        if not _same_cart(quotes):
            return Error(StoreError("Quotes of several carts in one batch"))

        async with self._lock:
            expired = [qid for qid, q in self._quotes.items() if q.is_expired(now)]
            for qid in expired:
                del self._quotes[qid]

            live = {_combination(q): q for q in self._quotes.values() if not q.is_expired(now)}
            stored: list[Quote] = []
            for quote in quotes:
                existing = live.get(_combination(quote))
                if existing is None:
                    self._quotes[quote.id] = quote
                    live[_combination(quote)] = quote
                    existing = quote
                stored.append(existing)
            return Ok(tuple(stored))

    async def get(self, quote_id: QuoteId) -> Result[Quote | None, StoreError]:
        async with self._lock:
            return Ok(self._quotes.get(quote_id))

    async def active(
        self,
        store_id: StoreId,
        cart_ref: CartId,
        now: datetime,
    ) -> Result[tuple[Quote, ...], StoreError]:
        async with self._lock:
            return Ok(tuple(sorted(
                (
                    q for q in self._quotes.values()
                    if q.store_id == store_id and q.cart_ref == cart_ref and not q.is_expired(now)
                ),
                key=lambda q: (q.amount, q.carrier),
            )))


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemy Store
# ═══════════════════════════════════════════════════════════════════════════════


def _to_row(quote: Quote) -> dict[str, Any]:
    return {
        "id": quote.id.value,
        "store_id": quote.store_id.value,
        "cart_ref": quote.cart_ref.value,
        "carrier": quote.carrier,
        "amount_minor": quote.currency.to_minor(quote.amount),
        "currency": quote.currency.code,
        "precision": quote.currency.precision,
        "created_at": as_utc(quote.created_at),
        "expires_at": as_utc(quote.expires_at),
    }


def _to_quote(row: QuoteTable) -> Quote:
    currency = Currency(row.currency, row.precision)
    return Quote(
        id=QuoteId(row.id),
        cart_ref=CartId(row.cart_ref),
        store_id=StoreId(row.store_id),
        carrier=row.carrier,
        amount=currency.from_minor(row.amount_minor),
        currency=currency,
        created_at=as_utc(row.created_at),
        expires_at=as_utc(row.expires_at),
    )


class SQLAlchemyQuoteStore:
    """
    Quote store on an async SQLAlchemy session factory.

    Example:
        session_factory, engine = await create_database(settings.database_url)
        store = SQLAlchemyQuoteStore(session_factory)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, quotes: Sequence[Quote], now: datetime) -> Result[tuple[Quote, ...], StoreError]:
        if not quotes:
            return Ok(())
        if not _same_cart(quotes):
            return Error(StoreError("Quotes of several carts in one batch"))

        store_id, cart_ref = quotes[0].store_id.value, quotes[0].cart_ref.value
        moment = as_utc(now)
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    delete(QuoteTable).where(
                        QuoteTable.store_id == store_id,
                        QuoteTable.cart_ref == cart_ref,
                        QuoteTable.expires_at <= moment,
                    )
                )

                dialect = session.get_bind().dialect.name
                for quote in quotes:
                    await session.execute(insert_ignore(dialect, QuoteTable, _to_row(quote), QUOTE_KEY))

                result = await session.execute(
                    select(QuoteTable).where(
                        QuoteTable.store_id == store_id,
                        QuoteTable.cart_ref == cart_ref,
                        QuoteTable.expires_at > moment,
                    )
                )
                live = {(row.carrier, row.amount_minor): _to_quote(row) for row in result.scalars()}

            return Ok(tuple(live[(q.carrier, q.currency.to_minor(q.amount))] for q in quotes))

        except Exception as e:
            return Error(StoreError(f"Failed to add quotes: {e}", e))

    async def get(self, quote_id: QuoteId) -> Result[Quote | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(QuoteTable, quote_id.value)
                return Ok(_to_quote(row) if row is not None else None)

        except Exception as e:
            return Error(StoreError(f"Failed to get quote: {e}", e))

    async def active(
        self,
        store_id: StoreId,
        cart_ref: CartId,
        now: datetime,
    ) -> Result[tuple[Quote, ...], StoreError]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(QuoteTable)
                    .where(
                        QuoteTable.store_id == store_id.value,
                        QuoteTable.cart_ref == cart_ref.value,
                        QuoteTable.expires_at > as_utc(now),
                    )
                    .order_by(QuoteTable.amount_minor, QuoteTable.carrier)
                )
                return Ok(tuple(_to_quote(row) for row in result.scalars()))

        except Exception as e:
            return Error(StoreError(f"Failed to list quotes: {e}", e))


__all__ = ("QuoteStore", "MemoryQuoteStore", "SQLAlchemyQuoteStore")
