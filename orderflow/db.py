"""
Database layer — SQLAlchemy models for quotes and the transaction ledger.

Amounts are stored as integer minor units next to their precision.
Timestamps are written as UTC; SQLite returns them naive, read them
back through `as_utc`.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Connection, DateTime, Integer, String, UniqueConstraint, event
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════

class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Shipping quotes — insert-only
# ═══════════════════════════════════════════════════════════════════════════════

QUOTE_KEY = ("store_id", "cart_ref", "carrier", "amount_minor")


class QuoteTable(Base):
    """One row per live (store, cart, carrier, amount) combination."""

    __tablename__ = "shipping_quotes"
    __table_args__ = (UniqueConstraint(*QUOTE_KEY, name="uq_shipping_quotes_combination"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    store_id: Mapped[str] = mapped_column(String(64), nullable=False)
    cart_ref: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    carrier: Mapped[str] = mapped_column(String(64), nullable=False)
    amount_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    precision: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction ledger — append-only
# ═══════════════════════════════════════════════════════════════════════════════

class TransactionTable(Base):
    """
    Payment transactions. Rows are never updated or deleted.

    seq breaks ties between transactions created in the same instant.
    """

    __tablename__ = "transactions"
    __table_args__ = (UniqueConstraint("order_id", "idempotency_key", name="uq_transactions_idempotency"),)

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    store_id: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    amount_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    precision: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)


class LedgerHeadTable(Base):
    """Per-order lock row; version is bumped by every write to the order's ledger."""

    __tablename__ = "ledger_heads"

    order_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    store_id: Mapped[str] = mapped_column(String(64), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════

def insert_ignore(
    dialect: str,
    table: type[Base],
    values: Mapping[str, Any],
    index_elements: Sequence[str],
) -> Any:
    """INSERT ... ON CONFLICT DO NOTHING for the session's dialect."""
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    return insert(table).values(**values).on_conflict_do_nothing(index_elements=list(index_elements))


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════

async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
    echo: bool = False,
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """
    Create tables and return (session_factory, engine).

    On SQLite every transaction starts with BEGIN IMMEDIATE, so writers
    queue on the database lock instead of failing on a lock upgrade.
    """
    engine = create_async_engine(url, echo=echo)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _no_driver_begin(dbapi_connection: Any, _: Any) -> None:
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn: Connection) -> None:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "Base",
    "QuoteTable",
    "TransactionTable",
    "LedgerHeadTable",
    "QUOTE_KEY",
    "insert_ignore",
    "create_database",
)
