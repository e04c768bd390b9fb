"""Tests for the SQLAlchemy quote and transaction stores on SQLite."""

import asyncio
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import event
from structlog.testing import capture_logs

from orderflow import JPY, USD, CartId, ErrorKind, QuoteId
from orderflow.db import create_database
from orderflow.ledger import SQLAlchemyTransactionStore, TransactionLedger, TransactionType
from orderflow.shipping import Quote, SQLAlchemyQuoteStore

from factories import MAIN, NOW, OTHER, order, store


D = Decimal
CART = CartId("cart-1")


def _quote(quote_id: str, carrier: str, amount: str, created=NOW, currency=USD) -> Quote:
    return Quote(
        id=QuoteId(quote_id),
        cart_ref=CART,
        store_id=MAIN,
        carrier=carrier,
        amount=D(amount),
        currency=currency,
        created_at=created,
        expires_at=created + timedelta(minutes=30),
    )


class TestQuoteStore:
    async def test_add_and_get(self, session_factory):
        quotes = SQLAlchemyQuoteStore(session_factory)
        quote = _quote("q_1", "flat", "5.00")

        stored = (await quotes.add([quote], NOW)).unwrap()
        loaded = (await quotes.get(quote.id)).unwrap()

        assert stored == (quote,)
        assert loaded == quote
        assert loaded.expires_at.tzinfo is not None

    async def test_zero_precision_amounts(self, session_factory):
        quotes = SQLAlchemyQuoteStore(session_factory)
        quote = _quote("q_yen", "flat", "1500", currency=JPY)

        await quotes.add([quote], NOW)

        assert (await quotes.get(quote.id)).unwrap().amount == D("1500")

    async def test_unknown_quote(self, session_factory):
        assert (await SQLAlchemyQuoteStore(session_factory).get(QuoteId("q_none"))).unwrap() is None

    async def test_same_combination_is_reused(self, session_factory):
        quotes = SQLAlchemyQuoteStore(session_factory)
        first = _quote("q_1", "flat", "5.00")
        again = _quote("q_2", "flat", "5.00", created=NOW + timedelta(minutes=1))
        cheaper = _quote("q_3", "flat", "4.00", created=NOW + timedelta(minutes=1))

        await quotes.add([first], NOW)
        stored = (await quotes.add([again, cheaper], NOW + timedelta(minutes=1))).unwrap()

        assert [q.id.value for q in stored] == ["q_1", "q_3"]
        assert (await quotes.get(QuoteId("q_2"))).unwrap() is None

    async def test_expired_quotes_are_discarded(self, session_factory):
        quotes = SQLAlchemyQuoteStore(session_factory)
        await quotes.add([_quote("q_old", "flat", "5.00")], NOW)

        later = NOW + timedelta(minutes=31)
        stored = (await quotes.add([_quote("q_new", "flat", "5.00", created=later)], later)).unwrap()

        assert [q.id.value for q in stored] == ["q_new"]
        assert (await quotes.get(QuoteId("q_old"))).unwrap() is None

    async def test_active_quotes(self, session_factory):
        quotes = SQLAlchemyQuoteStore(session_factory)
        await quotes.add([_quote("q_1", "weight", "6.00"), _quote("q_2", "flat", "5.00")], NOW)

        active = (await quotes.active(MAIN, CART, NOW + timedelta(minutes=10))).unwrap()
        expired = (await quotes.active(MAIN, CART, NOW + timedelta(minutes=30))).unwrap()

        assert [q.carrier for q in active] == ["flat", "weight"]
        assert expired == ()
        assert (await quotes.active(OTHER, CART, NOW)).unwrap() == ()


class TestTransactionStore:
    async def test_lifecycle(self, session_factory, clock):
        ledger = TransactionLedger(SQLAlchemyTransactionStore(session_factory), clock=clock)

        auth = (await ledger.authorize(order(), D("100.00"))).unwrap()
        clock.advance(timedelta(seconds=1))
        capture = (await ledger.capture(order(), D("100.00"))).unwrap()
        clock.advance(timedelta(seconds=1))
        refund = (await ledger.refund(order(), D("25.00"))).unwrap()

        history = (await ledger.history(order())).unwrap()
        assert history == (auth, capture, refund)
        assert capture.parent_id == auth.id
        assert refund.parent_id == capture.id

        error = (await ledger.capture(order(), D("0.01"))).unwrap_err()
        assert error.kind is ErrorKind.TRANSACTION_STATE_CONFLICT

    async def test_same_instant_keeps_insertion_order(self, session_factory, clock):
        ledger = TransactionLedger(SQLAlchemyTransactionStore(session_factory), clock=clock)

        await ledger.authorize(order(), D("50.00"))
        await ledger.capture(order(), D("20.00"))
        last = (await ledger.capture(order(), D("30.00"))).unwrap()

        assert (await ledger.last_transaction(order(), store())).unwrap() == last
        assert [tx.type for tx in (await ledger.history(order())).unwrap()] == [
            TransactionType.AUTHORIZE, TransactionType.CAPTURE, TransactionType.CAPTURE,
        ]

    async def test_idempotent_capture_survives_reload(self, session_factory, clock):
        transactions = SQLAlchemyTransactionStore(session_factory)
        await TransactionLedger(transactions, clock=clock).authorize(order(), D("10.00"))

        first = (await TransactionLedger(transactions, clock=clock).capture(order(), D("10.00"), "k-1")).unwrap()
        second = (await TransactionLedger(transactions, clock=clock).capture(order(), D("10.00"), "k-1")).unwrap()

        assert first == second

    async def test_order_of_another_store(self, session_factory, clock):
        ledger = TransactionLedger(SQLAlchemyTransactionStore(session_factory), clock=clock)
        await ledger.authorize(order(), D("10.00"))

        foreign = order(store_id=OTHER)

        assert (await ledger.authorize(foreign, D("10.00"))).unwrap_err().kind is ErrorKind.VALIDATION
        assert (await ledger.last_transaction(foreign, store())).unwrap_err().kind is ErrorKind.VALIDATION

    async def test_concurrent_captures_never_overdraw(self, session_factory, clock):
        ledger = TransactionLedger(SQLAlchemyTransactionStore(session_factory), clock=clock)
        await ledger.authorize(order(), D("100.00"))

        results = await asyncio.gather(*(ledger.capture(order(), D("40.00")) for _ in range(4)))

        accepted = [r for r in results if r]
        rejected = [r.unwrap_err() for r in results if not r]
        assert len(accepted) == 2
        assert all(e.kind is ErrorKind.TRANSACTION_STATE_CONFLICT for e in rejected)
        assert (await ledger.balance(order())).unwrap().captured == D("80.00")

    async def test_moved_version_is_retried(self, tmp_path, clock):
        session_factory, engine = await create_database(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
        ledger = TransactionLedger(SQLAlchemyTransactionStore(session_factory), clock=clock, retry_times=3)
        head_updates = []

        # Another writer bumps the head between this unit's read and its write, once.
        def bump_head(conn, cursor, statement, parameters, context, executemany):
            if statement.startswith("UPDATE ledger_heads"):
                head_updates.append(statement)
                if len(head_updates) == 1:
                    cursor.execute("UPDATE ledger_heads SET version = version + 1")

        try:
            await ledger.authorize(order(), D("50.00"))
            event.listen(engine.sync_engine, "before_cursor_execute", bump_head)

            with capture_logs() as logs:
                captured = (await ledger.capture(order(), D("50.00"))).unwrap()

            assert len(head_updates) == 2
            assert not [entry for entry in logs if entry["event"] == "transaction_rejected"]
            history = (await ledger.history(order())).unwrap()
            assert [tx.type for tx in history] == [TransactionType.AUTHORIZE, TransactionType.CAPTURE]
            assert history[-1].id == captured.id
        finally:
            await engine.dispose()
