"""
TransactionLedger — payment lifecycle with invariants.

    ledger = TransactionLedger(MemoryTransactionStore())

    await ledger.authorize(order, Decimal("100.00"))
    await ledger.capture(order, Decimal("60.00"))
    await ledger.refund(order, Decimal("10.00"))

Invariants, checked inside one atomic unit against a fresh read:
    Σ captured ≤ Σ authorized (per authorization)
    Σ refunded ≤ Σ captured (per capture)

A rejected operation writes nothing.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from decimal import Decimal

import structlog
from kungfu import Result, Ok, Error, LazyCoroResult
from combinators import RetryPolicy, lift as L, retry

from orderflow._clock import Clock, utcnow
from orderflow._errors import ErrorKind, Errors, PricingError, StoreError
from orderflow._types import TransactionId
from orderflow.context import StoreSettings
from orderflow.ledger._state import balance, capturable, refundable
from orderflow.ledger._store import TransactionStore
from orderflow.ledger._types import (
    LedgerBalance,
    OrderRef,
    Transaction,
    TransactionStatus,
    TransactionType,
)


log = structlog.get_logger(__name__)


# decide(history) → (transaction, is_new)
type Decision = Callable[[Sequence[Transaction]], Result[tuple[Transaction, bool], PricingError]]


def _as_pricing_error(e: Exception) -> PricingError:
    if isinstance(e, PricingError):
        return e
    return Errors.store(StoreError(f"Ledger write failed: {e}", e))


class TransactionLedger:
    def __init__(
        self,
        store: TransactionStore,
        clock: Clock = utcnow,
        retry_times: int = 3,
    ) -> None:
        self._store = store
        self._clock = clock
        self._retry = RetryPolicy.fixed(
            retry_times,
            retry_on=lambda e: e.kind is ErrorKind.CONCURRENT_UPDATE,
        )

    # ───────────────────────────────────────────────────────────────────────────
    # Writes
    # ───────────────────────────────────────────────────────────────────────────

    def authorize(
        self,
        order: OrderRef,
        amount: Decimal,
        status: TransactionStatus = TransactionStatus.APPROVED,
    ) -> LazyCoroResult[Transaction, PricingError]:
        """Record an authorization reported by payment processing."""

        def decide(history: Sequence[Transaction]) -> Result[tuple[Transaction, bool], PricingError]:
            return Ok((self._new(order, TransactionType.AUTHORIZE, amount, status=status), True))

        return self._write(order, amount, decide)

    def capture(
        self,
        order: OrderRef,
        amount: Decimal,
        idempotency_key: str | None = None,
    ) -> LazyCoroResult[Transaction, PricingError]:
        """Capture against the capturable authorization; TRANSACTION_STATE_CONFLICT past its remainder."""

        def decide(history: Sequence[Transaction]) -> Result[tuple[Transaction, bool], PricingError]:
            return self._against(
                order, history, amount, idempotency_key,
                TransactionType.CAPTURE, capturable(history), "capture",
            )

        return self._write(order, amount, decide)

    def refund(
        self,
        order: OrderRef,
        amount: Decimal,
        idempotency_key: str | None = None,
    ) -> LazyCoroResult[Transaction, PricingError]:
        """Refund against the refundable capture; TRANSACTION_STATE_CONFLICT past its remainder."""

        def decide(history: Sequence[Transaction]) -> Result[tuple[Transaction, bool], PricingError]:
            return self._against(
                order, history, amount, idempotency_key,
                TransactionType.REFUND, refundable(history), "refund",
            )

        return self._write(order, amount, decide)

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    def get_capturable_transaction(self, order: OrderRef) -> LazyCoroResult[Transaction | None, PricingError]:
        return self.history(order).map(lambda history: _first(capturable(history)))

    def get_refundable_transaction(self, order: OrderRef) -> LazyCoroResult[Transaction | None, PricingError]:
        return self.history(order).map(lambda history: _first(refundable(history)))

    def balance(self, order: OrderRef) -> LazyCoroResult[LedgerBalance, PricingError]:
        return self.history(order).map(balance)

    def history(self, order: OrderRef) -> LazyCoroResult[tuple[Transaction, ...], PricingError]:
        async def run() -> Result[tuple[Transaction, ...], PricingError]:
            match await self._store.history(order.id):
                case Error(e):
                    return Error(Errors.store(e))
                case Ok(history) if any(tx.store_id != order.store_id for tx in history):
                    return Error(Errors.validation("order belongs to another store", order.id.value))
                case Ok(history):
                    return Ok(history)

        return LazyCoroResult(run)

    def last_transaction(
        self,
        order: OrderRef,
        store: StoreSettings,
    ) -> LazyCoroResult[Transaction | None, PricingError]:
        """Most recent transaction of the order, only if it belongs to store."""

        async def run() -> Result[Transaction | None, PricingError]:
            if order.store_id != store.id:
                log.warning("cross_store_lookup_rejected", order=order.id.value, store=store.id.value)
                return Error(Errors.validation("order belongs to another store", order.id.value))

            match await self._store.last(order.id):
                case Error(e):
                    return Error(Errors.store(e))
                case Ok(tx) if tx is not None and tx.store_id != store.id:
                    log.warning("cross_store_lookup_rejected", order=order.id.value, store=store.id.value)
                    return Error(Errors.validation("order belongs to another store", order.id.value))
                case Ok(tx):
                    return Ok(tx)

        return LazyCoroResult(run)

    # ───────────────────────────────────────────────────────────────────────────
    # Internals
    # ───────────────────────────────────────────────────────────────────────────

    def _new(
        self,
        order: OrderRef,
        kind: TransactionType,
        amount: Decimal,
        parent: Transaction | None = None,
        idempotency_key: str | None = None,
        status: TransactionStatus = TransactionStatus.APPROVED,
    ) -> Transaction:
        return Transaction(
            id=TransactionId.new(),
            order_id=order.id,
            store_id=order.store_id,
            type=kind,
            amount=amount,
            currency=order.currency,
            created_at=self._clock(),
            status=status,
            parent_id=parent.id if parent is not None else None,
            idempotency_key=idempotency_key,
        )

    def _against(
        self,
        order: OrderRef,
        history: Sequence[Transaction],
        amount: Decimal,
        idempotency_key: str | None,
        kind: TransactionType,
        target: tuple[Transaction, Decimal] | None,
        action: str,
    ) -> Result[tuple[Transaction, bool], PricingError]:
        if idempotency_key is not None:
            seen = next((tx for tx in history if tx.idempotency_key == idempotency_key), None)
            if seen is not None:
                if seen.type is kind and seen.amount == amount:
                    return Ok((seen, False))
                return Error(Errors.state_conflict(
                    order.id.value,
                    f"idempotency key {idempotency_key!r} was used for a different request",
                    amount,
                ))

        if target is None:
            return Error(Errors.state_conflict(order.id.value, f"nothing to {action}", amount))

        parent, remainder = target
        if amount > remainder:
            return Error(Errors.state_conflict(
                order.id.value,
                f"{action} exceeds the remaining {remainder}",
                amount,
            ))

        return Ok((self._new(order, kind, amount, parent, idempotency_key), True))

    def _write(
        self,
        order: OrderRef,
        amount: Decimal,
        decide: Decision,
    ) -> LazyCoroResult[Transaction, PricingError]:
        async def attempt() -> Result[Transaction, PricingError]:
            async with self._store.unit(order) as unit:
                match decide(await unit.transactions()):
                    case Ok((tx, True)):
                        unit.append(tx)
                        return Ok(tx)
                    case Ok((tx, False)):
                        return Ok(tx)
                    case Error(e):
                        return Error(e)

        def logged(outcome: Result[Transaction, PricingError]) -> Result[Transaction, PricingError]:
            match outcome:
                case Ok(tx):
                    log.info(
                        "transaction_recorded",
                        order=order.id.value,
                        type=tx.type.value,
                        amount=str(tx.amount),
                        transaction=tx.id.value,
                    )
                case Error(e):
                    log.warning(
                        "transaction_rejected",
                        order=order.id.value,
                        kind=e.kind.name,
                        amount=str(amount),
                        reason=e.message,
                    )
            return outcome

        async def run() -> Result[Transaction, PricingError]:
            if amount <= 0 or not order.currency.is_exact(amount):
                return logged(Error(Errors.validation(
                    f"amount must be positive with at most {order.currency.precision} decimals",
                    order.id.value,
                    amount,
                )))

            guarded = L.catching_async(attempt, on_error=_as_pricing_error).then(L.from_result)
            return logged(await retry(guarded, policy=self._retry))

        return LazyCoroResult(run)


def _first(found: tuple[Transaction, Decimal] | None) -> Transaction | None:
    return found[0] if found is not None else None


__all__ = ("TransactionLedger",)
