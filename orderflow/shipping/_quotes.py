"""
ShippingQuoteEngine — concurrent carrier dispatch with partial failure.

    engine = ShippingQuoteEngine(registry, MemoryQuoteStore(), zones)

    match await engine.quote(shipment, store.origin, destination, store, cart.id):
        case Ok(quotes): ...          # at least one carrier answered
        case Error(e): ...            # CARRIER_UNAVAILABLE, VALIDATION, STORE

Every enabled carrier is called at once. Each call is bounded by a
timeout and retried on exceptions and timeouts; a carrier that still
fails is logged and left out. Only when no carrier answers does the
request fail. Cancelling the awaiting task cancels in-flight calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

import structlog
from kungfu import Result, Ok, Error, LazyCoroResult
from combinators import RetryPolicy, lift as L, partition, retry, timeout

from orderflow._clock import Clock, utcnow
from orderflow._errors import Errors, PricingError, StoreError
from orderflow._types import CartId, QuoteId
from orderflow.config import Settings
from orderflow.context import Address, StoreSettings, ZoneResolver
from orderflow.shipping._carriers import CarrierRegistry
from orderflow.shipping._store import QuoteStore
from orderflow.shipping._types import PackedShipment, Quote, ShippingSummary


log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class QuotePolicy:
    ttl: timedelta = timedelta(minutes=30)
    timeout_seconds: float = 5.0
    retry_times: int = 2
    retry_delay_seconds: float = 0.1

    @classmethod
    def from_settings(cls, settings: Settings) -> QuotePolicy:
        return cls(
            ttl=settings.quote_ttl,
            timeout_seconds=settings.carrier_timeout_seconds,
            retry_times=settings.carrier_retry_times,
            retry_delay_seconds=settings.carrier_retry_delay_seconds,
        )


type CarrierRate = tuple[str, Decimal]


class ShippingQuoteEngine:
    def __init__(
        self,
        carriers: CarrierRegistry,
        store: QuoteStore,
        zones: ZoneResolver,
        policy: QuotePolicy = QuotePolicy(),
        clock: Clock = utcnow,
    ) -> None:
        self._carriers = carriers
        self._store = store
        self._zones = zones
        self._policy = policy
        self._clock = clock

    # ───────────────────────────────────────────────────────────────────────────
    # Quoting
    # ───────────────────────────────────────────────────────────────────────────

    def quote(
        self,
        shipment: PackedShipment,
        origin: Address,
        destination: Address,
        store: StoreSettings,
        cart_ref: CartId,
    ) -> LazyCoroResult[tuple[Quote, ...], PricingError]:
        async def run() -> Result[tuple[Quote, ...], PricingError]:
            match await self.resolve_destination(destination):
                case Ok(resolved):
                    pass
                case Error(e):
                    return Error(e)

            calls = [self._rate(code, shipment, origin, resolved) for code in store.carriers]
            rates, failures = (await partition(calls)).unwrap()

            for failure in failures:
                log.warning(
                    "carrier_rate_failed",
                    cart=cart_ref.value,
                    carrier=failure.ref,
                    error=failure.message,
                )

            if not rates:
                return Error(Errors.carrier_unavailable(
                    cart_ref.value,
                    [failure.ref or "unknown" for failure in failures],
                ))

            now = self._clock()
            quotes = [
                Quote(
                    id=QuoteId.new(),
                    cart_ref=cart_ref,
                    store_id=store.id,
                    carrier=code,
                    amount=store.currency.round(amount + shipment.handling_fee),
                    currency=store.currency,
                    created_at=now,
                    expires_at=now + self._policy.ttl,
                )
                for code, amount in rates
            ]

            match await self._store.add(quotes, now):
                case Ok(stored):
                    log.info(
                        "quotes_persisted",
                        cart=cart_ref.value,
                        carriers=[q.carrier for q in stored],
                        failed=len(failures),
                    )
                    return Ok(tuple(sorted(stored, key=lambda q: (q.amount, q.carrier))))
                case Error(e):
                    return Error(Errors.store(e))

        return LazyCoroResult(run)

    def resolve_destination(self, destination: Address) -> LazyCoroResult[Address, PricingError]:
        """Validate and normalize a destination; VALIDATION when unknown, STORE when the lookup fails."""
        return L.catching_async(
            lambda: self._zones.resolve(destination),
            on_error=lambda e: Errors.store(StoreError(f"zone lookup failed: {e}", e)),
        ).then(L.from_result)

    def _rate(
        self,
        code: str,
        shipment: PackedShipment,
        origin: Address,
        destination: Address,
    ) -> LazyCoroResult[CarrierRate, PricingError]:
        carrier = self._carriers.get(code)
        if carrier is None:
            return L.fail(Errors.carrier_failed(code, "carrier module is not installed"))

        # Only exceptions and timeouts are retried; a carrier's own Error is final.
        attempt = timeout(
            L.catching_async(
                lambda: carrier.rate(shipment, origin, destination),
                on_error=lambda e: Errors.carrier_failed(code, f"{type(e).__name__}: {e}"),
            ),
            seconds=self._policy.timeout_seconds,
        ).map_err(
            lambda e: e if isinstance(e, PricingError)
            else Errors.carrier_failed(code, f"timed out after {self._policy.timeout_seconds}s")
        )

        def checked(outcome: Result[Decimal, PricingError]) -> LazyCoroResult[CarrierRate, PricingError]:
            match outcome:
                case Ok(amount) if amount < 0:
                    return L.fail(Errors.carrier_failed(code, f"negative rate {amount}"))
                case Ok(amount):
                    return L.pure((code, amount))
                case Error(e):
                    return L.fail(e)

        return retry(
            attempt,
            policy=RetryPolicy.fixed(self._policy.retry_times, self._policy.retry_delay_seconds),
        ).then(checked)

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    def shipping_summary(
        self,
        quote_id: QuoteId,
        store: StoreSettings,
        cart_ref: CartId | None = None,
    ) -> LazyCoroResult[ShippingSummary, PricingError]:
        """
        Summary of a stored quote; EXPIRED past TTL.

        NOT_FOUND for unknown quotes, quotes of another store and, when
        cart_ref is given, quotes of another cart.
        """

        async def run() -> Result[ShippingSummary, PricingError]:
            match await self._store.get(quote_id):
                case Error(e):
                    return Error(Errors.store(e))
                case Ok(None):
                    return Error(Errors.not_found("quote", quote_id.value))
                case Ok(quote) if quote.store_id != store.id:
                    return Error(Errors.not_found("quote", quote_id.value))
                case Ok(quote) if cart_ref is not None and quote.cart_ref != cart_ref:
                    return Error(Errors.not_found("quote", quote_id.value))
                case Ok(quote) if quote.is_expired(self._clock()):
                    return Error(Errors.expired("quote", quote_id.value))
                case Ok(quote):
                    return Ok(ShippingSummary.of(quote))

        return LazyCoroResult(run)

    def active_quotes(self, cart_ref: CartId, store: StoreSettings) -> LazyCoroResult[tuple[Quote, ...], PricingError]:
        async def run() -> Result[tuple[Quote, ...], PricingError]:
            return (await self._store.active(store.id, cart_ref, self._clock())).map_err(Errors.store)

        return LazyCoroResult(run)


__all__ = ("QuotePolicy", "ShippingQuoteEngine")
