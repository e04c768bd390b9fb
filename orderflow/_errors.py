"""
Errors — one closed taxonomy for the whole pipeline.

Callers branch on `PricingError.kind` instead of parsing messages.
`PricingError` is an Exception so graph nodes can raise it; public
operations always hand it back inside `Error(...)`.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, auto


# ═══════════════════════════════════════════════════════════════════════════════
# Kinds
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorKind(Enum):
    """Kinds of pricing, shipping and ledger errors."""

    VALIDATION = auto()  # Bad cart / package / address data, never retried
    INVALID_QUANTITY = auto()
    PRICE_UNAVAILABLE = auto()
    TAX_CONFIGURATION_MISSING = auto()
    NO_APPLICABLE_PACKAGE = auto()  # Item cannot ship at all
    CARRIER_UNAVAILABLE = auto()  # Every carrier failed
    NOT_FOUND = auto()
    EXPIRED = auto()
    TRANSACTION_STATE_CONFLICT = auto()
    CONCURRENT_UPDATE = auto()  # Lost an optimistic race, safe to retry
    STORE = auto()  # Storage backend error


# ═══════════════════════════════════════════════════════════════════════════════
# Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, eq=False)
class PricingError(Exception):
    """
    Typed error with enough context to render a user-facing message.

    ref: the cart / order / quote id or sku the error is about.
    amount: the offending amount, when there is one.

    Note: not frozen, raising sets __traceback__ on the instance.
    """

    kind: ErrorKind
    message: str
    ref: str | None = None
    amount: Decimal | None = None

    def __str__(self) -> str:
        parts = [f"{self.kind.name}: {self.message}"]
        if self.ref is not None:
            parts.append(f"ref={self.ref}")
        if self.amount is not None:
            parts.append(f"amount={self.amount}")
        return " ".join(parts)


@dataclass(frozen=True)
class StoreError:
    """Storage operation error."""

    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Constructors
# ═══════════════════════════════════════════════════════════════════════════════


class Errors:
    @staticmethod
    def validation(message: str, ref: str | None = None, amount: Decimal | None = None) -> PricingError:
        return PricingError(ErrorKind.VALIDATION, message, ref, amount)

    @staticmethod
    def invalid_quantity(sku: str, quantity: int) -> PricingError:
        return PricingError(
            ErrorKind.INVALID_QUANTITY,
            f"quantity must be positive, got {quantity}",
            sku,
            Decimal(quantity),
        )

    @staticmethod
    def price_unavailable(sku: str, store: str) -> PricingError:
        return PricingError(
            ErrorKind.PRICE_UNAVAILABLE,
            f"no active price in store {store}",
            sku,
        )

    @staticmethod
    def tax_configuration_missing(store: str, jurisdiction: str) -> PricingError:
        return PricingError(
            ErrorKind.TAX_CONFIGURATION_MISSING,
            f"no tax rule for {jurisdiction}",
            store,
        )

    @staticmethod
    def no_applicable_package(sku: str, weight: Decimal) -> PricingError:
        return PricingError(
            ErrorKind.NO_APPLICABLE_PACKAGE,
            "no configured package type can hold this item",
            sku,
            weight,
        )

    @staticmethod
    def carrier_unavailable(cart: str, carriers: list[str]) -> PricingError:
        failed = ", ".join(carriers) if carriers else "none enabled"
        return PricingError(
            ErrorKind.CARRIER_UNAVAILABLE,
            f"all carriers failed ({failed})",
            cart,
        )

    @staticmethod
    def carrier_failed(carrier: str, message: str) -> PricingError:
        return PricingError(ErrorKind.CARRIER_UNAVAILABLE, message, carrier)

    @staticmethod
    def not_found(entity: str, ref: str) -> PricingError:
        return PricingError(ErrorKind.NOT_FOUND, f"{entity} not found", ref)

    @staticmethod
    def expired(entity: str, ref: str) -> PricingError:
        return PricingError(ErrorKind.EXPIRED, f"{entity} has expired", ref)

    @staticmethod
    def state_conflict(order: str, message: str, amount: Decimal | None = None) -> PricingError:
        return PricingError(ErrorKind.TRANSACTION_STATE_CONFLICT, message, order, amount)

    @staticmethod
    def concurrent_update(order: str) -> PricingError:
        return PricingError(
            ErrorKind.CONCURRENT_UPDATE,
            "ledger changed while the operation was running",
            order,
        )

    @staticmethod
    def store(error: StoreError) -> PricingError:
        return PricingError(ErrorKind.STORE, error.message)


__all__ = (
    "ErrorKind",
    "PricingError",
    "StoreError",
    "Errors",
)
