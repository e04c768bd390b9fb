"""
Tax rule source — rules are configured per store outside this package.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from orderflow._types import StoreId
from orderflow.tax._types import TaxRule


class TaxRuleSource(Protocol):
    async def rules(self, store: StoreId) -> Sequence[TaxRule]:
        """Every rule configured for the store, any jurisdiction."""
        ...


class MemoryTaxRules:
    def __init__(self, rules: dict[StoreId, Iterable[TaxRule]] | None = None) -> None:
        self._rules = {store: tuple(rows) for store, rows in (rules or {}).items()}

    async def rules(self, store: StoreId) -> Sequence[TaxRule]:
        return self._rules.get(store, ())


__all__ = ("TaxRuleSource", "MemoryTaxRules")
