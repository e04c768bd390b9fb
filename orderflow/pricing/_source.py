"""
Price source — the store price table, owned by the catalog.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import Protocol

from orderflow._types import Sku, StoreId
from orderflow.pricing._types import PriceRecord


class PriceSource(Protocol):
    """Read-only price table lookup."""

    async def prices(self, store: StoreId, sku: Sku) -> Sequence[PriceRecord]:
        """All price records for sku in store, active or not."""
        ...


class MemoryPriceSource:
    """In-memory price table, for tests and demos."""

    def __init__(self, records: dict[StoreId, Iterable[PriceRecord]] | None = None) -> None:
        self._table: dict[tuple[StoreId, Sku], list[PriceRecord]] = defaultdict(list)
        for store, rows in (records or {}).items():
            for row in rows:
                self.add(store, row)

    def add(self, store: StoreId, record: PriceRecord) -> None:
        self._table[(store, record.sku)].append(record)

    async def prices(self, store: StoreId, sku: Sku) -> Sequence[PriceRecord]:
        return tuple(self._table.get((store, sku), ()))


__all__ = ("PriceSource", "MemoryPriceSource")
