"""
Titles — localized labels for total lines.

String tables are owned by the localization collaborator; this module
only defines the lookup and an English fallback.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from orderflow.totals._types import TotalCode


class TitleSource(Protocol):
    def title(self, code: TotalCode, language: str) -> str: ...


ENGLISH: Mapping[TotalCode, str] = {
    TotalCode.SUBTOTAL: "Subtotal",
    TotalCode.DISCOUNT: "Discount",
    TotalCode.TAX: "Tax",
    TotalCode.SHIPPING: "Shipping",
    TotalCode.SHIPPING_TAX: "Tax on shipping",
}


class DefaultTitles:
    """Per-language tables with English as the fallback for missing entries."""

    def __init__(self, tables: Mapping[str, Mapping[TotalCode, str]] | None = None) -> None:
        self._tables = {lang.lower(): dict(table) for lang, table in (tables or {}).items()}

    def title(self, code: TotalCode, language: str) -> str:
        table = self._tables.get(language.lower(), {})
        return table.get(code, ENGLISH[code])


__all__ = ("TitleSource", "DefaultTitles", "ENGLISH")
