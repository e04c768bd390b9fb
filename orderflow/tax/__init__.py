"""
Tax — per-line tax with configurable policy for missing rules.

    from orderflow import tax as T

    resolver = T.TaxResolver(T.MemoryTaxRules({store.id: [vat]}))
    taxed = (await resolver.apply_tax(lines, store, destination)).unwrap()
"""

from orderflow.tax._types import TaxRule, TaxedLines
from orderflow.tax._source import TaxRuleSource, MemoryTaxRules
from orderflow.tax._resolver import TaxResolver, rule_tax

__all__ = (
    "TaxRule",
    "TaxedLines",
    "TaxRuleSource",
    "MemoryTaxRules",
    "TaxResolver",
    "rule_tax",
)
