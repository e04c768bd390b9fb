"""
TaxResolver — tax per priced line.

Each line is taxed on its own and rounded before the lines are summed,
once per applicable rule. Shipping is not taxed here; the aggregator
does it with `rule_tax` once the shipping amount is known.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal

import structlog
from kungfu import Result, Ok, Error, LazyCoroResult
from combinators import lift as L

from orderflow._errors import Errors, PricingError, StoreError
from orderflow._money import Currency, ZERO
from orderflow.context import Address, StoreSettings
from orderflow.pricing import PricedLine
from orderflow.tax._source import TaxRuleSource
from orderflow.tax._types import TaxRule, TaxedLines


log = structlog.get_logger(__name__)


def rule_tax(amount: Decimal, rules: Iterable[TaxRule], currency: Currency) -> Decimal:
    """Σ round_half_up(amount × rate) over rules."""
    return sum((currency.round(amount * rule.rate) for rule in rules), ZERO)


class TaxResolver:
    def __init__(self, rules: TaxRuleSource, mandatory: bool = False) -> None:
        """
        Args:
            rules: Tax rule collaborator
            mandatory: Default policy when the store does not set one
        """
        self._rules = rules
        self._mandatory = mandatory

    def apply_tax(
        self,
        lines: Sequence[PricedLine],
        store: StoreSettings,
        destination: Address | None = None,
    ) -> LazyCoroResult[TaxedLines, PricingError]:
        jurisdiction = destination if destination is not None else store.origin

        def resolve(rules: Sequence[TaxRule]) -> Result[TaxedLines, PricingError]:
            applicable = tuple(sorted(
                (rule for rule in rules if rule.applies_to(jurisdiction)),
                key=lambda rule: (rule.priority, rule.code),
            ))

            if not applicable:
                mandatory = store.tax_mandatory if store.tax_mandatory is not None else self._mandatory
                if mandatory:
                    return Error(Errors.tax_configuration_missing(store.id.value, jurisdiction.jurisdiction))
                log.info("tax_defaulted_to_zero", store=store.id.value, jurisdiction=jurisdiction.jurisdiction)

            taxed = tuple(
                line.with_tax(rule_tax(line.subtotal, applicable, store.currency))
                for line in lines
            )
            return Ok(TaxedLines(lines=taxed, rules=applicable, tax_on_shipping=store.tax_on_shipping))

        return L.catching_async(
            lambda: self._rules.rules(store.id),
            on_error=lambda e: Errors.store(StoreError(f"tax rule lookup failed: {e}", e)),
        ).then(lambda rules: L.from_result(resolve(rules)))


__all__ = ("TaxResolver", "rule_tax")
