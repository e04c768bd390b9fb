"""Tests for TaxResolver."""

from decimal import Decimal

from structlog.testing import capture_logs

from orderflow import USD, ErrorKind
from orderflow.context import Address
from orderflow.tax import MemoryTaxRules, TaxResolver, TaxRule, rule_tax

from factories import MAIN, NEW_YORK, line, store


D = Decimal

NY_TAX = TaxRule("us-ny", "NY sales tax", D("0.10"), country="US", zone="NY")
CA_TAX = TaxRule("us-ca", "CA sales tax", D("0.0725"), country="US", zone="CA")


def _resolver(*rules: TaxRule, mandatory: bool = False) -> TaxResolver:
    return TaxResolver(MemoryTaxRules({MAIN: rules}), mandatory=mandatory)


class TestRuleTax:
    def test_rounds_per_rule_then_sums(self):
        state = TaxRule("state", "State", D("0.0625"))
        city = TaxRule("city", "City", D("0.01"))
        # 0.624375 → 0.62, 0.0999 → 0.10
        assert rule_tax(D("9.99"), [state, city], USD) == D("0.72")

    def test_no_rules_no_tax(self):
        assert rule_tax(D("9.99"), [], USD) == 0


class TestApplyTax:
    async def test_destination_rule(self):
        taxed = (await _resolver(NY_TAX, CA_TAX).apply_tax([line("30.00")], store(), NEW_YORK)).unwrap()

        assert taxed.lines[0].tax == D("3.00")
        assert taxed.tax_amount == D("3.00")
        assert taxed.subtotal == D("30.00")
        assert taxed.rules == (NY_TAX,)

    async def test_tax_per_line_is_rounded(self):
        taxed = (await _resolver(NY_TAX).apply_tax(
            [line("0.15", "a"), line("0.15", "b")], store(), NEW_YORK,
        )).unwrap()

        # 0.015 rounds half up to 0.02 on each line
        assert [priced.tax for priced in taxed.lines] == [D("0.02"), D("0.02")]
        assert taxed.tax_amount == D("0.04")

    async def test_store_origin_without_destination(self):
        taxed = (await _resolver(NY_TAX, CA_TAX).apply_tax([line("100.00")], store())).unwrap()

        assert taxed.rules == (CA_TAX,)
        assert taxed.tax_amount == D("7.25")

    async def test_rules_ordered_by_priority(self):
        federal = TaxRule("fed", "Federal", D("0.05"), country="US", priority=1)
        state = TaxRule("state", "State", D("0.02"), country="US", priority=0)

        taxed = (await _resolver(federal, state).apply_tax([line("10.00")], store(), NEW_YORK)).unwrap()

        assert [r.code for r in taxed.rules] == ["state", "fed"]
        assert taxed.tax_amount == D("0.70")

    async def test_zero_tax_when_nothing_applies(self):
        with capture_logs() as logs:
            taxed = (await _resolver(CA_TAX).apply_tax([line("10.00")], store(), Address("GB"))).unwrap()

        assert taxed.tax_amount == 0
        assert taxed.rules == ()
        assert any(entry["event"] == "tax_defaulted_to_zero" for entry in logs)

    async def test_mandatory_tax_missing(self):
        result = await _resolver(CA_TAX, mandatory=True).apply_tax([line("10.00")], store(), Address("GB"))

        error = result.unwrap_err()
        assert error.kind is ErrorKind.TAX_CONFIGURATION_MISSING
        assert error.ref == MAIN.value

    async def test_store_setting_overrides_default_policy(self):
        relaxed = store(tax_mandatory=False)
        strict = store(tax_mandatory=True)

        assert (await _resolver(mandatory=True).apply_tax([line("1.00")], relaxed, NEW_YORK)).unwrap()
        error = (await _resolver().apply_tax([line("1.00")], strict, NEW_YORK)).unwrap_err()
        assert error.kind is ErrorKind.TAX_CONFIGURATION_MISSING

    async def test_carries_tax_on_shipping_flag(self):
        taxed = (await _resolver(NY_TAX).apply_tax([line("1.00")], store(tax_on_shipping=True), NEW_YORK)).unwrap()
        assert taxed.tax_on_shipping

    async def test_rule_lookup_failure(self):
        class BrokenRules:
            async def rules(self, store):
                raise ConnectionError("config service unreachable")

        error = (await TaxResolver(BrokenRules()).apply_tax([line("1.00")], store())).unwrap_err()

        assert error.kind is ErrorKind.STORE
