"""
Tests for the salary calculation passes.

Covers:
- Allocation pass: fixed, percentage-of-input and percentage-of-head values
- Balancing head as exact residual (including negative residuals)
- PF wage ceiling capping and gratuity provision
- ESI eligibility decided on the aggregate gross
- Aggregation of rows into totals
"""

from decimal import Decimal

from payroll_engines.salary_structure import (
    AllocationPass,
    EsiCeilingReconciler,
    ESIRule,
    GratuityRule,
    HeadResolver,
    PFRule,
    SalaryEngineSettings,
    WarningCode,
    aggregate_rows,
)
from tests.salary_builders import make_head


def _run(heads, input_amount, pf_rule=None, settings=None, gratuity_rule=None):
    resolved = HeadResolver().resolve(heads, [h.id for h in heads])
    return AllocationPass(settings).run(
        resolved, Decimal(input_amount), pf_rule, gratuity_rule,
    )


def _by_id(result):
    return {a.head.id: a for a in result.allocations}


class TestAllocationValues:
    """Base amounts for each valuation rule."""

    def test_fixed_amount(self):
        result = _run([make_head("conv", "CONV", value="1600")], "50000")
        assert result.allocations[0].base_amount == Decimal("1600.00")

    def test_fixed_amount_rounded_half_up(self):
        result = _run([make_head("x", "X", value="1.005")], "50000")
        assert result.allocations[0].base_amount == Decimal("1.01")

    def test_percentage_of_input(self):
        heads = [
            make_head("a", "A", value="40", is_percentage=True, percentage_of="CTC"),
            make_head("b", "B", value="10", is_percentage=True, percentage_of="GROSS"),
            make_head("c", "C", value="5", is_percentage=True, percentage_of="Amount"),
            make_head("d", "D", value="1", is_percentage=True),
        ]
        amounts = {k: a.base_amount for k, a in _by_id(_run(heads, "50000")).items()}
        assert amounts == {
            "a": Decimal("20000.00"),
            "b": Decimal("5000.00"),
            "c": Decimal("2500.00"),
            "d": Decimal("500.00"),
        }

    def test_percentage_of_other_head(self):
        heads = [
            make_head("basic", "BASIC", value="20000"),
            make_head("hra", "HRA", value="40", is_percentage=True, percentage_of="BASIC"),
        ]
        allocations = _by_id(_run(heads, "50000"))
        assert allocations["hra"].base_amount == Decimal("8000.00")

    def test_chain_uses_rounded_amounts(self):
        heads = [
            make_head("a", "A", value="33.333", is_percentage=True),
            make_head("b", "B", value="50", is_percentage=True, percentage_of="A"),
        ]
        allocations = _by_id(_run(heads, "100"))
        assert allocations["a"].base_amount == Decimal("33.33")
        assert allocations["b"].base_amount == Decimal("16.67")

    def test_unresolved_reference_falls_back_to_input(self):
        heads = [make_head("b", "B", value="50", is_percentage=True, percentage_of="MISSING")]
        result = _run(heads, "40000")

        assert result.allocations[0].base_amount == Decimal("20000.00")
        assert [w.code for w in result.warnings] == [
            WarningCode.UNRESOLVED_PERCENTAGE_REFERENCE,
        ]

    def test_empty_reference_means_input_without_warning(self):
        heads = [make_head("b", "B", value="40", is_percentage=True, percentage_of="")]
        result = _run(heads, "40000")

        assert heads[0].percentage_of is None
        assert heads[0].references_input_amount
        assert result.allocations[0].base_amount == Decimal("16000.00")
        assert result.warnings == ()

    def test_self_reference_falls_back_to_input(self):
        heads = [make_head("b", "B", value="10", is_percentage=True, percentage_of="B")]
        result = _run(heads, "50000")

        assert result.allocations[0].base_amount == Decimal("5000.00")
        assert result.warnings[0].head_id == "b"

    def test_missing_value_is_zero(self):
        head = make_head("x", "X")
        result = _run([head], "1000")
        assert result.allocations[0].base_amount == Decimal("0.00")


class TestBalancingHead:
    """Residual allocation to the special allowance head."""

    def test_residual_absorbs_remainder(self):
        heads = [
            make_head("basic", "BASIC", value="20000"),
            make_head("special", "SA", balancing=True),
        ]
        result = _run(heads, "50000")

        balancing = result.allocations[-1]
        assert balancing.is_special_allowance
        assert balancing.base_amount == Decimal("30000.00")
        assert result.total_allocated == Decimal("20000.00")

    def test_residual_is_exact_after_rounding(self):
        heads = [
            make_head("a", "A", value="33.333", is_percentage=True),
            make_head("b", "B", value="33.333", is_percentage=True),
            make_head("special", "SA", balancing=True),
        ]
        result = _run(heads, "100.01")
        total = sum(a.base_amount for a in result.allocations)
        assert total == Decimal("100.01")

    def test_negative_residual_kept_with_warning(self):
        heads = [
            make_head("basic", "BASIC", value="60000"),
            make_head("special", "SA", balancing=True),
        ]
        result = _run(heads, "50000")

        assert result.allocations[-1].base_amount == Decimal("-10000.00")
        assert [w.code for w in result.warnings] == [WarningCode.NEGATIVE_BALANCING_AMOUNT]
        assert result.warnings[0].head_id == "special"

    def test_balancing_last_even_if_defined_first(self):
        heads = [
            make_head("special", "SA", balancing=True),
            make_head("basic", "BASIC", value="10000"),
        ]
        result = _run(heads, "25000")
        assert [a.head.id for a in result.allocations] == ["basic", "special"]


class TestProvidentFund:
    """PF contributions and the wage ceiling."""

    def test_base_below_ceiling(self, standard_pf_rule):
        heads = [make_head("basic", "BASIC", value="10001", flags=("PF",))]
        allocation = _run(heads, "50000", standard_pf_rule).allocations[0]

        assert allocation.pf_wage_base == Decimal("10001.00")
        assert allocation.pf_employee == Decimal("1200.12")
        assert allocation.pf_employer == Decimal("1300.13")

    def test_base_capped_at_ceiling(self, standard_pf_rule):
        heads = [make_head("basic", "BASIC", value="20000", flags=("PF",))]
        allocation = _run(heads, "50000", standard_pf_rule).allocations[0]

        assert allocation.base_amount == Decimal("20000.00")
        assert allocation.pf_wage_base == Decimal("15000")
        assert allocation.pf_employee == Decimal("1800.00")
        assert allocation.pf_employer == Decimal("1950.00")

    def test_zero_ceiling_means_uncapped(self):
        rule = PFRule(emp_share_ac1="12", er_share_ac2="12", pf_wage_ceiling="0")
        heads = [make_head("basic", "BASIC", value="20000", flags=("PF",))]
        allocation = _run(heads, "50000", rule).allocations[0]

        assert allocation.pf_employee == Decimal("2400.00")
        assert allocation.pf_employer == Decimal("2400.00")

    def test_head_without_flag(self, standard_pf_rule):
        heads = [make_head("hra", "HRA", value="10000")]
        allocation = _run(heads, "50000", standard_pf_rule).allocations[0]
        assert allocation.pf_employee == Decimal("0")
        assert allocation.pf_wage_base == Decimal("0")

    def test_inactive_rule(self):
        rule = PFRule(emp_share_ac1="12", pf_wage_ceiling="15000", is_active=False)
        heads = [make_head("basic", "BASIC", value="10000", flags=("PF",))]
        allocation = _run(heads, "50000", rule).allocations[0]
        assert allocation.pf_employee == Decimal("0")
        assert allocation.pf_employer == Decimal("0")

    def test_missing_rule(self):
        heads = [make_head("basic", "BASIC", value="10000", flags=("PF",))]
        allocation = _run(heads, "50000", None).allocations[0]
        assert allocation.pf_employee == Decimal("0")


class TestGratuity:
    """Gratuity provision of 15/26 of a month's pay, spread over 12 months."""

    def test_gratuity_on_flagged_head(self):
        heads = [make_head("basic", "BASIC", value="26000", flags=("Gratuity",))]
        allocation = _run(heads, "50000").allocations[0]
        assert allocation.gratuity_employer == Decimal("1250.00")

    def test_gratuity_rounded(self):
        heads = [make_head("basic", "BASIC", value="10000", flags=("Gratuity",))]
        allocation = _run(heads, "50000").allocations[0]
        # 10000 * 15 / 26 / 12 = 480.769...
        assert allocation.gratuity_employer == Decimal("480.77")

    def test_custom_day_counts(self):
        settings = SalaryEngineSettings(gratuity_days_per_year=30, gratuity_working_days=30)
        heads = [make_head("basic", "BASIC", value="12000", flags=("Gratuity",))]
        allocation = _run(heads, "50000", settings=settings).allocations[0]
        assert allocation.gratuity_employer == Decimal("1000.00")

    def test_no_gratuity_without_flag(self):
        heads = [make_head("basic", "BASIC", value="26000")]
        assert _run(heads, "50000").allocations[0].gratuity_employer == Decimal("0")

    def test_company_percent_replaces_day_formula(self):
        heads = [make_head("basic", "BASIC", value="20000", flags=("Gratuity",))]
        rule = GratuityRule(gratuity_percent="4.81", gratuity_base="Basic")
        allocation = _run(heads, "50000", gratuity_rule=rule).allocations[0]
        assert allocation.gratuity_employer == Decimal("962.00")

    def test_rule_without_percent_keeps_day_formula(self):
        heads = [make_head("basic", "BASIC", value="26000", flags=("Gratuity",))]
        rule = GratuityRule(gratuity_base="Basic")
        allocation = _run(heads, "50000", gratuity_rule=rule).allocations[0]
        assert allocation.gratuity_employer == Decimal("1250.00")

    def test_inactive_rule_ignored(self):
        heads = [make_head("basic", "BASIC", value="26000", flags=("Gratuity",))]
        rule = GratuityRule(gratuity_percent="10", is_active=False)
        allocation = _run(heads, "50000", gratuity_rule=rule).allocations[0]
        assert allocation.gratuity_employer == Decimal("1250.00")

    def test_balancing_head_uses_rule(self):
        heads = [
            make_head("basic", "BASIC", value="20000"),
            make_head("special", "SA", flags=("Gratuity",), balancing=True),
        ]
        rule = GratuityRule(gratuity_percent="10")
        special = _run(heads, "50000", gratuity_rule=rule).allocations[-1]
        assert special.gratuity_employer == Decimal("3000.00")

    def test_formula_text(self):
        settings = SalaryEngineSettings()
        assert settings.gratuity_formula_for(None) == "15/26 * Basic / 12"
        assert settings.gratuity_formula_for(
            GratuityRule(gratuity_percent="4.8100", gratuity_base="Gross"),
        ) == "4.81% of Gross"
        assert settings.gratuity_formula_for(GratuityRule(gratuity_percent="10")) == \
            "10% of Basic"


class TestEsiDetermination:
    """Eligibility is decided once, on both input amount and total gross."""

    def setup_method(self):
        self.reconciler = EsiCeilingReconciler()

    def _allocations(self, heads, input_amount):
        return _run(heads, input_amount).allocations

    def test_within_ceiling(self, standard_esi_rule):
        heads = [
            make_head("basic", "BASIC", value="10000", flags=("ESI",)),
            make_head("special", "SA", flags=("ESI",), balancing=True),
        ]
        allocations = self._allocations(heads, "20000")
        determination = self.reconciler.determine(
            allocations, Decimal("20000"), standard_esi_rule,
        )

        assert determination.eligible
        assert determination.total_gross == Decimal("20000.00")
        assert determination.warning is None

    def test_input_over_ceiling(self, standard_esi_rule):
        heads = [
            make_head("basic", "BASIC", value="10000", flags=("ESI",)),
            make_head("special", "SA", flags=("ESI",), balancing=True),
        ]
        allocations = self._allocations(heads, "25000")
        determination = self.reconciler.determine(
            allocations, Decimal("25000"), standard_esi_rule,
        )

        assert not determination.eligible
        assert determination.warning.code == WarningCode.ESI_CEILING_EXCEEDED

    def test_total_gross_over_ceiling(self, standard_esi_rule):
        heads = [
            make_head("a", "A", value="12000", flags=("ESI",)),
            make_head("b", "B", value="12000", flags=("ESI",)),
        ]
        allocations = self._allocations(heads, "20000")
        determination = self.reconciler.determine(
            allocations, Decimal("20000"), standard_esi_rule,
        )

        assert determination.total_gross == Decimal("24000.00")
        assert not determination.eligible

    def test_no_warning_when_no_head_subject_to_esi(self, standard_esi_rule):
        heads = [make_head("basic", "BASIC", value="30000")]
        allocations = self._allocations(heads, "30000")
        determination = self.reconciler.determine(
            allocations, Decimal("30000"), standard_esi_rule,
        )

        assert not determination.eligible
        assert determination.warning is None

    def test_zero_ceiling_means_unlimited(self):
        rule = ESIRule(emp_share="0.75", employer_share="3.25", esi_wage_ceiling="0")
        heads = [make_head("basic", "BASIC", value="100000", flags=("ESI",))]
        allocations = self._allocations(heads, "100000")
        determination = self.reconciler.determine(allocations, Decimal("100000"), rule)

        assert determination.eligible
        assert determination.ceiling is None

    def test_inactive_or_missing_rule(self):
        heads = [make_head("basic", "BASIC", value="10000", flags=("ESI",))]
        allocations = self._allocations(heads, "10000")
        inactive = ESIRule(emp_share="0.75", esi_wage_ceiling="21000", is_active=False)

        assert not self.reconciler.determine(allocations, Decimal("10000"), None).eligible
        assert not self.reconciler.determine(allocations, Decimal("10000"), inactive).eligible


class TestRowBuilding:
    """Final rows: ESI amounts, monthly and annual figures."""

    def setup_method(self):
        self.reconciler = EsiCeilingReconciler()

    def test_esi_only_on_flagged_rows(self, standard_esi_rule):
        heads = [
            make_head("basic", "BASIC", value="10000", flags=("ESI",)),
            make_head("conv", "CONV", value="1600"),
        ]
        allocations = _run(heads, "20000").allocations
        determination = self.reconciler.determine(
            allocations, Decimal("20000"), standard_esi_rule,
        )
        basic, conv = self.reconciler.build_rows(allocations, determination, standard_esi_rule)

        assert basic.esi_employee == Decimal("75.00")
        assert basic.esi_employer == Decimal("325.00")
        assert basic.monthly == Decimal("9925.00")
        assert basic.annual == Decimal("119100.00")
        assert conv.esi_employee == Decimal("0")
        assert conv.monthly == Decimal("1600.00")

    def test_monthly_deducts_pf_and_esi(self, standard_pf_rule, standard_esi_rule):
        heads = [make_head("basic", "BASIC", value="10000", flags=("PF", "ESI"))]
        allocations = _run(heads, "15000", standard_pf_rule).allocations
        determination = self.reconciler.determine(
            allocations, Decimal("15000"), standard_esi_rule,
        )
        (row,) = self.reconciler.build_rows(allocations, determination, standard_esi_rule)

        assert row.pf_employee == Decimal("1200.00")
        assert row.esi_employee == Decimal("75.00")
        assert row.monthly == Decimal("8725.00")
        assert row.annual == row.monthly * 12
        assert row.formula == "Fixed ₹10000"


class TestAggregation:
    """Totals across rows."""

    def test_totals(self, standard_pf_rule, basic_hra_special):
        resolved = HeadResolver().resolve(basic_hra_special, ["basic", "hra", "special"])
        allocation = AllocationPass().run(resolved, Decimal("50000"), standard_pf_rule)
        reconciler = EsiCeilingReconciler()
        determination = reconciler.determine(allocation.allocations, Decimal("50000"), None)
        rows = reconciler.build_rows(allocation.allocations, determination, None)

        totals = aggregate_rows(rows)

        assert totals.total_gross == Decimal("50000.00")
        assert totals.total_pf_employee == Decimal("3600.00")
        assert totals.total_pf_employer == Decimal("3900.00")
        assert totals.total_monthly == Decimal("46400.00")
        assert totals.net_in_hand == totals.total_monthly
        assert totals.total_annual == Decimal("556800.00")
        assert totals.ctc == Decimal("53900.00")
        assert totals.gross_salary == Decimal("50000.00")
        assert totals.annual_ctc == Decimal("646800.00")

    def test_empty_rows(self):
        totals = aggregate_rows([])
        assert totals.total_gross == Decimal("0")
        assert totals.ctc == Decimal("0")
        assert totals.total_employer_contribution == Decimal("0")
