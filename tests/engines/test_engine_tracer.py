"""Tests for PAYROLL_ENGINE_TRACE records (payroll_engines.tracer)."""

from decimal import Decimal

import pytest

from payroll_engines.salary_structure import PFRule, SalaryMode, SalaryStructureEngine
from payroll_engines.tracer import canonical_text, input_fingerprint, traced_engine
from payroll_kernel.exceptions import InvalidSalaryModeError


def _traces(captured_logs) -> list[dict]:
    return [r for r in captured_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]


class TestCanonicalText:

    def test_amount_scale_ignored(self):
        assert canonical_text(Decimal("50000.00")) == canonical_text(Decimal("5E+4"))

    def test_mode_uses_value(self):
        assert canonical_text(SalaryMode.GROSS) == "GROSS"

    def test_selection_order_ignored(self):
        assert canonical_text(frozenset({"hra", "basic"})) == "{basic,hra}"

    def test_list_order_kept(self):
        assert canonical_text(["hra", "basic"]) == "[hra,basic]"

    def test_rule_dataclass_by_fields(self):
        first = PFRule(emp_share_ac1="12", pf_wage_ceiling="15000")
        second = PFRule(emp_share_ac1="12.00", pf_wage_ceiling="15000.0")
        assert canonical_text(first) == canonical_text(second)

    def test_booleans_distinct_from_integers(self):
        assert canonical_text(True) == "true"
        assert canonical_text(1) == "1"


class TestInputFingerprint:

    def test_sixteen_hex_chars(self):
        fingerprint = input_fingerprint(("mode",), {"mode": "CTC"})
        assert len(fingerprint) == 16
        int(fingerprint, 16)

    def test_changes_with_amount(self):
        fields = ("input_amount",)
        assert input_fingerprint(fields, {"input_amount": Decimal("50000")}) != \
            input_fingerprint(fields, {"input_amount": Decimal("50001")})

    def test_absent_field_counts_as_null(self):
        assert input_fingerprint(("mode",), {}) == input_fingerprint(("mode",), {"mode": None})


class TestTracedEngine:

    def test_positional_and_keyword_calls_match(self, captured_logs):
        @traced_engine("demo", "2.1", fingerprint_fields=("amount", "mode"))
        def demo(amount, mode="CTC"):
            return amount

        demo(Decimal("100"))
        demo(amount=Decimal("100.00"), mode="CTC")

        first, second = _traces(captured_logs)
        assert first["input_fingerprint"] == second["input_fingerprint"]
        assert first["outcome"] == "ok"
        assert first["engine_version"] == "2.1"

    def test_summary_fields_added(self, captured_logs):
        @traced_engine("demo", "1.0", summarize=lambda result: {"row_count": len(result)})
        def demo():
            return ["basic", "hra"]

        demo()
        assert _traces(captured_logs)[0]["row_count"] == 2

    def test_error_trace_then_reraise(self, captured_logs):
        @traced_engine("demo", "1.0")
        def demo():
            raise InvalidSalaryModeError("NET")

        with pytest.raises(InvalidSalaryModeError):
            demo()

        trace = _traces(captured_logs)[0]
        assert trace["level"] == "WARNING"
        assert trace["outcome"] == "error"
        assert trace["exc_type"] == "InvalidSalaryModeError"
        assert "duration_ms" in trace


class TestSalaryEngineTrace:

    def test_trace_carries_result_summary(self, captured_logs, basic_hra_special):
        result = SalaryStructureEngine().calculate(
            mode="CTC", input_amount="50000", heads=basic_hra_special,
            selected_head_ids=["basic", "hra", "special"],
        )

        trace = _traces(captured_logs)[0]
        assert trace["engine_name"] == "salary_structure"
        assert trace["function"] == "SalaryStructureEngine.calculate"
        assert trace["row_count"] == len(result.rows)
        assert trace["ctc"] == str(result.totals.ctc)
        assert trace["warning_count"] == len(result.warnings)

    def test_fingerprint_ignores_selection_order(self, captured_logs, basic_hra_special):
        engine = SalaryStructureEngine()
        engine.calculate(
            mode="CTC", input_amount="50000", heads=basic_hra_special,
            selected_head_ids={"basic", "hra"},
        )
        engine.calculate(
            mode="CTC", input_amount="50000", heads=basic_hra_special,
            selected_head_ids={"hra", "basic"},
        )

        first, second = _traces(captured_logs)
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_invalid_mode_traced_as_error(self, captured_logs, basic_hra_special):
        with pytest.raises(InvalidSalaryModeError):
            SalaryStructureEngine().calculate(
                mode="NET", input_amount="50000", heads=basic_hra_special,
                selected_head_ids=["basic"],
            )
        assert _traces(captured_logs)[0]["outcome"] == "error"
