"""
Tests for payroll configuration loading.

Covers:
- The shipped default configuration set
- Engine settings parsing (rounding, gratuity)
- Statutory default parsing and validation
- Checksum determinism and PAYROLL_CONFIG_TRACE
"""

from datetime import date
from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal

import pytest
import yaml

from payroll_config import StatutoryRateDef, get_active_config
from payroll_config.loader import (
    compute_checksum,
    load_config_set,
    parse_date,
    parse_engine_settings,
    parse_statutory_rate,
)


def _write_set(root, name="custom", engine=None, statutory=None):
    directory = root / name
    directory.mkdir()
    (directory / "engine.yaml").write_text(yaml.safe_dump(engine or {"config_id": "CUSTOM"}))
    (directory / "statutory.yaml").write_text(
        yaml.safe_dump(statutory or {"statutory_rates": []})
    )
    return directory


class TestDefaultConfigSet:
    """The configuration set shipped with the package."""

    def test_identity(self, payroll_config):
        assert payroll_config.config_id == "PAYROLL-IN-DEFAULT"
        assert payroll_config.version == 1
        assert len(payroll_config.checksum) == 64

    def test_engine_settings(self, payroll_config):
        engine = payroll_config.engine
        assert engine.rounding_places == 2
        assert engine.rounding_mode == ROUND_HALF_UP
        assert engine.gratuity_days_per_year == Decimal("15")
        assert engine.gratuity_working_days == Decimal("26")

    def test_pf_default(self, payroll_config):
        pf = payroll_config.statutory_default("PF")
        rule = pf.to_pf_rule()

        assert pf.effective_from == date(2024, 4, 1)
        assert rule.employee_rate == Decimal("12")
        assert rule.employer_rate == Decimal("13.00")
        assert rule.wage_ceiling == Decimal("15000")

    def test_esi_default(self, payroll_config):
        rule = payroll_config.statutory_default("ESI").to_esi_rule()
        assert rule.employee_rate == Decimal("0.75")
        assert rule.employer_rate == Decimal("3.25")
        assert rule.wage_ceiling == Decimal("21000")

    def test_gratuity_default(self, payroll_config):
        gratuity = payroll_config.statutory_default("GRATUITY")
        assert gratuity.gratuity_base == "Basic"
        assert not gratuity.to_gratuity_rule().overrides_formula

    def test_pf_scheme_details(self, payroll_config):
        rule = payroll_config.statutory_default("PF").to_pf_rule()
        assert rule.calc_type == "Fixed"
        assert rule.admin_charges_ac22 == Decimal("0")
        assert rule.eps_wage_ceiling == Decimal("15000")
        assert rule.min_eps_contribution == Decimal("75")

    def test_unknown_rate_type_default(self, payroll_config):
        assert payroll_config.statutory_default("LWF") is None


class TestGetActiveConfig:
    """Entry point behaviour."""

    def test_missing_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config("nope", config_dir=tmp_path)

    def test_custom_directory(self, tmp_path):
        _write_set(tmp_path, engine={
            "config_id": "TEST-SET",
            "version": 3,
            "rounding": {"places": 0, "mode": "ROUND_HALF_EVEN"},
        })
        config = get_active_config("custom", config_dir=tmp_path)

        assert config.config_id == "TEST-SET"
        assert config.version == 3
        assert config.engine.rounding_places == 0
        assert config.engine.rounding_mode == ROUND_HALF_EVEN
        assert config.statutory_defaults == ()

    def test_config_trace_logged(self, captured_logs):
        config = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["config_set_id"] == config.config_id
        assert traces[0]["checksum"] == config.checksum

    def test_checksum_stable(self):
        assert get_active_config().checksum == get_active_config().checksum


class TestParsing:
    """Fragment parsers."""

    def test_parse_date(self):
        assert parse_date("2025-04-01") == date(2025, 4, 1)
        assert parse_date(date(2025, 4, 1)) == date(2025, 4, 1)
        with pytest.raises(ValueError):
            parse_date(20250401)

    def test_engine_defaults_when_omitted(self):
        settings = parse_engine_settings({})
        assert settings.rounding_places == 2
        assert settings.rounding_mode == ROUND_HALF_UP

    def test_unknown_rounding_mode(self):
        with pytest.raises(ValueError):
            parse_engine_settings({"rounding": {"mode": "ROUND_SIDEWAYS"}})
        with pytest.raises(ValueError):
            parse_engine_settings({"rounding": {"mode": "getcontext"}})

    def test_statutory_rate_values_are_decimal(self):
        rate = parse_statutory_rate({
            "rate_type": "esi",
            "effective_from": "2025-01-01",
            "emp_share": 0.75,
            "esi_wage_ceiling": "21000",
        })

        assert rate.rate_type == "ESI"
        assert rate.emp_share == Decimal("0.75")
        assert rate.esi_wage_ceiling == Decimal("21000")
        assert rate.employer_share is None

    def test_statutory_rate_text_fields(self):
        rate = parse_statutory_rate({
            "rate_type": "GRATUITY",
            "effective_from": "2025-01-01",
            "gratuity_percent": 4.81,
            "gratuity_base": " Basic ",
            "calc_type": "",
        })

        assert rate.gratuity_percent == Decimal("4.81")
        assert rate.gratuity_base == "Basic"
        assert rate.calc_type is None

    def test_statutory_rate_requires_effective_from(self):
        with pytest.raises(KeyError):
            parse_statutory_rate({"rate_type": "PF"})

    def test_statutory_rate_unknown_type(self):
        with pytest.raises(ValueError):
            parse_statutory_rate({"rate_type": "LWF", "effective_from": "2025-01-01"})

    def test_effective_to_before_from(self):
        with pytest.raises(ValueError):
            StatutoryRateDef(
                rate_type="PF",
                effective_from=date(2025, 4, 1),
                effective_to=date(2025, 3, 31),
            )

    def test_latest_default_wins(self, tmp_path):
        directory = _write_set(tmp_path, statutory={"statutory_rates": [
            {"rate_type": "PF", "effective_from": "2023-04-01", "emp_share_ac1": "10"},
            {"rate_type": "PF", "effective_from": "2024-04-01", "emp_share_ac1": "12"},
        ]})
        config = load_config_set(directory)
        assert config.statutory_default("PF").emp_share_ac1 == Decimal("12")

    def test_checksum_sensitive_to_content(self):
        assert compute_checksum({"a": 1}) == compute_checksum({"a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
