"""
Tests for structured payroll logging (payroll_kernel/logging_config.py).

Covers:
- JSON envelope, extras and bound context fields on every line
- Encoding of UUIDs, amounts, dates, enums and flag sets
- Exception code and attributes from payroll kernel errors
- LogContext binding and restoration
- configure_logging idempotency and level names
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from payroll_engines.salary_structure import SalaryMode, StatutoryFlag
from payroll_kernel.exceptions import (
    InvalidSalaryModeError,
    NoSalaryHeadsResolvedError,
    StatutoryRateOverlapError,
)
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def log_stream():
    """A fresh payroll_kernel configuration writing JSON to a StringIO."""
    reset_logging()
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    configure_logging(handler=handler, level=logging.DEBUG)
    yield stream
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _records(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# Formatter output
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_envelope(self, log_stream):
        get_logger("modules.salary.service").info("salary_structure_started")

        record = _records(log_stream)[0]
        assert record["level"] == "INFO"
        assert record["message"] == "salary_structure_started"
        assert record["logger"] == "payroll_kernel.modules.salary.service"
        assert record["ts"].endswith("+00:00")

    def test_salary_values_encoded(self, log_stream):
        config_id = uuid4()
        get_logger("test").info("salary_structure_committed", extra={
            "salary_config_id": config_id,
            "annual_ctc": Decimal("646800.00"),
            "mode": SalaryMode.CTC,
            "effective_from": date(2024, 4, 1),
            "flags": frozenset({StatutoryFlag.PF.value, StatutoryFlag.ESI.value}),
        })

        record = _records(log_stream)[0]
        assert record["salary_config_id"] == str(config_id)
        assert record["annual_ctc"] == "646800.00"
        assert record["mode"] == "CTC"
        assert record["effective_from"] == "2024-04-01"
        assert record["flags"] == ["ESI", "PF"]

    def test_bound_fields_precede_extras(self, log_stream):
        company_id = uuid4()
        with LogContext.bind(company_id=company_id):
            get_logger("test").info("rate_lookup", extra={
                "company_id": "ignored",
                "rate_type": "PF",
            })

        record = _records(log_stream)[0]
        assert record["company_id"] == str(company_id)
        assert record["rate_type"] == "PF"

    def test_no_context_fields_when_unbound(self, log_stream):
        get_logger("test").info("bare")
        record = _records(log_stream)[0]
        assert not {"correlation_id", "company_id", "employee_id", "actor_id"} & set(record)

    def test_plain_exception(self, log_stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _records(log_stream)[0]
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_payroll_error_fields(self, log_stream):
        try:
            raise InvalidSalaryModeError("NET")
        except InvalidSalaryModeError:
            get_logger("test").error("mode_error", exc_info=True)

        record = _records(log_stream)[0]
        assert record["exc_code"] == "INVALID_SALARY_MODE"
        assert record["exc_field"] == "mode"
        assert record["exc_mode"] == "NET"

    def test_payroll_error_list_attribute(self, log_stream):
        try:
            raise NoSalaryHeadsResolvedError(["a", "b"], company_id="co-1")
        except NoSalaryHeadsResolvedError:
            get_logger("test").error("no_heads", exc_info=True)

        record = _records(log_stream)[0]
        assert record["exc_code"] == "NO_SALARY_HEADS_RESOLVED"
        assert record["exc_selected_head_ids"] == ["a", "b"]
        assert record["exc_company_id"] == "co-1"

    def test_level_filtering(self, log_stream):
        logging.getLogger("payroll_kernel").setLevel(logging.INFO)
        logger = get_logger("test")
        logger.debug("dropped")
        logger.warning("kept")
        assert [r["message"] for r in _records(log_stream)] == ["kept"]


class TestLogFields:

    def test_includes_code_and_attributes(self):
        error = StatutoryRateOverlapError("PF", "2024-04-01", "rate-1")
        assert error.log_fields() == {
            "code": "STATUTORY_RATE_OVERLAP",
            "rate_type": "PF",
            "effective_from": "2024-04-01",
            "existing_rate_id": "rate-1",
        }

    def test_formatter_usable_without_configuration(self):
        record = logging.LogRecord(
            "payroll_kernel.test", logging.INFO, __file__, 1, "direct", (), None,
        )
        assert json.loads(StructuredFormatter().format(record))["message"] == "direct"


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_clear(self):
        LogContext.set(company_id="co", employee_id=None)
        assert LogContext.get_all() == {"company_id": "co"}
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_stringifies_ids(self):
        company_id, employee_id = uuid4(), uuid4()
        with LogContext.bind(company_id=company_id, employee_id=employee_id):
            assert LogContext.get_all() == {
                "company_id": str(company_id),
                "employee_id": str(employee_id),
            }
        assert LogContext.get_all() == {}

    def test_nested_bind_restores_outer(self):
        with LogContext.bind(company_id="co", actor_id="first"):
            with LogContext.bind(actor_id="second"):
                assert LogContext.get_all() == {"company_id": "co", "actor_id": "second"}
            assert LogContext.get_all() == {"company_id": "co", "actor_id": "first"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(employee_id="e-1"):
                raise RuntimeError("calculation failed")
        assert LogContext.get_all() == {}

    def test_bind_skips_none(self):
        LogContext.set(employee_id="kept")
        with LogContext.bind(employee_id=None, company_id="co"):
            assert LogContext.get_all()["employee_id"] == "kept"

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="payslip_id"):
            with LogContext.bind(payslip_id="p-1"):
                pass


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_second_call_is_ignored(self, log_stream):
        root = logging.getLogger("payroll_kernel")
        before = list(root.handlers)
        extra_handler = logging.StreamHandler(StringIO())

        configure_logging(handler=extra_handler)

        assert root.handlers == before
        assert extra_handler not in root.handlers
        assert extra_handler.formatter is None

    def test_handler_gets_json_formatter(self, log_stream):
        ours = [
            h for h in logging.getLogger("payroll_kernel").handlers
            if getattr(h, "stream", None) is log_stream
        ]
        assert len(ours) == 1
        assert isinstance(ours[0].formatter, StructuredFormatter)

    def test_level_name_accepted(self, log_stream):
        reset_logging()
        configure_logging(level="warning", handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("payroll_kernel").level == logging.WARNING

    def test_unknown_level_name_rejected(self, log_stream):
        reset_logging()
        with pytest.raises(ValueError, match="verbose"):
            configure_logging(level="verbose")

    def test_child_loggers_share_handler(self, log_stream):
        get_logger("engines.salary_structure.allocation").debug("allocated")
        record = _records(log_stream)[0]
        assert record["logger"] == "payroll_kernel.engines.salary_structure.allocation"

    def test_reset_removes_handlers(self, log_stream):
        reset_logging()
        assert logging.getLogger("payroll_kernel").handlers == []
