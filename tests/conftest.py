"""
Pytest fixtures for the payroll test suite.

Provides:
- Structured logging configuration and log capture
- An in-memory SQLite database session per test
- Standard PF / ESI rules and a Basic / HRA / Special Allowance head set
"""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from payroll_config import get_active_config
from payroll_engines.salary_structure import ESIRule, PFRule, SalaryHeadDefinition
from payroll_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tests.salary_builders import make_head

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            engine.calculate(...)
            logs = captured_logs()
            assert any(r["message"] == "salary_calculation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session():
    """A session bound to a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    db_session = get_session()
    try:
        yield db_session
    finally:
        db_session.close()
        drop_tables()
        reset_engine()


@pytest.fixture
def company_id():
    return uuid4()


@pytest.fixture
def actor_id():
    return TEST_ACTOR_ID


@pytest.fixture(scope="session")
def payroll_config():
    return get_active_config()


# =============================================================================
# Engine inputs
# =============================================================================


@pytest.fixture
def standard_pf_rule() -> PFRule:
    return PFRule(
        emp_share_ac1="12",
        er_share_ac2="3.67",
        eps_ac21="8.33",
        edli_charges_ac21="0.5",
        admin_charges_ac10="0.5",
        pf_wage_ceiling="15000",
        is_active=True,
    )


@pytest.fixture
def standard_esi_rule() -> ESIRule:
    return ESIRule(
        emp_share="0.75",
        employer_share="3.25",
        esi_wage_ceiling="21000",
        is_active=True,
    )


@pytest.fixture
def basic_hra_special() -> list[SalaryHeadDefinition]:
    """Basic (fixed 20000, PF), HRA (50% of BASIC), Special Allowance (PF)."""
    return [
        make_head("basic", "BASIC", value="20000", flags=("PF",)),
        make_head("hra", "HRA", value="50", is_percentage=True, percentage_of="BASIC"),
        make_head("special", "SA", flags=("PF",), balancing=True),
    ]
