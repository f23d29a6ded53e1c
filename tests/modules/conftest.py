"""
Shared fixtures for salary module tests.

DESIGN RULE: Every fixture is opt-in.  No autouse.  Each test declares the
heads and rates it depends on in its function signature.
"""

from uuid import UUID

import pytest

from payroll_modules.salary import SalaryStructureService

TEST_EMPLOYEE_ID = UUID("00000000-0000-4000-a000-000000000003")
TEST_OTHER_EMPLOYEE_ID = UUID("00000000-0000-4000-a000-000000000004")


@pytest.fixture
def salary_service(session, payroll_config):
    return SalaryStructureService(session, config=payroll_config)


@pytest.fixture
def seeded_rates(salary_service, company_id, actor_id):
    """Default PF, ESI and gratuity rates from the active config."""
    return salary_service.seed_default_rates(company_id, actor_id)


@pytest.fixture
def standard_heads(salary_service, company_id, actor_id):
    """
    Basic (fixed 20000, PF), HRA (50% of BASIC) and the Special Allowance
    balancing head, keyed by short name.
    """
    basic = salary_service.create_salary_head(
        company_id, actor_id, name="Basic", field_type="Earnings",
        short_name="BASIC", value="20000", applicable_for=["PF", "Gratuity"],
    )
    hra = salary_service.create_salary_head(
        company_id, actor_id, name="House Rent Allowance", field_type="Earnings",
        short_name="HRA", is_percentage=True, value="50", percentage_of="BASIC",
    )
    special = salary_service.ensure_special_allowance_head(company_id, actor_id)
    return {"BASIC": basic, "HRA": hra, "SA": special}


def head_ids(heads) -> list[str]:
    return [str(head.id) for head in heads.values()]
