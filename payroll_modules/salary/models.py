"""
Salary Structure Domain Models (``payroll_modules.salary.models``).

Responsibility
--------------
Frozen dataclass value objects for the salary structure module: salary
heads as stored per company, statutory rates, the per-employee salary
configuration snapshot, its breakdown lines, and the outcome returned by
``SalaryStructureService``.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Converted from
and to ORM rows by ``payroll_modules.salary.orm``; translated into engine
inputs with ``to_definition()`` / ``to_pf_rule()`` / ``to_esi_rule()``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal``, never ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from payroll_engines.salary_structure.types import (
    ESIRule,
    FieldType,
    GratuityRule,
    PFRule,
    SalaryCalculationResult,
    SalaryHeadDefinition,
    SalaryMode,
    StatutoryFlag,
)


class RateType(Enum):
    """Statutory rate kinds kept in the rate table."""
    PF = "PF"
    ESI = "ESI"
    GRATUITY = "GRATUITY"

    @property
    def allows_overlap(self) -> bool:
        return self is RateType.GRATUITY


@dataclass(frozen=True)
class SalaryHead:
    """A salary head configured for a company."""
    id: UUID
    company_id: UUID
    name: str
    field_type: FieldType
    short_name: str | None = None
    is_percentage: bool = False
    value: Decimal | None = None
    percentage_of: str | None = None
    applicable_for: dict[str, bool] = field(default_factory=dict)
    form16_field: str | None = None
    is_system: bool = False
    system_code: str | None = None
    sort_order: int = 0

    def to_definition(self) -> SalaryHeadDefinition:
        return SalaryHeadDefinition(
            id=str(self.id),
            name=self.name,
            short_name=self.short_name,
            field_type=self.field_type,
            is_percentage=self.is_percentage,
            value=self.value,
            percentage_of=self.percentage_of,
            applicable_for=self.applicable_for,
            system_code=self.system_code,
            is_system=self.is_system,
        )


def flags_to_mapping(flags: Any) -> dict[str, bool]:
    """Normalise ``applicable_for`` input to the stored ``{"PF": true}`` form."""
    if not flags:
        return {}
    if isinstance(flags, dict):
        known = {flag.value for flag in StatutoryFlag}
        return {key: bool(enabled) for key, enabled in flags.items() if key in known}
    if isinstance(flags, (str, StatutoryFlag)):
        flags = (flags,)
    return {StatutoryFlag(flag).value: True for flag in flags}


@dataclass(frozen=True)
class StatutoryRate:
    """
    A dated PF, ESI or gratuity rate of one company.

    Only the fields of its ``rate_type`` are populated.
    """
    id: UUID
    company_id: UUID
    rate_type: RateType
    effective_from: date
    effective_to: date | None = None
    emp_share_ac1: Decimal | None = None
    er_share_ac2: Decimal | None = None
    eps_ac21: Decimal | None = None
    edli_charges_ac21: Decimal | None = None
    admin_charges_ac10: Decimal | None = None
    pf_wage_ceiling: Decimal | None = None
    emp_share: Decimal | None = None
    employer_share: Decimal | None = None
    esi_wage_ceiling: Decimal | None = None
    admin_charges_ac22: Decimal | None = None
    calc_type: str | None = None
    eps_wage_ceiling: Decimal | None = None
    min_eps_contribution: Decimal | None = None
    gratuity_percent: Decimal | None = None
    gratuity_base: str | None = None
    is_active: bool = True
    remarks: str | None = None

    def covers(self, day: date) -> bool:
        """True if ``day`` falls within the effective range."""
        if day < self.effective_from:
            return False
        return self.effective_to is None or day <= self.effective_to

    def overlaps(self, start: date, end: date | None) -> bool:
        """True if ``[start, end]`` intersects the effective range (None = open)."""
        if end is not None and end < self.effective_from:
            return False
        return self.effective_to is None or start <= self.effective_to

    def to_pf_rule(self) -> PFRule:
        return PFRule(
            emp_share_ac1=self.emp_share_ac1,
            er_share_ac2=self.er_share_ac2,
            eps_ac21=self.eps_ac21,
            edli_charges_ac21=self.edli_charges_ac21,
            admin_charges_ac10=self.admin_charges_ac10,
            pf_wage_ceiling=self.pf_wage_ceiling,
            admin_charges_ac22=self.admin_charges_ac22,
            calc_type=self.calc_type,
            eps_wage_ceiling=self.eps_wage_ceiling,
            min_eps_contribution=self.min_eps_contribution,
            is_active=self.is_active,
        )

    def to_esi_rule(self) -> ESIRule:
        return ESIRule(
            emp_share=self.emp_share,
            employer_share=self.employer_share,
            esi_wage_ceiling=self.esi_wage_ceiling,
            is_active=self.is_active,
        )

    def to_gratuity_rule(self) -> GratuityRule:
        return GratuityRule(
            gratuity_percent=self.gratuity_percent,
            gratuity_base=self.gratuity_base,
            is_active=self.is_active,
        )

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe copy stored on an employee salary config."""
        if self.rate_type is RateType.PF:
            rule = self.to_pf_rule().snapshot()
        elif self.rate_type is RateType.ESI:
            rule = self.to_esi_rule().snapshot()
        else:
            rule = self.to_gratuity_rule().snapshot()
        return {
            "id": str(self.id),
            "rateType": self.rate_type.value,
            "effectiveFrom": self.effective_from.isoformat(),
            "effectiveTo": self.effective_to.isoformat() if self.effective_to else None,
            **rule,
        }


@dataclass(frozen=True)
class EmployeeSalaryLine:
    """One persisted row of an employee's salary breakdown."""
    id: UUID
    employee_id: UUID
    salary_head_id: UUID
    head_name: str
    head_type: str
    base_amount: Decimal
    monthly_amount: Decimal
    annual_amount: Decimal
    pf_employee: Decimal = Decimal("0")
    pf_employer: Decimal = Decimal("0")
    esi_employee: Decimal = Decimal("0")
    esi_employer: Decimal = Decimal("0")
    gratuity_employer: Decimal = Decimal("0")
    formula: str | None = None
    is_special_allowance: bool = False


@dataclass(frozen=True)
class EmployeeSalaryConfig:
    """Point-in-time salary configuration of an employee."""
    id: UUID
    company_id: UUID
    employee_id: UUID
    salary_mode: SalaryMode
    input_amount: Decimal
    gross_salary: Decimal
    net_salary: Decimal
    annual_ctc: Decimal
    pf_rule_snapshot: dict | None = None
    esi_rule_snapshot: dict | None = None
    gratuity_rule_snapshot: dict | None = None


@dataclass(frozen=True)
class SalaryStructureOutcome:
    """Result of ``SalaryStructureService.calculate_employee_salary``."""
    config: EmployeeSalaryConfig
    lines: tuple[EmployeeSalaryLine, ...]
    result: SalaryCalculationResult

    @property
    def config_id(self) -> UUID:
        return self.config.id

    @property
    def warnings(self):
        return self.result.warnings
