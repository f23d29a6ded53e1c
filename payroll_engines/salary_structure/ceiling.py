"""
Module: payroll_engines.salary_structure.ceiling
Responsibility:
    Second pass of the salary structure calculation.  Once every base
    amount is known, decide ESI eligibility against the aggregate gross,
    fill the ESI fields, and produce the final ``CalculatedRow`` values.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ESI applies to a row only if the rule is present and active, the row's
      head carries the ESI flag, and both the input amount and the total
      gross are within the ESI wage ceiling (absent or zero ceiling means
      no limit).
    - Eligibility is decided once, for all rows together.
    - ``monthly = base_amount - pf_employee - esi_employee`` and
      ``annual = monthly * 12`` on every row.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from payroll_engines.salary_structure.types import (
    MONTHS_PER_YEAR,
    CalculatedRow,
    CalculationWarning,
    ESIRule,
    HeadAllocation,
    SalaryEngineSettings,
    StatutoryFlag,
    WarningCode,
)
from payroll_kernel.domain.amounts import ZERO, percent_of, round_money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.salary_structure.ceiling")


@dataclass(frozen=True)
class EsiDetermination:
    """Outcome of the ESI eligibility decision."""

    eligible: bool
    total_gross: Decimal
    ceiling: Decimal | None
    warning: CalculationWarning | None = None


class EsiCeilingReconciler:
    """Decide ESI eligibility and build the final rows."""

    def __init__(self, settings: SalaryEngineSettings | None = None):
        self._settings = settings or SalaryEngineSettings()

    def determine(
        self,
        allocations: Sequence[HeadAllocation],
        input_amount: Decimal,
        esi_rule: ESIRule | None,
    ) -> EsiDetermination:
        total_gross = sum((a.base_amount for a in allocations), ZERO)
        if esi_rule is None or not esi_rule.is_active:
            return EsiDetermination(False, total_gross, None)

        ceiling = esi_rule.wage_ceiling
        if ceiling is None:
            return EsiDetermination(True, total_gross, None)
        if input_amount <= ceiling and total_gross <= ceiling:
            return EsiDetermination(True, total_gross, ceiling)

        subject = any(a.head.applies(StatutoryFlag.ESI) for a in allocations)
        warning = None
        if subject:
            warning = CalculationWarning(
                code=WarningCode.ESI_CEILING_EXCEEDED,
                message=(
                    f"Gross {max(input_amount, total_gross)} exceeds the ESI wage "
                    f"ceiling {ceiling}; no ESI contributions apply"
                ),
            )
        logger.info("salary_esi_ceiling_exceeded", extra={
            "input_amount": str(input_amount),
            "total_gross": str(total_gross),
            "esi_wage_ceiling": str(ceiling),
        })
        return EsiDetermination(False, total_gross, ceiling, warning)

    def build_rows(
        self,
        allocations: Sequence[HeadAllocation],
        determination: EsiDetermination,
        esi_rule: ESIRule | None,
    ) -> tuple[CalculatedRow, ...]:
        rows = []
        for allocation in allocations:
            esi_employee = ZERO
            esi_employer = ZERO
            if (
                determination.eligible
                and esi_rule is not None
                and allocation.head.applies(StatutoryFlag.ESI)
            ):
                esi_employee = self._round(
                    percent_of(allocation.base_amount, esi_rule.employee_rate)
                )
                esi_employer = self._round(
                    percent_of(allocation.base_amount, esi_rule.employer_rate)
                )

            monthly = allocation.base_amount - allocation.pf_employee - esi_employee
            head = allocation.head
            rows.append(CalculatedRow(
                id=head.id,
                name=head.name,
                short_name=head.short_name,
                head_type=head.field_type,
                formula=head.formula,
                base_amount=allocation.base_amount,
                monthly=monthly,
                annual=monthly * MONTHS_PER_YEAR,
                pf_employee=allocation.pf_employee,
                pf_employer=allocation.pf_employer,
                esi_employee=esi_employee,
                esi_employer=esi_employer,
                gratuity_employer=allocation.gratuity_employer,
                pf_wage_base=allocation.pf_wage_base,
                is_special_allowance=allocation.is_special_allowance,
            ))
        return tuple(rows)

    def _round(self, value: Decimal) -> Decimal:
        return round_money(
            value,
            self._settings.rounding_places,
            self._settings.rounding_mode,
        )
