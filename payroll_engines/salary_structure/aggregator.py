"""
Module: payroll_engines.salary_structure.aggregator
Responsibility:
    Sum calculated rows into ``CalculationTotals``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``net_in_hand == total_monthly``.
    - ``ctc == total_gross + total_pf_employer + total_esi_employer
      + total_gratuity_employer``.
    - No rounding happens here; rows are already rounded.
"""

from __future__ import annotations

from collections.abc import Iterable

from payroll_engines.salary_structure.types import CalculatedRow, CalculationTotals
from payroll_kernel.domain.amounts import ZERO


def aggregate_rows(rows: Iterable[CalculatedRow]) -> CalculationTotals:
    gross = monthly = annual = ZERO
    pf_employee = pf_employer = ZERO
    esi_employee = esi_employer = ZERO
    gratuity = ZERO

    for row in rows:
        gross += row.base_amount
        monthly += row.monthly
        annual += row.annual
        pf_employee += row.pf_employee
        pf_employer += row.pf_employer
        esi_employee += row.esi_employee
        esi_employer += row.esi_employer
        gratuity += row.gratuity_employer

    return CalculationTotals(
        total_gross=gross,
        total_monthly=monthly,
        total_annual=annual,
        total_pf_employee=pf_employee,
        total_pf_employer=pf_employer,
        total_esi_employee=esi_employee,
        total_esi_employer=esi_employer,
        total_gratuity_employer=gratuity,
        net_in_hand=monthly,
        ctc=gross + pf_employer + esi_employer + gratuity,
    )
