"""
Module: payroll_engines.salary_structure.allocation
Responsibility:
    First pass of the salary structure calculation: value every selected
    head (fixed amount, percentage of the input amount, or percentage of
    another head), derive the balancing head as the residual, and compute
    the PF and gratuity contributions of each head.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Every base amount is rounded with ``round_money`` before it enters
      the lookup table, so later percentage chains see the rounded figure.
    - The balancing amount is ``input_amount - sum(regular base amounts)``
      without further rounding; the breakdown reconciles exactly.
    - Negative balancing amounts are returned as computed, never clamped.
    - ESI is not computed here; see ``ceiling.EsiCeilingReconciler``.

Failure modes:
    None raised.  Unresolved percentage references fall back to the input
    amount and are reported as UNRESOLVED_PERCENTAGE_REFERENCE warnings.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payroll_engines.salary_structure.head_resolver import HeadResolver, ResolvedHeads
from payroll_engines.salary_structure.types import (
    CalculationWarning,
    GratuityRule,
    HeadAllocation,
    PFRule,
    SalaryEngineSettings,
    SalaryHeadDefinition,
    StatutoryFlag,
    WarningCode,
)
from payroll_kernel.domain.amounts import ZERO, percent_of, round_money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.salary_structure.allocation")


@dataclass(frozen=True)
class AllocationPassResult:
    """
    Pass-1 output.

    Guarantees:
        - ``allocations`` are in definition order, balancing head last.
        - ``total_allocated`` is the sum of regular (non-balancing) bases.
    """

    allocations: tuple[HeadAllocation, ...]
    total_allocated: Decimal
    warnings: tuple[CalculationWarning, ...] = ()


class AllocationPass:
    """
    Value heads and compute PF / gratuity.

    Contract:
        ``run`` is deterministic for identical inputs and never mutates them.
    Non-goals:
        - Does not decide ESI eligibility.
        - Does not aggregate totals.
    """

    def __init__(self, settings: SalaryEngineSettings | None = None):
        self._settings = settings or SalaryEngineSettings()

    def _round(self, value: Decimal) -> Decimal:
        return round_money(
            value,
            self._settings.rounding_places,
            self._settings.rounding_mode,
        )

    def run(
        self,
        resolved: ResolvedHeads,
        input_amount: Decimal,
        pf_rule: PFRule | None = None,
        gratuity_rule: GratuityRule | None = None,
    ) -> AllocationPassResult:
        warnings: list[CalculationWarning] = []
        amounts: dict[str, Decimal] = {}
        by_id: dict[str, HeadAllocation] = {}
        total_allocated = ZERO

        for head in resolved.evaluation_order:
            base = self._base_amount(head, input_amount, resolved, amounts, warnings)
            amounts[head.id] = base
            by_id[head.id] = self._allocate(head, base, pf_rule, gratuity_rule)
            total_allocated += base
            logger.debug("salary_head_valued", extra={
                "head_id": head.id,
                "short_name": head.short_name,
                "base_amount": str(base),
            })

        allocations = [by_id[head.id] for head in resolved.regular_heads]

        balancing = resolved.balancing_head
        if balancing is not None:
            residual = input_amount - total_allocated
            if residual < ZERO:
                warnings.append(CalculationWarning(
                    code=WarningCode.NEGATIVE_BALANCING_AMOUNT,
                    message=(
                        f"Selected heads total {total_allocated}, exceeding the "
                        f"input amount {input_amount}; {balancing.name} is "
                        f"{residual}"
                    ),
                    head_id=balancing.id,
                ))
                logger.warning("salary_negative_balancing_amount", extra={
                    "head_id": balancing.id,
                    "input_amount": str(input_amount),
                    "total_allocated": str(total_allocated),
                    "balancing_amount": str(residual),
                })
            allocations.append(
                self._allocate(
                    balancing, residual, pf_rule, gratuity_rule, is_special_allowance=True,
                )
            )

        return AllocationPassResult(
            allocations=tuple(allocations),
            total_allocated=total_allocated,
            warnings=tuple(warnings),
        )

    def _base_amount(
        self,
        head: SalaryHeadDefinition,
        input_amount: Decimal,
        resolved: ResolvedHeads,
        amounts: dict[str, Decimal],
        warnings: list[CalculationWarning],
    ) -> Decimal:
        rate = head.value if head.value is not None else ZERO
        if not head.is_percentage:
            return self._round(rate)
        if head.references_input_amount:
            return self._round(percent_of(input_amount, rate))

        target = HeadResolver.dependency_of(head, resolved.short_name_index)
        if target is not None and target.id in amounts:
            return self._round(percent_of(amounts[target.id], rate))

        warnings.append(CalculationWarning(
            code=WarningCode.UNRESOLVED_PERCENTAGE_REFERENCE,
            message=(
                f"{head.name} is a percentage of '{head.percentage_of}', which is "
                f"not among the computed heads; using the input amount"
            ),
            head_id=head.id,
        ))
        logger.warning("salary_percentage_reference_unresolved", extra={
            "head_id": head.id,
            "percentage_of": head.percentage_of,
        })
        return self._round(percent_of(input_amount, rate))

    def _allocate(
        self,
        head: SalaryHeadDefinition,
        base: Decimal,
        pf_rule: PFRule | None,
        gratuity_rule: GratuityRule | None,
        is_special_allowance: bool = False,
    ) -> HeadAllocation:
        pf_wage_base = ZERO
        pf_employee = ZERO
        pf_employer = ZERO
        if head.applies(StatutoryFlag.PF) and pf_rule is not None and pf_rule.is_active:
            ceiling = pf_rule.wage_ceiling
            pf_wage_base = base if ceiling is None else min(base, ceiling)
            pf_employee = self._round(percent_of(pf_wage_base, pf_rule.employee_rate))
            pf_employer = self._round(percent_of(pf_wage_base, pf_rule.employer_rate))

        gratuity = ZERO
        if head.applies(StatutoryFlag.GRATUITY):
            gratuity = self._round(self._settings.gratuity_on(base, gratuity_rule))

        return HeadAllocation(
            head=head,
            base_amount=base,
            pf_wage_base=pf_wage_base,
            pf_employee=pf_employee,
            pf_employer=pf_employer,
            gratuity_employer=gratuity,
            is_special_allowance=is_special_allowance,
        )
