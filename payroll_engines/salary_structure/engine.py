"""
Module: payroll_engines.salary_structure.engine
Responsibility:
    Facade over the salary structure pipeline:
    Head Resolver -> Allocation Pass -> ESI Ceiling Reconciler -> Aggregator.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Invoked by ``payroll_modules.salary.service``; never reads storage.

Invariants enforced:
    - Conservation: when a balancing head is selected, the sum of
      ``base_amount`` over all rows equals the (rounded) input amount.
    - Selection-order independence: rows and totals depend only on the set
      of selected ids and the definition order of ``heads``.
    - Every monetary row field is rounded once, per row, before aggregation.
    - Purity: no clock access, no I/O, no state kept between calls.

Failure modes:
    - NoSalaryHeadsResolvedError when a non-empty selection matches no head.
    - InvalidSalaryModeError for an unknown mode string.
    - ValueError for a non-numeric input amount.
    Everything else (negative balance, unresolved references, missing or
    inactive rate rules, dependency cycles) degrades and is reported as a
    ``CalculationWarning``.

Audit relevance:
    Traced through ``@traced_engine``; each call emits a
    PAYROLL_ENGINE_TRACE record fingerprinting mode, amount and selection.

Usage:
    from payroll_engines.salary_structure import SalaryStructureEngine

    result = SalaryStructureEngine().calculate(
        mode="CTC",
        input_amount="50000",
        heads=heads,
        selected_head_ids=["basic", "hra", "special"],
        pf_rule=pf_rule,
        esi_rule=None,
    )
    result.totals.ctc
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any

from payroll_engines.salary_structure.aggregator import aggregate_rows
from payroll_engines.salary_structure.allocation import AllocationPass
from payroll_engines.salary_structure.ceiling import EsiCeilingReconciler
from payroll_engines.salary_structure.head_resolver import HeadResolver
from payroll_engines.salary_structure.types import (
    CalculationTotals,
    ESIRule,
    GratuityRule,
    PFRule,
    SalaryCalculationResult,
    SalaryEngineSettings,
    SalaryHeadDefinition,
    SalaryMode,
)
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.amounts import round_money, to_decimal
from payroll_kernel.exceptions import InvalidSalaryModeError, NoSalaryHeadsResolvedError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.salary_structure")


def coerce_mode(mode: SalaryMode | str) -> SalaryMode:
    """Accept ``SalaryMode`` or a case-insensitive mode string."""
    if isinstance(mode, SalaryMode):
        return mode
    try:
        return SalaryMode(str(mode).strip().upper())
    except ValueError:
        raise InvalidSalaryModeError(str(mode)) from None


class SalaryStructureEngine:
    """
    Decompose a monthly CTC or gross amount into salary heads.

    Contract:
        Pure; identical inputs always produce identical results.
    Guarantees:
        - Rows in definition order, balancing row last.
        - Totals derived from the rounded rows only.
    Non-goals:
        - Does not validate that the input amount is positive; callers
          validate requests before invoking the engine.
        - Does not choose which PF / ESI rule is in force.
    """

    def __init__(self, settings: SalaryEngineSettings | None = None):
        self.settings = settings or SalaryEngineSettings()
        self._resolver = HeadResolver()
        self._allocation = AllocationPass(self.settings)
        self._reconciler = EsiCeilingReconciler(self.settings)

    @traced_engine(
        "salary_structure",
        "1.0",
        fingerprint_fields=("mode", "input_amount", "selected_head_ids"),
        summarize=lambda result: {
            "row_count": len(result.rows),
            "ctc": result.totals.ctc,
            "warning_count": len(result.warnings),
        },
    )
    def calculate(
        self,
        *,
        mode: SalaryMode | str,
        input_amount: Decimal | int | str,
        heads: Sequence[SalaryHeadDefinition],
        selected_head_ids: Iterable[str],
        pf_rule: PFRule | None = None,
        esi_rule: ESIRule | None = None,
        gratuity_rule: GratuityRule | None = None,
    ) -> SalaryCalculationResult:
        """
        Compute the salary breakdown.

        Args:
            mode: What ``input_amount`` represents (CTC or GROSS).
            input_amount: Monthly amount to decompose.
            heads: Head definitions of the company, in definition order.
            selected_head_ids: Ids of heads to include; order irrelevant.
            pf_rule: PF rule in force, or None.
            esi_rule: ESI rule in force, or None.
            gratuity_rule: Company gratuity rule, or None for the statutory
                days formula of the settings.

        Returns:
            SalaryCalculationResult with rows, totals and warnings.
        """
        t0 = time.monotonic()
        salary_mode = coerce_mode(mode)
        amount = round_money(
            to_decimal(input_amount, default=None),
            self.settings.rounding_places,
            self.settings.rounding_mode,
        )
        selected = sorted({str(head_id) for head_id in selected_head_ids})
        gratuity_formula = self.settings.gratuity_formula_for(gratuity_rule)

        logger.info("salary_calculation_started", extra={
            "mode": salary_mode.value,
            "input_amount": str(amount),
            "selected_count": len(selected),
            "head_count": len(heads),
            "pf_rule_active": bool(pf_rule and pf_rule.is_active),
            "esi_rule_active": bool(esi_rule and esi_rule.is_active),
            "gratuity_formula": gratuity_formula,
        })

        if not selected:
            logger.warning("salary_calculation_no_selection", extra={
                "input_amount": str(amount),
            })
            return SalaryCalculationResult(
                mode=salary_mode,
                input_amount=amount,
                rows=(),
                totals=CalculationTotals(),
                gratuity_formula=gratuity_formula,
            )

        resolved = self._resolver.resolve(heads, selected)
        if resolved.is_empty:
            logger.error("salary_calculation_no_heads", extra={
                "selected_head_ids": selected,
            })
            raise NoSalaryHeadsResolvedError(selected)

        allocation = self._allocation.run(resolved, amount, pf_rule, gratuity_rule)
        determination = self._reconciler.determine(
            allocation.allocations, amount, esi_rule,
        )
        rows = self._reconciler.build_rows(
            allocation.allocations, determination, esi_rule,
        )
        totals = aggregate_rows(rows)

        warnings = resolved.warnings + allocation.warnings
        if determination.warning is not None:
            warnings += (determination.warning,)

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("salary_calculation_completed", extra={
            "mode": salary_mode.value,
            "row_count": len(rows),
            "total_gross": str(totals.total_gross),
            "net_in_hand": str(totals.net_in_hand),
            "ctc": str(totals.ctc),
            "esi_eligible": determination.eligible,
            "warning_count": len(warnings),
            "duration_ms": duration_ms,
        })

        return SalaryCalculationResult(
            mode=salary_mode,
            input_amount=amount,
            rows=rows,
            totals=totals,
            warnings=warnings,
            esi_eligible=determination.eligible,
            gratuity_formula=gratuity_formula,
        )


def calculate_salary(**kwargs: Any) -> SalaryCalculationResult:
    """Run ``SalaryStructureEngine().calculate`` with default settings."""
    return SalaryStructureEngine().calculate(**kwargs)
