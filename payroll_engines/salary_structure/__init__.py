"""
Salary structure engine: CTC / gross decomposition into salary heads.

Pipeline: ``HeadResolver`` -> ``AllocationPass`` -> ``EsiCeilingReconciler``
-> ``aggregate_rows``, driven by ``SalaryStructureEngine``.
"""

from payroll_engines.salary_structure.aggregator import aggregate_rows
from payroll_engines.salary_structure.allocation import (
    AllocationPass,
    AllocationPassResult,
)
from payroll_engines.salary_structure.ceiling import (
    EsiCeilingReconciler,
    EsiDetermination,
)
from payroll_engines.salary_structure.engine import (
    SalaryStructureEngine,
    calculate_salary,
    coerce_mode,
)
from payroll_engines.salary_structure.head_resolver import HeadResolver, ResolvedHeads
from payroll_engines.salary_structure.types import (
    BALANCING_SYSTEM_CODE,
    INPUT_AMOUNT_TOKENS,
    CalculatedRow,
    CalculationTotals,
    CalculationWarning,
    ESIRule,
    FieldType,
    GratuityRule,
    HeadAllocation,
    PFRule,
    SalaryCalculationResult,
    SalaryEngineSettings,
    SalaryHeadDefinition,
    SalaryMode,
    StatutoryFlag,
    WarningCode,
    applicable_for_from_mapping,
)

__all__ = [
    "BALANCING_SYSTEM_CODE",
    "INPUT_AMOUNT_TOKENS",
    "AllocationPass",
    "AllocationPassResult",
    "CalculatedRow",
    "CalculationTotals",
    "CalculationWarning",
    "ESIRule",
    "EsiCeilingReconciler",
    "EsiDetermination",
    "FieldType",
    "GratuityRule",
    "HeadAllocation",
    "HeadResolver",
    "PFRule",
    "ResolvedHeads",
    "SalaryCalculationResult",
    "SalaryEngineSettings",
    "SalaryHeadDefinition",
    "SalaryMode",
    "SalaryStructureEngine",
    "StatutoryFlag",
    "WarningCode",
    "aggregate_rows",
    "applicable_for_from_mapping",
    "calculate_salary",
    "coerce_mode",
]
