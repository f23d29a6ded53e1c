"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for higher
    layers (payroll_modules).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel.domain, payroll_kernel.exceptions and
    payroll_kernel.logging_config (and sibling engine modules).
    MUST NOT import SQLAlchemy, payroll_kernel.db, payroll_config or
    payroll_modules.

Invariants enforced:
    - Purity: engines never read the clock or storage.
    - Decimal-only arithmetic: monetary amounts are ``Decimal``; floats are
      converted through ``str()`` at the boundary.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``payroll_engines.tracer``), emitting PAYROLL_ENGINE_TRACE records.

Usage:
    from payroll_engines import SalaryStructureEngine, SalaryHeadDefinition
"""

from payroll_kernel.logging_config import get_logger

logger = get_logger("engines")

from payroll_engines.salary_structure import (  # noqa: E402
    CalculatedRow,
    CalculationTotals,
    CalculationWarning,
    ESIRule,
    FieldType,
    GratuityRule,
    PFRule,
    SalaryCalculationResult,
    SalaryEngineSettings,
    SalaryHeadDefinition,
    SalaryMode,
    SalaryStructureEngine,
    StatutoryFlag,
    WarningCode,
    calculate_salary,
)
from payroll_engines.tracer import input_fingerprint, traced_engine  # noqa: E402

__all__ = [
    "CalculatedRow",
    "CalculationTotals",
    "CalculationWarning",
    "ESIRule",
    "FieldType",
    "GratuityRule",
    "PFRule",
    "SalaryCalculationResult",
    "SalaryEngineSettings",
    "SalaryHeadDefinition",
    "SalaryMode",
    "SalaryStructureEngine",
    "StatutoryFlag",
    "WarningCode",
    "calculate_salary",
    "input_fingerprint",
    "traced_engine",
]

logger.debug("engines_package_loaded", extra={
    "module_count": 2,
    "modules": ["salary_structure", "tracer"],
})
