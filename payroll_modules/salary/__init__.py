"""
Salary structure module.

Salary heads, statutory rates and per-employee CTC / gross breakdowns,
built on ``payroll_engines.salary_structure``.
"""

from payroll_modules.salary.models import (
    EmployeeSalaryConfig,
    EmployeeSalaryLine,
    RateType,
    SalaryHead,
    SalaryStructureOutcome,
    StatutoryRate,
)
from payroll_modules.salary.service import SalaryStructureService

__all__ = [
    "EmployeeSalaryConfig",
    "EmployeeSalaryLine",
    "RateType",
    "SalaryHead",
    "SalaryStructureOutcome",
    "SalaryStructureService",
    "StatutoryRate",
]
