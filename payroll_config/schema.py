"""
Configuration schema (``payroll_config.schema``).

Frozen dataclasses describing one payroll configuration set.  Instances
are produced by ``payroll_config.loader`` and returned to callers through
``payroll_config.get_active_config()``.

Invariants enforced
-------------------
* All dataclasses are ``frozen=True``.
* ``StatutoryRateDef.rate_type`` is one of ``RATE_TYPES``.
* ``effective_to``, when given, is not before ``effective_from``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from payroll_engines.salary_structure.types import (
    ESIRule,
    GratuityRule,
    PFRule,
    SalaryEngineSettings,
)

RATE_TYPES = ("PF", "ESI", "GRATUITY")


@dataclass(frozen=True)
class StatutoryRateDef:
    """A default statutory rate as declared in ``statutory.yaml``."""

    rate_type: str
    effective_from: date
    effective_to: date | None = None

    # PF
    emp_share_ac1: Decimal | None = None
    er_share_ac2: Decimal | None = None
    eps_ac21: Decimal | None = None
    edli_charges_ac21: Decimal | None = None
    admin_charges_ac10: Decimal | None = None
    pf_wage_ceiling: Decimal | None = None
    admin_charges_ac22: Decimal | None = None
    calc_type: str | None = None
    eps_wage_ceiling: Decimal | None = None
    min_eps_contribution: Decimal | None = None

    # ESI
    emp_share: Decimal | None = None
    employer_share: Decimal | None = None
    esi_wage_ceiling: Decimal | None = None

    # Gratuity
    gratuity_percent: Decimal | None = None
    gratuity_base: str | None = None

    remarks: str | None = None

    def __post_init__(self) -> None:
        if self.rate_type not in RATE_TYPES:
            raise ValueError(
                f"rate_type must be one of {', '.join(RATE_TYPES)}, got {self.rate_type!r}"
            )
        if self.effective_to is not None and self.effective_to < self.effective_from:
            raise ValueError(
                f"{self.rate_type} effective_to {self.effective_to} is before "
                f"effective_from {self.effective_from}"
            )

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
        )

    def to_esi_rule(self) -> ESIRule:
        return ESIRule(
            emp_share=self.emp_share,
            employer_share=self.employer_share,
            esi_wage_ceiling=self.esi_wage_ceiling,
        )

    def to_gratuity_rule(self) -> GratuityRule:
        return GratuityRule(
            gratuity_percent=self.gratuity_percent,
            gratuity_base=self.gratuity_base,
        )


@dataclass(frozen=True)
class PayrollConfigSet:
    """
    The sole runtime configuration artifact.

    Carries the engine settings and the statutory rate defaults together
    with a SHA-256 ``checksum`` of the source YAML data.
    """

    config_id: str
    version: int
    engine: SalaryEngineSettings
    statutory_defaults: tuple[StatutoryRateDef, ...]
    checksum: str

    def statutory_default(self, rate_type: str) -> StatutoryRateDef | None:
        """Most recent default of ``rate_type``, or None."""
        matching = [d for d in self.statutory_defaults if d.rate_type == rate_type]
        if not matching:
            return None
        return max(matching, key=lambda d: d.effective_from)
