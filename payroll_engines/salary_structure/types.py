"""
Module: payroll_engines.salary_structure.types
Responsibility:
    Immutable value objects consumed and produced by the salary structure
    engine: head definitions, PF / ESI rate rules, engine settings, computed
    rows, totals, warnings and the overall calculation result.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel.domain.

Invariants enforced:
    - Every amount and percentage is a ``Decimal``; constructors coerce
      int / str / float input through ``to_decimal``.
    - A wage ceiling that is absent or zero means "no ceiling".

Failure modes:
    - ValueError on non-numeric amounts, unknown field types, unknown
      statutory flags, or invalid engine settings.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import (
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
    Decimal,
)
from enum import Enum
from typing import Any

from payroll_kernel.domain.amounts import ZERO, percent_of, to_decimal

BALANCING_SYSTEM_CODE = "SPECIAL_ALLOWANCE"

# percentage_of values meaning "of the overall input amount"
INPUT_AMOUNT_TOKENS = frozenset({"CTC", "GROSS", "Amount"})

MONTHS_PER_YEAR = Decimal("12")

_ROUNDING_MODES = frozenset({
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    ROUND_UP,
})


class SalaryMode(str, Enum):
    """What the input amount represents."""

    CTC = "CTC"
    GROSS = "GROSS"


class FieldType(str, Enum):
    """Kind of salary head."""

    EARNING = "Earnings"
    DEDUCTION = "Deductions"

    @property
    def storage_code(self) -> str:
        """Code stored on persisted breakdown rows."""
        return "EARNING" if self is FieldType.EARNING else "DEDUCTION"


class StatutoryFlag(str, Enum):
    """Statutory schemes a head can be subject to."""

    PF = "PF"
    ESI = "ESI"
    GRATUITY = "Gratuity"
    BONUS = "Bonus"
    PT = "PT"
    LWF = "LWF"
    LEAVE_ENCASHMENT = "LeaveEncashment"


class WarningCode(str, Enum):
    """Degradations the engine absorbs instead of raising."""

    UNRESOLVED_PERCENTAGE_REFERENCE = "UNRESOLVED_PERCENTAGE_REFERENCE"
    HEAD_DEPENDENCY_CYCLE = "HEAD_DEPENDENCY_CYCLE"
    NEGATIVE_BALANCING_AMOUNT = "NEGATIVE_BALANCING_AMOUNT"
    UNKNOWN_SELECTED_HEAD = "UNKNOWN_SELECTED_HEAD"
    EXTRA_BALANCING_HEAD = "EXTRA_BALANCING_HEAD"
    ESI_CEILING_EXCEEDED = "ESI_CEILING_EXCEEDED"


def applicable_for_from_mapping(
    mapping: Mapping[str, Any] | None,
) -> frozenset[StatutoryFlag]:
    """
    Parse the stored ``{"PF": true, "ESI": false, ...}`` flag mapping.

    Keys with falsy values and keys that are not statutory flags are ignored.
    """
    if not mapping:
        return frozenset()
    known = {flag.value: flag for flag in StatutoryFlag}
    return frozenset(
        known[key] for key, enabled in mapping.items() if enabled and key in known
    )


def _coerce_flags(value: Any) -> frozenset[StatutoryFlag]:
    if value is None:
        return frozenset()
    if isinstance(value, Mapping):
        return applicable_for_from_mapping(value)
    if isinstance(value, (str, StatutoryFlag)):
        value = (value,)
    if isinstance(value, Iterable):
        return frozenset(StatutoryFlag(v) for v in value)
    raise ValueError(f"Invalid applicable_for: {value!r}")


def _optional_decimal(value: Any) -> Decimal | None:
    return None if value is None else to_decimal(value)


def _ceiling(value: Decimal | None) -> Decimal | None:
    # Zero ceilings are stored by the rate screens when the field is blank
    if value is None or value == ZERO:
        return None
    return value


def format_number(value: Decimal | None) -> str:
    """Render a Decimal without exponent or trailing zeros (``40``, ``12.5``)."""
    if value is None:
        return "0"
    text = format(value.normalize(), "f")
    return text


@dataclass(frozen=True)
class SalaryHeadDefinition:
    """
    A named payroll component with its valuation rule.

    Contract:
        ``is_percentage`` selects between a fixed monthly ``value`` and a
        percentage ``value`` of either the input amount (``percentage_of``
        is None or one of ``INPUT_AMOUNT_TOKENS``) or of another selected
        head identified by its ``short_name``.
    Guarantees:
        - ``id`` is a string; ``value`` is a Decimal or None.
        - ``applicable_for`` is a frozenset of ``StatutoryFlag``.
    Non-goals:
        - Does not check that ``percentage_of`` resolves; the engine degrades
          unresolved references to "percentage of input amount".
    """

    id: str
    name: str
    short_name: str | None = None
    field_type: FieldType = FieldType.EARNING
    is_percentage: bool = False
    value: Decimal | None = None
    percentage_of: str | None = None
    applicable_for: frozenset[StatutoryFlag] = field(default_factory=frozenset)
    system_code: str | None = None
    is_system: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        if not self.percentage_of:
            object.__setattr__(self, "percentage_of", None)
        if not isinstance(self.field_type, FieldType):
            object.__setattr__(self, "field_type", FieldType(self.field_type))
        object.__setattr__(self, "value", _optional_decimal(self.value))
        object.__setattr__(self, "applicable_for", _coerce_flags(self.applicable_for))

    @property
    def is_balancing(self) -> bool:
        """True for the special allowance head computed as the residual."""
        return self.system_code == BALANCING_SYSTEM_CODE

    @property
    def references_input_amount(self) -> bool:
        """True if a percentage head is a percentage of the input amount."""
        return self.is_percentage and (
            self.percentage_of is None or self.percentage_of in INPUT_AMOUNT_TOKENS
        )

    @property
    def referenced_short_name(self) -> str | None:
        """Short name of the head this one is a percentage of, if any."""
        if not self.is_percentage or self.references_input_amount:
            return None
        return self.percentage_of

    def applies(self, flag: StatutoryFlag) -> bool:
        return flag in self.applicable_for

    @property
    def formula(self) -> str:
        """Human-readable valuation rule shown next to the computed row."""
        if self.is_balancing:
            return "Balance"
        if self.is_percentage:
            return f"{format_number(self.value)}% of {self.percentage_of or 'Amount'}"
        return f"Fixed ₹{format_number(self.value)}"


@dataclass(frozen=True)
class PFRule:
    """
    Provident Fund parameters in force for one calculation.

    All shares are percentages.  Employee contribution is A/c 1; employer
    contribution is A/c 2 + EPS A/c 21 + EDLI A/c 21 + admin A/c 10.
    A/c 22 admin charges, the calc type and the EPS ceiling and minimum are
    carried into the snapshot but do not enter the per-head contribution.
    """

    emp_share_ac1: Decimal | None = None
    er_share_ac2: Decimal | None = None
    eps_ac21: Decimal | None = None
    edli_charges_ac21: Decimal | None = None
    admin_charges_ac10: Decimal | None = None
    pf_wage_ceiling: Decimal | None = None
    is_active: bool = True
    admin_charges_ac22: Decimal | None = None
    calc_type: str | None = None
    eps_wage_ceiling: Decimal | None = None
    min_eps_contribution: Decimal | None = None

    def __post_init__(self) -> None:
        for name in (
            "emp_share_ac1",
            "er_share_ac2",
            "eps_ac21",
            "edli_charges_ac21",
            "admin_charges_ac10",
            "pf_wage_ceiling",
            "admin_charges_ac22",
            "eps_wage_ceiling",
            "min_eps_contribution",
        ):
            object.__setattr__(self, name, _optional_decimal(getattr(self, name)))

    @property
    def employee_rate(self) -> Decimal:
        return self.emp_share_ac1 or ZERO

    @property
    def employer_rate(self) -> Decimal:
        return sum(
            (
                rate or ZERO
                for rate in (
                    self.er_share_ac2,
                    self.eps_ac21,
                    self.edli_charges_ac21,
                    self.admin_charges_ac10,
                )
            ),
            ZERO,
        )

    @property
    def wage_ceiling(self) -> Decimal | None:
        """PF wage ceiling, or None when contributions are uncapped."""
        return _ceiling(self.pf_wage_ceiling)

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe point-in-time copy stored with a salary config."""
        return {
            "empShareAc1": _snapshot_value(self.emp_share_ac1),
            "erShareAc2": _snapshot_value(self.er_share_ac2),
            "epsAc21": _snapshot_value(self.eps_ac21),
            "edliChargesAc21": _snapshot_value(self.edli_charges_ac21),
            "adminChargesAc10": _snapshot_value(self.admin_charges_ac10),
            "pfWageCeiling": _snapshot_value(self.pf_wage_ceiling),
            "adminChargesAc22": _snapshot_value(self.admin_charges_ac22),
            "calcType": self.calc_type,
            "epsWageCeiling": _snapshot_value(self.eps_wage_ceiling),
            "minEpsContribution": _snapshot_value(self.min_eps_contribution),
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class ESIRule:
    """Employee State Insurance parameters in force for one calculation."""

    emp_share: Decimal | None = None
    employer_share: Decimal | None = None
    esi_wage_ceiling: Decimal | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        for name in ("emp_share", "employer_share", "esi_wage_ceiling"):
            object.__setattr__(self, name, _optional_decimal(getattr(self, name)))

    @property
    def employee_rate(self) -> Decimal:
        return self.emp_share or ZERO

    @property
    def employer_rate(self) -> Decimal:
        return self.employer_share or ZERO

    @property
    def wage_ceiling(self) -> Decimal | None:
        """ESI wage ceiling, or None when every gross is covered."""
        return _ceiling(self.esi_wage_ceiling)

    def snapshot(self) -> dict[str, Any]:
        return {
            "empShare": _snapshot_value(self.emp_share),
            "employerShare": _snapshot_value(self.employer_share),
            "esiWageCeiling": _snapshot_value(self.esi_wage_ceiling),
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class GratuityRule:
    """
    Company gratuity rule in force for one calculation.

    A ``gratuity_percent`` replaces the statutory days formula of
    ``SalaryEngineSettings``: the monthly provision becomes that percentage
    of every gratuity-flagged head.  ``gratuity_base`` names the wage the
    percentage is quoted on and is only used in the formula text.
    """

    gratuity_percent: Decimal | None = None
    gratuity_base: str | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "gratuity_percent", _optional_decimal(self.gratuity_percent))
        if not self.gratuity_base:
            object.__setattr__(self, "gratuity_base", None)

    @property
    def overrides_formula(self) -> bool:
        return self.is_active and self.gratuity_percent is not None

    def snapshot(self) -> dict[str, Any]:
        return {
            "gratuityPercent": _snapshot_value(self.gratuity_percent),
            "gratuityBase": self.gratuity_base,
            "isActive": self.is_active,
        }


def _snapshot_value(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True)
class SalaryEngineSettings:
    """
    Tunable constants of the salary structure engine.

    Defaults match ``payroll_config/sets/default/engine.yaml``.
    """

    rounding_places: int = 2
    rounding_mode: str = ROUND_HALF_UP
    gratuity_days_per_year: Decimal = Decimal("15")
    gratuity_working_days: Decimal = Decimal("26")

    def __post_init__(self) -> None:
        if not 0 <= self.rounding_places <= 9:
            raise ValueError(
                f"rounding_places must be between 0 and 9, got {self.rounding_places}"
            )
        if self.rounding_mode not in _ROUNDING_MODES:
            raise ValueError(f"Unknown rounding_mode: {self.rounding_mode}")
        object.__setattr__(
            self, "gratuity_days_per_year", to_decimal(self.gratuity_days_per_year)
        )
        object.__setattr__(
            self, "gratuity_working_days", to_decimal(self.gratuity_working_days)
        )
        if self.gratuity_days_per_year <= ZERO or self.gratuity_working_days <= ZERO:
            raise ValueError("gratuity day counts must be positive")

    @property
    def gratuity_formula(self) -> str:
        return (
            f"{format_number(self.gratuity_days_per_year)}/"
            f"{format_number(self.gratuity_working_days)} * Basic / 12"
        )

    def gratuity_formula_for(self, rule: GratuityRule | None) -> str:
        """Formula text of the provision ``gratuity_on`` applies under ``rule``."""
        if rule is not None and rule.overrides_formula:
            return f"{format_number(rule.gratuity_percent)}% of {rule.gratuity_base or 'Basic'}"
        return self.gratuity_formula

    def gratuity_on(self, amount: Decimal, rule: GratuityRule | None = None) -> Decimal:
        """Monthly gratuity provision on ``amount`` (full precision)."""
        if rule is not None and rule.overrides_formula:
            return percent_of(amount, rule.gratuity_percent)
        return (
            amount * self.gratuity_days_per_year
            / self.gratuity_working_days
            / MONTHS_PER_YEAR
        )


@dataclass(frozen=True)
class CalculationWarning:
    """A silent degradation surfaced to the caller."""

    code: WarningCode
    message: str
    head_id: str | None = None


@dataclass(frozen=True)
class HeadAllocation:
    """
    First-pass result for one head: everything except ESI.

    Produced by the allocation engine, consumed by the ceiling reconciler.
    """

    head: SalaryHeadDefinition
    base_amount: Decimal
    pf_wage_base: Decimal = ZERO
    pf_employee: Decimal = ZERO
    pf_employer: Decimal = ZERO
    gratuity_employer: Decimal = ZERO
    is_special_allowance: bool = False


@dataclass(frozen=True)
class CalculatedRow:
    """
    One line of the computed salary breakdown.

    Guarantees:
        - ``monthly == base_amount - pf_employee - esi_employee``.
        - ``annual == monthly * 12``.
    """

    id: str
    name: str
    short_name: str | None
    head_type: FieldType
    formula: str
    base_amount: Decimal
    monthly: Decimal
    annual: Decimal
    pf_employee: Decimal = ZERO
    pf_employer: Decimal = ZERO
    esi_employee: Decimal = ZERO
    esi_employer: Decimal = ZERO
    gratuity_employer: Decimal = ZERO
    pf_wage_base: Decimal = ZERO
    is_special_allowance: bool = False

    @property
    def employer_contribution(self) -> Decimal:
        return self.pf_employer + self.esi_employer + self.gratuity_employer


@dataclass(frozen=True)
class CalculationTotals:
    """Sums across every row of a breakdown."""

    total_gross: Decimal = ZERO
    total_monthly: Decimal = ZERO
    total_annual: Decimal = ZERO
    total_pf_employee: Decimal = ZERO
    total_pf_employer: Decimal = ZERO
    total_esi_employee: Decimal = ZERO
    total_esi_employer: Decimal = ZERO
    total_gratuity_employer: Decimal = ZERO
    net_in_hand: Decimal = ZERO
    ctc: Decimal = ZERO

    @property
    def total_employer_contribution(self) -> Decimal:
        return (
            self.total_pf_employer
            + self.total_esi_employer
            + self.total_gratuity_employer
        )

    @property
    def gross_salary(self) -> Decimal:
        """Monthly gross as stored on the salary config snapshot."""
        return self.total_monthly + self.total_pf_employee + self.total_esi_employee

    @property
    def annual_ctc(self) -> Decimal:
        return self.ctc * MONTHS_PER_YEAR


@dataclass(frozen=True)
class SalaryCalculationResult:
    """
    Complete output of one salary structure calculation.

    Guarantees:
        - ``rows`` are in definition order with the balancing row last.
        - When a balancing row exists, the sum of ``base_amount`` over all
          rows equals ``input_amount`` exactly.
    """

    mode: SalaryMode
    input_amount: Decimal
    rows: tuple[CalculatedRow, ...]
    totals: CalculationTotals
    warnings: tuple[CalculationWarning, ...] = ()
    esi_eligible: bool = False
    gratuity_formula: str = ""

    @property
    def balancing_row(self) -> CalculatedRow | None:
        for row in self.rows:
            if row.is_special_allowance:
                return row
        return None

    @property
    def has_negative_balance(self) -> bool:
        row = self.balancing_row
        return row is not None and row.base_amount < ZERO

    def row_for(self, head_id: str) -> CalculatedRow:
        """Return the row computed for ``head_id``.

        Raises:
            KeyError: If the head is not part of this breakdown.
        """
        for row in self.rows:
            if row.id == str(head_id):
                return row
        raise KeyError(head_id)

    def warning_codes(self) -> tuple[WarningCode, ...]:
        return tuple(w.code for w in self.warnings)


__all__ = [
    "BALANCING_SYSTEM_CODE",
    "INPUT_AMOUNT_TOKENS",
    "CalculatedRow",
    "CalculationTotals",
    "CalculationWarning",
    "ESIRule",
    "FieldType",
    "GratuityRule",
    "HeadAllocation",
    "PFRule",
    "SalaryCalculationResult",
    "SalaryEngineSettings",
    "SalaryHeadDefinition",
    "SalaryMode",
    "StatutoryFlag",
    "WarningCode",
    "applicable_for_from_mapping",
    "format_number",
]
