"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PayrollKernelError:

    PayrollKernelError (base)
    |
    +-- ConfigurationError
    |   +-- NoSalaryHeadsResolvedError
    |
    +-- SalaryValidationError
    |   +-- InvalidSalaryModeError
    |   +-- InvalidInputAmountError
    |
    +-- SalaryHeadError
    |   +-- SalaryHeadNotFoundError
    |   +-- SelfReferencingHeadError
    |   +-- SystemHeadImmutableError
    |   +-- SystemHeadDeletionError
    |   +-- DuplicateShortNameError
    |   +-- DuplicateBalancingHeadError
    |   +-- MissingHeadFieldError
    |
    +-- StatutoryRateError
        +-- InvalidRateTypeError
        +-- StatutoryRateOverlapError
        +-- StatutoryRateNotFoundError
        +-- InvalidEffectiveDateError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | NO_SALARY_HEADS_RESOLVED    | Non-empty selection, no head definitions
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_SALARY_MODE         | Mode is not CTC or GROSS
                | INVALID_INPUT_AMOUNT        | Amount missing, non-numeric or <= 0
----------------|-----------------------------|-----------------------------------------
Salary head     | SALARY_HEAD_NOT_FOUND       | Head id not present for the company
                | SELF_REFERENCING_HEAD       | Percentage head references itself
                | SYSTEM_HEAD_IMMUTABLE       | Editing more than a system head's name
                | SYSTEM_HEAD_DELETION        | Deleting a system head
                | DUPLICATE_SHORT_NAME        | Short name already used in the company
                | DUPLICATE_BALANCING_HEAD    | Second SPECIAL_ALLOWANCE head
                | MISSING_HEAD_FIELD          | name / field_type not supplied
----------------|-----------------------------|-----------------------------------------
Statutory rate  | INVALID_RATE_TYPE           | Rate type not PF, ESI or GRATUITY
                | STATUTORY_RATE_OVERLAP      | Active PF/ESI rule covers the range
                | STATUTORY_RATE_NOT_FOUND    | Rate id not present for the company
                | INVALID_EFFECTIVE_DATE      | Missing or reversed effective dates

===============================================================================
HANDLING PATTERNS
===============================================================================

Callers catch by type and report ``e.code`` plus the structured attributes:

    try:
        service.calculate_employee_salary(...)
    except SalaryValidationError as e:
        return {"error": e.code, "field": e.field}, 400
    except ConfigurationError as e:
        return {"error": e.code}, 500

Arithmetic edge cases (negative balancing amount, unresolved percentage
references, missing rate rules) are NOT exceptions; the salary engine
reports them as warnings on the calculation result.
"""

from typing import Any


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"

    def log_fields(self) -> dict[str, Any]:
        """Error code plus the public attributes set by the subclass."""
        fields: dict[str, Any] = {"code": self.code}
        fields.update(
            (key, value) for key, value in vars(self).items() if not key.startswith("_")
        )
        return fields


# Configuration errors


class ConfigurationError(PayrollKernelError):
    """Stored configuration cannot support the requested calculation."""

    code: str = "SALARY_CONFIGURATION_ERROR"


class NoSalaryHeadsResolvedError(ConfigurationError):
    """A non-empty head selection resolved to no head definitions."""

    code: str = "NO_SALARY_HEADS_RESOLVED"

    def __init__(self, selected_head_ids: list[str], company_id: str | None = None):
        self.selected_head_ids = list(selected_head_ids)
        self.company_id = company_id
        scope = f" for company {company_id}" if company_id else ""
        super().__init__(
            f"No salary heads resolved{scope} "
            f"({len(self.selected_head_ids)} selected)"
        )


# Request validation errors


class SalaryValidationError(PayrollKernelError):
    """Base exception for rejected salary calculation requests."""

    code: str = "SALARY_VALIDATION_ERROR"


class InvalidSalaryModeError(SalaryValidationError):
    """Salary mode is not one of the supported modes."""

    code: str = "INVALID_SALARY_MODE"

    def __init__(self, mode: str):
        self.field = "mode"
        self.mode = mode
        super().__init__(f'Invalid salary mode: {mode}. Must be "CTC" or "GROSS"')


class InvalidInputAmountError(SalaryValidationError):
    """Input amount is missing, non-numeric, or not positive."""

    code: str = "INVALID_INPUT_AMOUNT"

    def __init__(self, amount: str):
        self.field = "input_amount"
        self.amount = amount
        super().__init__(
            f"Invalid salary amount {amount!r}. Must be a positive number"
        )


# Salary head errors


class SalaryHeadError(PayrollKernelError):
    """Base exception for salary head management errors."""

    code: str = "SALARY_HEAD_ERROR"


class SalaryHeadNotFoundError(SalaryHeadError):
    """Salary head does not exist within the company."""

    code: str = "SALARY_HEAD_NOT_FOUND"

    def __init__(self, head_id: str):
        self.head_id = head_id
        super().__init__(f"Salary head not found: {head_id}")


class SelfReferencingHeadError(SalaryHeadError):
    """A percentage head names its own short name as its base."""

    code: str = "SELF_REFERENCING_HEAD"

    def __init__(self, short_name: str):
        self.short_name = short_name
        super().__init__(
            f"Salary head {short_name} cannot be percentage of itself"
        )


class SystemHeadImmutableError(SalaryHeadError):
    """Only the name of a system head may be edited."""

    code: str = "SYSTEM_HEAD_IMMUTABLE"

    def __init__(self, head_id: str, fields: list[str]):
        self.head_id = head_id
        self.fields = sorted(fields)
        super().__init__(
            f"System salary head {head_id} is read-only except for its name "
            f"(attempted: {', '.join(self.fields)})"
        )


class SystemHeadDeletionError(SalaryHeadError):
    """System heads cannot be deleted."""

    code: str = "SYSTEM_HEAD_DELETION"

    def __init__(self, head_id: str):
        self.head_id = head_id
        super().__init__(f"System salary head cannot be deleted: {head_id}")


class DuplicateShortNameError(SalaryHeadError):
    """Short name already used by another head of the company."""

    code: str = "DUPLICATE_SHORT_NAME"

    def __init__(self, short_name: str, company_id: str):
        self.short_name = short_name
        self.company_id = company_id
        super().__init__(
            f"Short name {short_name} already exists for company {company_id}"
        )


class DuplicateBalancingHeadError(SalaryHeadError):
    """A company may carry at most one balancing (special allowance) head."""

    code: str = "DUPLICATE_BALANCING_HEAD"

    def __init__(self, company_id: str, existing_head_id: str):
        self.company_id = company_id
        self.existing_head_id = existing_head_id
        super().__init__(
            f"Company {company_id} already has a balancing head: {existing_head_id}"
        )


class MissingHeadFieldError(SalaryHeadError):
    """A required salary head field was not supplied."""

    code: str = "MISSING_HEAD_FIELD"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Salary head field is required: {field}")


# Statutory rate errors


class StatutoryRateError(PayrollKernelError):
    """Base exception for PF / ESI / gratuity rate management errors."""

    code: str = "STATUTORY_RATE_ERROR"


class InvalidRateTypeError(StatutoryRateError):
    """Rate type is not recognised."""

    code: str = "INVALID_RATE_TYPE"

    def __init__(self, rate_type: str):
        self.rate_type = rate_type
        super().__init__(f"rate_type must be PF, ESI, or GRATUITY, got {rate_type!r}")


class StatutoryRateOverlapError(StatutoryRateError):
    """An active rule of the same type already covers the date range."""

    code: str = "STATUTORY_RATE_OVERLAP"

    def __init__(self, rate_type: str, effective_from: str, existing_rate_id: str):
        self.rate_type = rate_type
        self.effective_from = effective_from
        self.existing_rate_id = existing_rate_id
        super().__init__(
            f"An active {rate_type} rule already exists for the selected date "
            f"range (starting {effective_from})"
        )


class StatutoryRateNotFoundError(StatutoryRateError):
    """Statutory rate does not exist within the company."""

    code: str = "STATUTORY_RATE_NOT_FOUND"

    def __init__(self, rate_id: str):
        self.rate_id = rate_id
        super().__init__(f"Statutory rate not found: {rate_id}")


class InvalidEffectiveDateError(StatutoryRateError):
    """Effective date missing, unparseable, or range reversed."""

    code: str = "INVALID_EFFECTIVE_DATE"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"Valid {field} date is required, got {value!r}")
