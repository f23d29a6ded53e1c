"""
Salary Structure Module Service (``payroll_modules.salary.service``).

Responsibility
--------------
Orchestrates salary structure operations -- calculating and storing an
employee's CTC / gross breakdown, previewing a breakdown, maintaining a
company's salary heads, and maintaining its PF / ESI / gratuity rate
table -- by delegating computation to ``SalaryStructureEngine`` and
persistence to the ORM models in ``payroll_modules.salary.orm``.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  ``SalaryStructureService`` is the
sole public entry point for salary structure operations.  It composes the
stateless engine, the pure helpers, and the active ``PayrollConfigSet``.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary (``commit`` on
  success, ``rollback`` and re-raise on any exception).
* Replacing an employee's breakdown is atomic: the previous config and its
  lines are deleted and the new ones inserted in one transaction.
* Seeding the default rates is atomic: either every missing default is
  stored or none is.
* Requests are validated before the engine is invoked.
* System heads keep everything but their name; they cannot be deleted.
* Active PF and ESI rates of a company never overlap in time.

Failure modes
-------------
* ``SalaryValidationError`` subclasses for rejected calculation requests.
* ``NoSalaryHeadsResolvedError`` when the selection matches no stored head.
* ``SalaryHeadError`` / ``StatutoryRateError`` subclasses for rejected
  management operations.
* Unexpected exception  -> session rolled back, exception re-raised.

Audit relevance
---------------
Every public method binds ``company_id`` (and ``employee_id`` /
``actor_id`` where it has them) on ``LogContext``, so each record it
emits, the engine trace included, carries them.  Structured log events
are emitted at operation start and commit for every public write method.
Stored salary configs carry point-in-time snapshots of the statutory
rules that produced them.

Usage::

    service = SalaryStructureService(session)
    outcome = service.calculate_employee_salary(
        company_id=company_id, employee_id=employee_id,
        mode="CTC", input_amount="50000",
        selected_head_ids=[basic_id, hra_id, special_id],
        actor_id=actor_id,
    )
    outcome.result.totals.net_in_hand
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from payroll_config import PayrollConfigSet, StatutoryRateDef, get_active_config
from payroll_engines.salary_structure import (
    BALANCING_SYSTEM_CODE,
    SalaryCalculationResult,
    SalaryStructureEngine,
)
from payroll_kernel.domain.amounts import to_decimal
from payroll_kernel.exceptions import (
    DuplicateBalancingHeadError,
    DuplicateShortNameError,
    InvalidEffectiveDateError,
    InvalidRateTypeError,
    NoSalaryHeadsResolvedError,
    SalaryHeadNotFoundError,
    StatutoryRateNotFoundError,
    StatutoryRateOverlapError,
    SystemHeadDeletionError,
    SystemHeadImmutableError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.salary.helpers import (
    normalize_head_ids,
    validate_head_payload,
    validate_salary_request,
)
from payroll_modules.salary.models import (
    EmployeeSalaryConfig,
    EmployeeSalaryLine,
    RateType,
    SalaryHead,
    SalaryStructureOutcome,
    StatutoryRate,
    flags_to_mapping,
)
from payroll_modules.salary.orm import (
    EmployeeSalaryConfigModel,
    EmployeeSalaryHeadModel,
    SalaryHeadModel,
    StatutoryRateModel,
)

logger = get_logger("modules.salary.service")

SPECIAL_ALLOWANCE_NAME = "Special Allowance"
SPECIAL_ALLOWANCE_SHORT_NAME = "SA"

_HEAD_FIELDS = frozenset({
    "name",
    "short_name",
    "field_type",
    "is_percentage",
    "value",
    "percentage_of",
    "applicable_for",
    "form16_field",
    "sort_order",
})

_RATE_FIELDS = {
    RateType.PF: (
        "emp_share_ac1",
        "er_share_ac2",
        "eps_ac21",
        "edli_charges_ac21",
        "admin_charges_ac10",
        "admin_charges_ac22",
        "pf_wage_ceiling",
        "calc_type",
        "eps_wage_ceiling",
        "min_eps_contribution",
    ),
    RateType.ESI: ("emp_share", "employer_share", "esi_wage_ceiling"),
    RateType.GRATUITY: ("gratuity_percent", "gratuity_base"),
}

# Rate fields stored as text; every other rate field is a Decimal.
_TEXT_RATE_FIELDS = frozenset({"calc_type", "gratuity_base"})


def _parse_rate_type(rate_type: Any) -> RateType:
    if isinstance(rate_type, RateType):
        return rate_type
    try:
        return RateType(str(rate_type).upper())
    except ValueError:
        raise InvalidRateTypeError(str(rate_type)) from None


def _parse_effective_date(field: str, value: Any, required: bool) -> date | None:
    if value is None or value == "":
        if required:
            raise InvalidEffectiveDateError(field, str(value))
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidEffectiveDateError(field, str(value)) from None


def _optional_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return to_decimal(value)


def _rate_value(name: str, value: Any) -> Decimal | str | None:
    if name in _TEXT_RATE_FIELDS:
        text = "" if value is None else str(value).strip()
        return text or None
    return _optional_decimal(value)


class SalaryStructureService:
    """
    Orchestrates salary structure operations through the engine and ORM.

    Contract:
        Each public write method is a single transaction.  Read methods
        never commit.

    Engine composition:
        - SalaryStructureEngine: CTC / gross decomposition into salary heads
    """

    def __init__(
        self,
        session: Session,
        config: PayrollConfigSet | None = None,
        engine: SalaryStructureEngine | None = None,
    ):
        self._session = session
        self._config = config or get_active_config()
        self._engine = engine or SalaryStructureEngine(self._config.engine)

    # =========================================================================
    # Salary calculation
    # =========================================================================

    def calculate_employee_salary(
        self,
        company_id: UUID | str,
        employee_id: UUID | str,
        mode: Any,
        input_amount: Any,
        selected_head_ids: Iterable[Any],
        actor_id: UUID | str,
    ) -> SalaryStructureOutcome:
        """
        Compute an employee's salary breakdown and store it.

        The employee's previous salary config and breakdown lines are
        replaced.  Engine warnings are returned on ``outcome.result``.
        """
        with LogContext.bind(
            company_id=company_id, employee_id=employee_id, actor_id=actor_id,
        ):
            try:
                salary_mode, amount = validate_salary_request(mode, input_amount)
                head_ids = normalize_head_ids(selected_head_ids)

                logger.info("salary_structure_started", extra={
                    "mode": salary_mode.value,
                    "input_amount": str(amount),
                    "selected_count": len(head_ids),
                })

                result, pf_rate, esi_rate, gratuity_rate = self._compute(
                    company_id, salary_mode, amount, head_ids,
                )

                self._delete_salary_configs(company_id, employee_id)

                totals = result.totals
                config = EmployeeSalaryConfigModel(
                    company_id=company_id,
                    employee_id=employee_id,
                    salary_mode=result.mode.value,
                    input_amount=result.input_amount,
                    gross_salary=totals.gross_salary,
                    net_salary=totals.net_in_hand,
                    annual_ctc=totals.annual_ctc,
                    pf_rule_snapshot=pf_rate.snapshot() if pf_rate else {},
                    esi_rule_snapshot=esi_rate.snapshot() if esi_rate else {},
                    gratuity_rule_snapshot=self._gratuity_snapshot(result, gratuity_rate),
                    created_by_id=actor_id,
                )
                for line_number, row in enumerate(result.rows, start=1):
                    config.lines.append(EmployeeSalaryHeadModel(
                        company_id=company_id,
                        employee_id=employee_id,
                        salary_head_id=UUID(row.id),
                        line_number=line_number,
                        head_name=row.name,
                        head_type=row.head_type.storage_code,
                        formula=row.formula,
                        base_amount=row.base_amount,
                        net_amount=row.monthly,
                        annual_amount=row.annual,
                        pf_employee=row.pf_employee,
                        pf_employer=row.pf_employer,
                        esi_employee=row.esi_employee,
                        esi_employer=row.esi_employer,
                        gratuity_employer=row.gratuity_employer,
                        is_special_allowance=row.is_special_allowance,
                        created_by_id=actor_id,
                    ))
                self._session.add(config)
                self._session.flush()

                outcome = SalaryStructureOutcome(
                    config=config.to_dto(),
                    lines=tuple(line.to_dto() for line in config.lines),
                    result=result,
                )
                self._session.commit()

                logger.info("salary_structure_committed", extra={
                    "salary_config_id": str(outcome.config_id),
                    "line_count": len(outcome.lines),
                    "gross_salary": str(outcome.config.gross_salary),
                    "net_salary": str(outcome.config.net_salary),
                    "annual_ctc": str(outcome.config.annual_ctc),
                    "warning_count": len(result.warnings),
                })
                return outcome

            except Exception:
                self._session.rollback()
                raise

    def preview_salary(
        self,
        company_id: UUID | str,
        mode: Any,
        input_amount: Any,
        selected_head_ids: Iterable[Any],
    ) -> SalaryCalculationResult:
        """Compute a salary breakdown without storing anything."""
        with LogContext.bind(company_id=company_id):
            salary_mode, amount = validate_salary_request(mode, input_amount)
            result, *_ = self._compute(
                company_id, salary_mode, amount, normalize_head_ids(selected_head_ids),
            )
            return result

    def get_employee_salary(
        self,
        company_id: UUID | str,
        employee_id: UUID | str,
    ) -> tuple[EmployeeSalaryConfig, tuple[EmployeeSalaryLine, ...]] | None:
        """Stored salary config and breakdown lines of an employee, if any."""
        config = self._session.scalars(
            select(EmployeeSalaryConfigModel)
            .where(
                EmployeeSalaryConfigModel.company_id == company_id,
                EmployeeSalaryConfigModel.employee_id == employee_id,
            )
            .order_by(EmployeeSalaryConfigModel.created_at.desc())
        ).first()
        if config is None:
            return None
        return config.to_dto(), tuple(line.to_dto() for line in config.lines)

    def _compute(
        self,
        company_id: UUID | str,
        mode,
        amount: Decimal,
        head_ids: list[str],
    ) -> tuple[
        SalaryCalculationResult,
        StatutoryRate | None,
        StatutoryRate | None,
        StatutoryRate | None,
    ]:
        heads = self._load_heads(company_id, head_ids)
        if not heads:
            logger.error("salary_structure_no_heads", extra={
                "selected_count": len(head_ids),
            })
            raise NoSalaryHeadsResolvedError(head_ids, company_id=str(company_id))

        pf_rate = self.get_active_rate(company_id, RateType.PF)
        esi_rate = self.get_active_rate(company_id, RateType.ESI)
        gratuity_rate = self.get_active_rate(company_id, RateType.GRATUITY)

        result = self._engine.calculate(
            mode=mode,
            input_amount=amount,
            heads=[head.to_definition() for head in heads],
            selected_head_ids=head_ids,
            pf_rule=pf_rate.to_pf_rule() if pf_rate else None,
            esi_rule=esi_rate.to_esi_rule() if esi_rate else None,
            gratuity_rule=gratuity_rate.to_gratuity_rule() if gratuity_rate else None,
        )
        for warning in result.warnings:
            logger.warning("salary_structure_warning", extra={
                "warning_code": warning.code.value,
                "head_id": warning.head_id,
                "detail": warning.message,
            })
        return result, pf_rate, esi_rate, gratuity_rate

    def _load_heads(self, company_id: UUID | str, head_ids: list[str]) -> list[SalaryHead]:
        if not head_ids:
            return []
        models = self._session.scalars(
            select(SalaryHeadModel)
            .where(
                SalaryHeadModel.company_id == company_id,
                SalaryHeadModel.id.in_(head_ids),
            )
            .order_by(SalaryHeadModel.sort_order, SalaryHeadModel.created_at)
        ).all()
        return [model.to_dto() for model in models]

    def _delete_salary_configs(
        self,
        company_id: UUID | str,
        employee_id: UUID | str,
    ) -> None:
        previous = self._session.scalars(
            select(EmployeeSalaryConfigModel).where(
                EmployeeSalaryConfigModel.company_id == company_id,
                EmployeeSalaryConfigModel.employee_id == employee_id,
            )
        ).all()
        for config in previous:
            self._session.delete(config)
        if previous:
            self._session.flush()
            logger.debug("salary_structure_replaced", extra={
                "replaced_count": len(previous),
            })

    def _gratuity_snapshot(
        self,
        result: SalaryCalculationResult,
        gratuity_rate: StatutoryRate | None,
    ) -> dict[str, Any]:
        settings = self._config.engine
        snapshot: dict[str, Any] = {
            "formula": result.gratuity_formula,
            "daysPerYear": str(settings.gratuity_days_per_year),
            "workingDays": str(settings.gratuity_working_days),
        }
        if gratuity_rate is not None:
            snapshot.update(gratuity_rate.snapshot())
        return snapshot

    # =========================================================================
    # Salary heads
    # =========================================================================

    def list_salary_heads(self, company_id: UUID | str) -> list[SalaryHead]:
        models = self._session.scalars(
            select(SalaryHeadModel)
            .where(SalaryHeadModel.company_id == company_id)
            .order_by(SalaryHeadModel.sort_order, SalaryHeadModel.created_at)
        ).all()
        return [model.to_dto() for model in models]

    def create_salary_head(
        self,
        company_id: UUID | str,
        actor_id: UUID | str,
        name: str | None,
        field_type: Any,
        short_name: str | None = None,
        is_percentage: bool = False,
        value: Any = None,
        percentage_of: str | None = None,
        applicable_for: Any = None,
        form16_field: str | None = None,
        sort_order: int | None = None,
        system_code: str | None = None,
    ) -> SalaryHead:
        """
        Create a salary head for a company.

        ``sort_order`` defaults to after every existing head, so definition
        order follows creation order.
        """
        with LogContext.bind(company_id=company_id, actor_id=actor_id):
            try:
                parsed_type = validate_head_payload(
                    name, field_type, short_name, is_percentage, percentage_of,
                )
                if short_name:
                    self._check_short_name_free(company_id, short_name)
                if system_code == BALANCING_SYSTEM_CODE:
                    existing = self._balancing_head(company_id)
                    if existing is not None:
                        raise DuplicateBalancingHeadError(str(company_id), str(existing.id))

                model = SalaryHeadModel(
                    id=uuid4(),
                    company_id=company_id,
                    name=name,
                    short_name=short_name or None,
                    field_type=parsed_type.value,
                    is_percentage=bool(is_percentage),
                    value=to_decimal(value),
                    percentage_of=percentage_of or None,
                    applicable_for=flags_to_mapping(applicable_for),
                    form16_field=form16_field or None,
                    is_system=system_code is not None,
                    system_code=system_code,
                    sort_order=(
                        sort_order if sort_order is not None
                        else self._next_sort_order(company_id)
                    ),
                    created_by_id=actor_id,
                )
                self._session.add(model)
                self._session.flush()
                head = model.to_dto()
                self._session.commit()

                logger.info("salary_head_created", extra={
                    "head_id": str(head.id),
                    "short_name": head.short_name,
                    "is_system": head.is_system,
                })
                return head

            except Exception:
                self._session.rollback()
                raise

    def ensure_special_allowance_head(
        self,
        company_id: UUID | str,
        actor_id: UUID | str,
    ) -> SalaryHead:
        """Return the company's balancing head, creating it if missing."""
        existing = self._balancing_head(company_id)
        if existing is not None:
            return existing.to_dto()
        return self.create_salary_head(
            company_id=company_id,
            actor_id=actor_id,
            name=SPECIAL_ALLOWANCE_NAME,
            short_name=SPECIAL_ALLOWANCE_SHORT_NAME,
            field_type="Earnings",
            is_percentage=False,
            value=0,
            applicable_for={},
            form16_field="Allowance",
            system_code=BALANCING_SYSTEM_CODE,
        )

    def update_salary_head(
        self,
        company_id: UUID | str,
        head_id: UUID | str,
        actor_id: UUID | str,
        **changes: Any,
    ) -> SalaryHead:
        """
        Update a salary head.

        System heads accept a new ``name`` only; any other changed field
        raises ``SystemHeadImmutableError``.
        """
        unknown = set(changes) - _HEAD_FIELDS
        if unknown:
            raise TypeError(f"Unknown salary head fields: {', '.join(sorted(unknown))}")

        with LogContext.bind(company_id=company_id, actor_id=actor_id):
            try:
                model = self._get_head_model(company_id, head_id)
                current = model.to_dto()

                if model.is_system:
                    changed = [
                        key for key, new in changes.items()
                        if key != "name" and not self._same_value(current, key, new)
                    ]
                    if changed:
                        raise SystemHeadImmutableError(str(head_id), changed)
                    if "name" in changes:
                        validate_head_payload(
                            changes["name"], model.field_type, None, False, None,
                        )
                        model.name = changes["name"]
                else:
                    merged = {
                        "name": current.name,
                        "short_name": current.short_name,
                        "field_type": current.field_type,
                        "is_percentage": current.is_percentage,
                        "percentage_of": current.percentage_of,
                    }
                    merged.update({k: v for k, v in changes.items() if k in merged})
                    parsed_type = validate_head_payload(
                        merged["name"],
                        merged["field_type"],
                        merged["short_name"],
                        merged["is_percentage"],
                        merged["percentage_of"],
                    )
                    new_short = changes.get("short_name", current.short_name) or None
                    if new_short and new_short != current.short_name:
                        self._check_short_name_free(company_id, new_short)

                    model.name = merged["name"]
                    model.short_name = new_short
                    model.field_type = parsed_type.value
                    model.is_percentage = bool(merged["is_percentage"])
                    model.percentage_of = merged["percentage_of"] or None
                    if "value" in changes:
                        model.value = to_decimal(changes["value"])
                    if "applicable_for" in changes:
                        model.applicable_for = flags_to_mapping(changes["applicable_for"])
                    if "form16_field" in changes:
                        model.form16_field = changes["form16_field"] or None
                    if "sort_order" in changes:
                        model.sort_order = int(changes["sort_order"])

                model.touch(actor_id)
                self._session.flush()
                head = model.to_dto()
                self._session.commit()

                logger.info("salary_head_updated", extra={
                    "head_id": str(head_id),
                    "fields": sorted(changes),
                })
                return head

            except Exception:
                self._session.rollback()
                raise

    def delete_salary_head(
        self,
        company_id: UUID | str,
        head_id: UUID | str,
        actor_id: UUID | str,
    ) -> None:
        with LogContext.bind(company_id=company_id, actor_id=actor_id):
            try:
                model = self._get_head_model(company_id, head_id)
                if model.is_system:
                    raise SystemHeadDeletionError(str(head_id))
                self._session.delete(model)
                self._session.commit()
                logger.info("salary_head_deleted", extra={"head_id": str(head_id)})
            except Exception:
                self._session.rollback()
                raise

    def _get_head_model(self, company_id: UUID | str, head_id: UUID | str) -> SalaryHeadModel:
        model = self._session.scalars(
            select(SalaryHeadModel).where(
                SalaryHeadModel.company_id == company_id,
                SalaryHeadModel.id == head_id,
            )
        ).first()
        if model is None:
            raise SalaryHeadNotFoundError(str(head_id))
        return model

    def _balancing_head(self, company_id: UUID | str) -> SalaryHeadModel | None:
        return self._session.scalars(
            select(SalaryHeadModel).where(
                SalaryHeadModel.company_id == company_id,
                SalaryHeadModel.system_code == BALANCING_SYSTEM_CODE,
            )
        ).first()

    def _check_short_name_free(self, company_id: UUID | str, short_name: str) -> None:
        taken = self._session.scalars(
            select(SalaryHeadModel.id).where(
                SalaryHeadModel.company_id == company_id,
                SalaryHeadModel.short_name == short_name,
            )
        ).first()
        if taken is not None:
            raise DuplicateShortNameError(short_name, str(company_id))

    def _next_sort_order(self, company_id: UUID | str) -> int:
        highest = self._session.scalar(
            select(func.max(SalaryHeadModel.sort_order)).where(
                SalaryHeadModel.company_id == company_id,
            )
        )
        return 0 if highest is None else highest + 1

    @staticmethod
    def _same_value(current: SalaryHead, key: str, new: Any) -> bool:
        old = getattr(current, key)
        if key == "applicable_for":
            return {k: v for k, v in old.items() if v} == {
                k: v for k, v in flags_to_mapping(new).items() if v
            }
        if key == "value":
            return (old if old is not None else to_decimal(None)) == to_decimal(new)
        if key == "field_type":
            return str(new) in (old.value, old.storage_code, old.name)
        return old == new

    # =========================================================================
    # Statutory rates
    # =========================================================================

    def create_statutory_rate(
        self,
        company_id: UUID | str,
        actor_id: UUID | str,
        rate_type: Any,
        effective_from: Any,
        effective_to: Any = None,
        remarks: str | None = None,
        **values: Any,
    ) -> StatutoryRate:
        """
        Add a PF, ESI or gratuity rate.

        Only the fields belonging to ``rate_type`` are stored; others are
        ignored.  Active PF and ESI rates may not overlap in time.
        """
        with LogContext.bind(company_id=company_id, actor_id=actor_id):
            try:
                rate = self._add_statutory_rate(
                    company_id, actor_id, rate_type,
                    effective_from=effective_from,
                    effective_to=effective_to,
                    remarks=remarks,
                    **values,
                )
                self._session.commit()
                logger.info("statutory_rate_created", extra={
                    "rate_id": str(rate.id),
                    "rate_type": rate.rate_type.value,
                    "effective_from": rate.effective_from.isoformat(),
                })
                return rate

            except Exception:
                self._session.rollback()
                raise

    def _add_statutory_rate(
        self,
        company_id: UUID | str,
        actor_id: UUID | str,
        rate_type: Any,
        effective_from: Any,
        effective_to: Any = None,
        remarks: str | None = None,
        **values: Any,
    ) -> StatutoryRate:
        """Validate and flush one rate; the caller commits."""
        parsed_type = _parse_rate_type(rate_type)
        start = _parse_effective_date("effective_from", effective_from, required=True)
        end = _parse_effective_date("effective_to", effective_to, required=False)
        if end is not None and end < start:
            raise InvalidEffectiveDateError("effective_to", str(end))

        if not parsed_type.allows_overlap:
            self._check_no_overlap(company_id, parsed_type, start, end)

        fields = {
            name: _rate_value(name, values.get(name))
            for name in _RATE_FIELDS[parsed_type]
        }
        rate = StatutoryRate(
            id=uuid4(),
            company_id=company_id,
            rate_type=parsed_type,
            effective_from=start,
            effective_to=end,
            is_active=True,
            remarks=remarks or None,
            **fields,
        )
        model = StatutoryRateModel.from_dto(rate, created_by_id=actor_id)
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def update_statutory_rate(
        self,
        company_id: UUID | str,
        rate_id: UUID | str,
        actor_id: UUID | str,
        **changes: Any,
    ) -> StatutoryRate:
        """
        Update dates, remarks, or the rate fields of the rate's own type.

        The overlap rule is re-checked against the company's other active
        rates of the same type.
        """
        with LogContext.bind(company_id=company_id, actor_id=actor_id):
            try:
                model = self._get_rate_model(company_id, rate_id)
                rate_type = RateType(model.rate_type)

                start = model.effective_from
                end = model.effective_to
                if changes.get("effective_from"):
                    start = _parse_effective_date(
                        "effective_from", changes["effective_from"], required=True,
                    )
                if "effective_to" in changes:
                    end = _parse_effective_date(
                        "effective_to", changes["effective_to"], required=False,
                    )
                if end is not None and end < start:
                    raise InvalidEffectiveDateError("effective_to", str(end))

                if not rate_type.allows_overlap:
                    self._check_no_overlap(
                        company_id, rate_type, start, end, exclude_id=model.id,
                    )

                model.effective_from = start
                model.effective_to = end
                if "remarks" in changes:
                    model.remarks = changes["remarks"] or None
                for name in _RATE_FIELDS[rate_type]:
                    if name in changes:
                        setattr(model, name, _rate_value(name, changes[name]))
                model.touch(actor_id)
                self._session.flush()
                result = model.to_dto()
                self._session.commit()

                logger.info("statutory_rate_updated", extra={
                    "rate_id": str(rate_id),
                    "rate_type": rate_type.value,
                })
                return result

            except Exception:
                self._session.rollback()
                raise

    def deactivate_statutory_rate(
        self,
        company_id: UUID | str,
        rate_id: UUID | str,
        actor_id: UUID | str,
    ) -> StatutoryRate:
        """Mark a rate inactive; it is kept for history."""
        with LogContext.bind(company_id=company_id, actor_id=actor_id):
            try:
                model = self._get_rate_model(company_id, rate_id)
                model.is_active = False
                model.touch(actor_id)
                self._session.flush()
                result = model.to_dto()
                self._session.commit()
                logger.info("statutory_rate_deactivated", extra={
                    "rate_id": str(rate_id),
                    "rate_type": model.rate_type,
                })
                return result
            except Exception:
                self._session.rollback()
                raise

    def list_statutory_rates(
        self,
        company_id: UUID | str,
        rate_type: Any = None,
    ) -> list[StatutoryRate]:
        """Active rates of a company, newest ``effective_from`` first."""
        query = select(StatutoryRateModel).where(
            StatutoryRateModel.company_id == company_id,
            StatutoryRateModel.is_active.is_(True),
        )
        if rate_type is not None:
            query = query.where(
                StatutoryRateModel.rate_type == _parse_rate_type(rate_type).value,
            )
        models = self._session.scalars(
            query.order_by(StatutoryRateModel.effective_from.desc())
        ).all()
        return [model.to_dto() for model in models]

    def get_active_rate(
        self,
        company_id: UUID | str,
        rate_type: Any,
        as_of: date | None = None,
    ) -> StatutoryRate | None:
        """
        The rate in force: the active rate with the latest ``effective_from``.

        With ``as_of`` only rates whose effective range covers that day are
        considered.
        """
        query = select(StatutoryRateModel).where(
            StatutoryRateModel.company_id == company_id,
            StatutoryRateModel.rate_type == _parse_rate_type(rate_type).value,
            StatutoryRateModel.is_active.is_(True),
        )
        if as_of is not None:
            query = query.where(
                StatutoryRateModel.effective_from <= as_of,
                (StatutoryRateModel.effective_to.is_(None))
                | (StatutoryRateModel.effective_to >= as_of),
            )
        model = self._session.scalars(
            query.order_by(
                StatutoryRateModel.effective_from.desc(),
                StatutoryRateModel.created_at.desc(),
            )
        ).first()
        return model.to_dto() if model is not None else None

    def seed_default_rates(
        self,
        company_id: UUID | str,
        actor_id: UUID | str,
    ) -> list[StatutoryRate]:
        """
        Create the configured default rates a company does not have yet.

        A default is skipped when the company already has an active rate of
        the same type, so seeding is idempotent.  All defaults are stored in
        one transaction.
        """
        with LogContext.bind(company_id=company_id, actor_id=actor_id):
            try:
                created = [
                    self._add_default_rate(company_id, actor_id, default)
                    for default in self._config.statutory_defaults
                    if self.get_active_rate(company_id, default.rate_type) is None
                ]
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("statutory_rates_seeded", extra={
                "created_count": len(created),
                "rate_types": [rate.rate_type.value for rate in created],
                "config_set_id": self._config.config_id,
            })
            return created

    def _add_default_rate(
        self,
        company_id: UUID | str,
        actor_id: UUID | str,
        default: StatutoryRateDef,
    ) -> StatutoryRate:
        rate_type = RateType(default.rate_type)
        return self._add_statutory_rate(
            company_id, actor_id, rate_type,
            effective_from=default.effective_from,
            effective_to=default.effective_to,
            remarks=default.remarks,
            **{name: getattr(default, name) for name in _RATE_FIELDS[rate_type]},
        )

    def _get_rate_model(self, company_id: UUID | str, rate_id: UUID | str) -> StatutoryRateModel:
        model = self._session.scalars(
            select(StatutoryRateModel).where(
                StatutoryRateModel.company_id == company_id,
                StatutoryRateModel.id == rate_id,
            )
        ).first()
        if model is None:
            raise StatutoryRateNotFoundError(str(rate_id))
        return model

    def _check_no_overlap(
        self,
        company_id: UUID | str,
        rate_type: RateType,
        start: date,
        end: date | None,
        exclude_id: UUID | None = None,
    ) -> None:
        query = select(StatutoryRateModel).where(
            StatutoryRateModel.company_id == company_id,
            StatutoryRateModel.rate_type == rate_type.value,
            StatutoryRateModel.is_active.is_(True),
        )
        if exclude_id is not None:
            query = query.where(StatutoryRateModel.id != exclude_id)
        for model in self._session.scalars(query).all():
            existing = model.to_dto()
            if existing.overlaps(start, end):
                raise StatutoryRateOverlapError(
                    rate_type.value, start.isoformat(), str(existing.id),
                )
