"""
Salary Structure ORM Persistence Models (``payroll_modules.salary.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen DTOs defined in
    ``payroll_modules.salary.models``.  Each ORM class mirrors a DTO and
    provides ``to_dto()`` (and ``from_dto()`` where rows are created from
    DTOs).

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK, auto-generated), created_at, updated_at,
    created_by_id (NOT NULL UUID), updated_by_id (nullable UUID).
    Every model is company-scoped through ``CompanyScopedMixin``
    (indexed ``company_id``).

Invariants enforced:
    - All monetary fields use Numeric(38, 9); percentages Numeric(9, 4).
    - Enum fields stored as String(50) containing the enum .value string.
    - ``applicable_for`` and rule snapshots are stored as JSON.
    - Breakdown lines belong to exactly one salary config and are deleted
      with it.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_kernel.db.base import CompanyScopedMixin, TrackedBase, UUIDString
from payroll_kernel.db.types import Amount, Document, LongText, Name, Percentage, ShortCode

# ---------------------------------------------------------------------------
# SalaryHeadModel
# ---------------------------------------------------------------------------


class SalaryHeadModel(CompanyScopedMixin, TrackedBase):
    """
    ORM model for ``SalaryHead`` -- a company's earning or deduction head.

    Guarantees:
        - ``short_name`` is unique per company (uq_salary_head_short_name).
        - ``field_type`` stores the ``FieldType`` value ("Earnings" /
          "Deductions").
    """

    __tablename__ = "payroll_salary_heads"

    name: Mapped[str] = mapped_column(Name, nullable=False)
    short_name: Mapped[str | None] = mapped_column(ShortCode, nullable=True)
    field_type: Mapped[str] = mapped_column(ShortCode, nullable=False)
    is_percentage: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    value: Mapped[Decimal | None] = mapped_column(Amount, nullable=True)
    percentage_of: Mapped[str | None] = mapped_column(ShortCode, nullable=True)
    applicable_for: Mapped[dict] = mapped_column(Document, default=dict, nullable=False)
    form16_field: Mapped[str | None] = mapped_column(ShortCode, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    system_code: Mapped[str | None] = mapped_column(ShortCode, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "short_name", name="uq_salary_head_short_name"),
        UniqueConstraint("company_id", "system_code", name="uq_salary_head_system_code"),
    )

    def to_dto(self):
        from payroll_engines.salary_structure.types import FieldType
        from payroll_modules.salary.models import SalaryHead
        return SalaryHead(
            id=self.id,
            company_id=self.company_id,
            name=self.name,
            short_name=self.short_name,
            field_type=FieldType(self.field_type),
            is_percentage=self.is_percentage,
            value=self.value,
            percentage_of=self.percentage_of,
            applicable_for=dict(self.applicable_for or {}),
            form16_field=self.form16_field,
            is_system=self.is_system,
            system_code=self.system_code,
            sort_order=self.sort_order,
        )

    def __repr__(self) -> str:
        return f"<SalaryHeadModel {self.short_name or self.name} ({self.field_type})>"


# ---------------------------------------------------------------------------
# StatutoryRateModel
# ---------------------------------------------------------------------------


class StatutoryRateModel(CompanyScopedMixin, TrackedBase):
    """
    ORM model for ``StatutoryRate`` -- a dated PF, ESI or gratuity rate.

    Contract:
        The most recent active row by ``effective_from`` is the rule in
        force for a company and rate type.
    """

    __tablename__ = "payroll_statutory_rates"

    rate_type: Mapped[str] = mapped_column(ShortCode, nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    emp_share_ac1: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    er_share_ac2: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    eps_ac21: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    edli_charges_ac21: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    admin_charges_ac10: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    pf_wage_ceiling: Mapped[Decimal | None] = mapped_column(Amount, nullable=True)

    emp_share: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    employer_share: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    esi_wage_ceiling: Mapped[Decimal | None] = mapped_column(Amount, nullable=True)

    admin_charges_ac22: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    calc_type: Mapped[str | None] = mapped_column(ShortCode, nullable=True)
    eps_wage_ceiling: Mapped[Decimal | None] = mapped_column(Amount, nullable=True)
    min_eps_contribution: Mapped[Decimal | None] = mapped_column(Amount, nullable=True)

    gratuity_percent: Mapped[Decimal | None] = mapped_column(Percentage, nullable=True)
    gratuity_base: Mapped[str | None] = mapped_column(ShortCode, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    remarks: Mapped[str | None] = mapped_column(LongText, nullable=True)

    __table_args__ = (
        Index(
            "idx_statutory_rate_lookup",
            "company_id", "rate_type", "is_active", "effective_from",
        ),
    )

    def to_dto(self):
        from payroll_modules.salary.models import RateType, StatutoryRate
        return StatutoryRate(
            id=self.id,
            company_id=self.company_id,
            rate_type=RateType(self.rate_type),
            effective_from=self.effective_from,
            effective_to=self.effective_to,
            emp_share_ac1=self.emp_share_ac1,
            er_share_ac2=self.er_share_ac2,
            eps_ac21=self.eps_ac21,
            edli_charges_ac21=self.edli_charges_ac21,
            admin_charges_ac10=self.admin_charges_ac10,
            pf_wage_ceiling=self.pf_wage_ceiling,
            emp_share=self.emp_share,
            employer_share=self.employer_share,
            esi_wage_ceiling=self.esi_wage_ceiling,
            admin_charges_ac22=self.admin_charges_ac22,
            calc_type=self.calc_type,
            eps_wage_ceiling=self.eps_wage_ceiling,
            min_eps_contribution=self.min_eps_contribution,
            gratuity_percent=self.gratuity_percent,
            gratuity_base=self.gratuity_base,
            is_active=self.is_active,
            remarks=self.remarks,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "StatutoryRateModel":
        return cls(
            id=dto.id,
            company_id=dto.company_id,
            rate_type=dto.rate_type.value if hasattr(dto.rate_type, "value") else dto.rate_type,
            effective_from=dto.effective_from,
            effective_to=dto.effective_to,
            emp_share_ac1=dto.emp_share_ac1,
            er_share_ac2=dto.er_share_ac2,
            eps_ac21=dto.eps_ac21,
            edli_charges_ac21=dto.edli_charges_ac21,
            admin_charges_ac10=dto.admin_charges_ac10,
            pf_wage_ceiling=dto.pf_wage_ceiling,
            emp_share=dto.emp_share,
            employer_share=dto.employer_share,
            esi_wage_ceiling=dto.esi_wage_ceiling,
            admin_charges_ac22=dto.admin_charges_ac22,
            calc_type=dto.calc_type,
            eps_wage_ceiling=dto.eps_wage_ceiling,
            min_eps_contribution=dto.min_eps_contribution,
            gratuity_percent=dto.gratuity_percent,
            gratuity_base=dto.gratuity_base,
            is_active=dto.is_active,
            remarks=dto.remarks,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<StatutoryRateModel {self.rate_type} from {self.effective_from}>"


# ---------------------------------------------------------------------------
# EmployeeSalaryConfigModel
# ---------------------------------------------------------------------------


class EmployeeSalaryConfigModel(CompanyScopedMixin, TrackedBase):
    """
    ORM model for ``EmployeeSalaryConfig`` -- one salary calculation snapshot.

    Guarantees:
        - At most one config per employee is kept by the service; a new
          calculation replaces the previous config and its lines.
        - Rule snapshots are point-in-time JSON copies, never references.
    """

    __tablename__ = "payroll_employee_salary_configs"

    employee_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    salary_mode: Mapped[str] = mapped_column(ShortCode, nullable=False)
    input_amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    annual_ctc: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    pf_rule_snapshot: Mapped[dict | None] = mapped_column(Document, nullable=True)
    esi_rule_snapshot: Mapped[dict | None] = mapped_column(Document, nullable=True)
    gratuity_rule_snapshot: Mapped[dict | None] = mapped_column(Document, nullable=True)

    lines: Mapped[list["EmployeeSalaryHeadModel"]] = relationship(
        back_populates="salary_config",
        cascade="all, delete-orphan",
        order_by="EmployeeSalaryHeadModel.line_number",
    )

    __table_args__ = (
        Index("idx_salary_config_employee", "company_id", "employee_id"),
    )

    def to_dto(self):
        from payroll_engines.salary_structure.types import SalaryMode
        from payroll_modules.salary.models import EmployeeSalaryConfig
        return EmployeeSalaryConfig(
            id=self.id,
            company_id=self.company_id,
            employee_id=self.employee_id,
            salary_mode=SalaryMode(self.salary_mode),
            input_amount=self.input_amount,
            gross_salary=self.gross_salary,
            net_salary=self.net_salary,
            annual_ctc=self.annual_ctc,
            pf_rule_snapshot=self.pf_rule_snapshot,
            esi_rule_snapshot=self.esi_rule_snapshot,
            gratuity_rule_snapshot=self.gratuity_rule_snapshot,
        )

    def __repr__(self) -> str:
        return (
            f"<EmployeeSalaryConfigModel {self.employee_id}: "
            f"{self.salary_mode} {self.input_amount}>"
        )


# ---------------------------------------------------------------------------
# EmployeeSalaryHeadModel
# ---------------------------------------------------------------------------


class EmployeeSalaryHeadModel(CompanyScopedMixin, TrackedBase):
    """
    ORM model for ``EmployeeSalaryLine`` -- one computed breakdown row.

    ``head_type`` is "EARNING" or "DEDUCTION".  ``salary_head_id`` is set
    to NULL if the head is later deleted; ``head_name`` keeps the label.
    """

    __tablename__ = "payroll_employee_salary_heads"

    salary_config_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("payroll_employee_salary_configs.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    salary_head_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("payroll_salary_heads.id", ondelete="SET NULL"),
        nullable=True,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    head_name: Mapped[str] = mapped_column(Name, nullable=False)
    head_type: Mapped[str] = mapped_column(ShortCode, nullable=False)
    formula: Mapped[str | None] = mapped_column(Name, nullable=True)
    base_amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    annual_amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    pf_employee: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    pf_employer: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    esi_employee: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    esi_employer: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    gratuity_employer: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    is_special_allowance: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )

    salary_config: Mapped[EmployeeSalaryConfigModel] = relationship(
        back_populates="lines",
    )

    __table_args__ = (
        Index("idx_salary_line_employee", "company_id", "employee_id"),
    )

    def to_dto(self):
        from payroll_modules.salary.models import EmployeeSalaryLine
        return EmployeeSalaryLine(
            id=self.id,
            employee_id=self.employee_id,
            salary_head_id=self.salary_head_id,
            head_name=self.head_name,
            head_type=self.head_type,
            base_amount=self.base_amount,
            monthly_amount=self.net_amount,
            annual_amount=self.annual_amount,
            pf_employee=self.pf_employee,
            pf_employer=self.pf_employer,
            esi_employee=self.esi_employee,
            esi_employer=self.esi_employer,
            gratuity_employer=self.gratuity_employer,
            formula=self.formula,
            is_special_allowance=self.is_special_allowance,
        )

    def __repr__(self) -> str:
        return f"<EmployeeSalaryHeadModel {self.head_name}: {self.base_amount}>"
