"""Payroll ORM models: SalaryDeductionRule, Payroll.

SQLAlchemy 2.0 async-compatible models. Line items (allowances and
deductions) are stored as JSONB lists of ``{code, name, amount, ...}``
with amounts as floats.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import CalculationMode, PaymentMethod, PaymentStatus
from hrms.database import Base


class SalaryDeductionRule(Base):
    """A deduction applied to every generated payroll while active."""

    __tablename__ = "salary_deduction_rules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    code: Mapped[str] = mapped_column(sa.String(60), unique=True, nullable=False)
    is_applicable: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    calculation_mode: Mapped[CalculationMode] = mapped_column(
        sa.Enum(CalculationMode, name="calculation_mode"),
        default=CalculationMode.fixed,
    )
    # Fixed amount, or the percentage for the percent_* modes
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)
    # [{"min": n, "max": n | null, "percent": n} | {"min", "max", "amount"}]
    tax_slab: Mapped[list] = mapped_column(JSONB, default=list)
    active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<SalaryDeductionRule {self.code!r} {self.calculation_mode}>"


class Payroll(Base):
    """One employee's pay for one month."""

    __tablename__ = "payrolls"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    year: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)

    # Earnings
    gross_salary: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)
    basic_salary: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)
    hra: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)
    allowances: Mapped[list] = mapped_column(JSONB, default=list)
    bonus: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)
    overtime_pay: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)

    # Deductions
    deductions: Mapped[list] = mapped_column(JSONB, default=list)

    # Attendance basis for loss of pay
    working_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), default=0)
    present_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), default=0)
    paid_leave_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), default=0)
    lop_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), default=0)
    lop_amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)

    # Totals
    total_earnings: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)
    total_deductions: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)
    net_salary: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=0)

    # Payment
    payment_status: Mapped[PaymentStatus] = mapped_column(
        sa.Enum(PaymentStatus, name="payment_status"), default=PaymentStatus.pending,
    )
    payment_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        sa.Enum(PaymentMethod, name="payment_method"),
        default=PaymentMethod.bank_transfer,
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(sa.String(120))
    payslip_url: Mapped[Optional[str]] = mapped_column(sa.String(500))
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    generated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    employee: Mapped["Employee"] = relationship()

    __table_args__ = (
        sa.UniqueConstraint("employee_id", "month", "year", name="uq_payroll_employee_period"),
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_payroll_month"),
        sa.Index("ix_payrolls_period", "year", "month"),
    )

    def __repr__(self) -> str:
        return (
            f"<Payroll employee_id={self.employee_id} {self.year}-{self.month:02d}"
            f" net={self.net_salary}>"
        )
