"""Core HR ORM models: Department, Designation, Employee."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import PaymentFrequency
from hrms.database import Base


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    users: Mapped[list["User"]] = relationship(back_populates="department")
    designations: Mapped[list["Designation"]] = relationship(back_populates="department")

    def __repr__(self) -> str:
        return f"<Department {self.name!r}>"


class Designation(Base):
    __tablename__ = "designations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(sa.String(150), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id", ondelete="SET NULL"),
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    department: Mapped[Optional["Department"]] = relationship(back_populates="designations")

    def __repr__(self) -> str:
        return f"<Designation {self.title!r}>"


class Employee(Base):
    """HR profile of a :class:`User`: code, dates, salary and documents."""

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    employee_code: Mapped[str] = mapped_column(sa.String(50), unique=True, nullable=False)
    designation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("designations.id", ondelete="SET NULL"),
    )
    joining_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    date_of_birth: Mapped[Optional[date]] = mapped_column(sa.Date)
    emergency_contact: Mapped[Optional[dict]] = mapped_column(JSONB)
    bank_details: Mapped[Optional[dict]] = mapped_column(JSONB)
    tax_information: Mapped[Optional[dict]] = mapped_column(JSONB)
    documents: Mapped[list] = mapped_column(JSONB, default=list)

    # Monthly gross salary; drives payroll generation
    salary_amount: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    salary_currency: Mapped[str] = mapped_column(sa.String(3), default="USD")
    payment_frequency: Mapped[PaymentFrequency] = mapped_column(
        sa.Enum(PaymentFrequency, name="payment_frequency"),
        default=PaymentFrequency.monthly,
    )

    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="employee")
    designation: Mapped[Optional["Designation"]] = relationship()

    __table_args__ = (
        sa.Index("ix_employees_joining_date", "joining_date"),
    )

    @property
    def full_name(self) -> str:
        return self.user.full_name if self.user else self.employee_code

    def __repr__(self) -> str:
        return f"<Employee {self.employee_code!r}>"
