"""Weekly roster ORM model."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import RosterStatus
from hrms.database import Base


class Roster(Base):
    """One employee's shifts for one ISO week.

    ``schedule`` maps each weekday name to ``{"start_time", "end_time"}``;
    a day off stores ``"OFF"`` in both fields.
    """

    __tablename__ = "rosters"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    week_start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    week_end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    week_number: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    year: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    schedule: Mapped[dict] = mapped_column(JSONB, default=dict)
    total_hours: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), default=0)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[RosterStatus] = mapped_column(
        sa.Enum(RosterStatus, name="roster_status"), default=RosterStatus.draft,
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
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
        sa.UniqueConstraint(
            "employee_id", "year", "week_number", name="uq_roster_employee_week",
        ),
        sa.Index("ix_rosters_week", "year", "week_number"),
    )

    def __repr__(self) -> str:
        return f"<Roster employee_id={self.employee_id} {self.year}-W{self.week_number:02d}>"
