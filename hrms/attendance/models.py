"""Attendance ORM model — one row per employee per day."""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import AttendanceStatus
from hrms.database import Base


class Attendance(Base):
    __tablename__ = "attendance"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    clock_in: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    clock_out: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    total_hours: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), default=0)
    status: Mapped[AttendanceStatus] = mapped_column(
        sa.Enum(AttendanceStatus, name="attendance_status"),
        default=AttendanceStatus.present,
    )
    location: Mapped[Optional[str]] = mapped_column(sa.String(255))
    # [{"start": iso, "end": iso | null, "duration_seconds": int}]
    breaks: Mapped[list] = mapped_column(JSONB, default=list)
    total_break_seconds: Mapped[int] = mapped_column(sa.Integer, default=0)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
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
        sa.UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
        sa.Index("ix_attendance_date", "date"),
    )

    @property
    def on_break(self) -> bool:
        return bool(self.breaks) and self.breaks[-1].get("end") is None

    def __repr__(self) -> str:
        return f"<Attendance employee_id={self.employee_id} date={self.date} {self.status}>"
