"""End-of-day report ORM model."""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.database import Base


class EODReport(Base):
    __tablename__ = "eod_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    employee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id", ondelete="SET NULL"),
    )
    employee_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    position: Mapped[Optional[str]] = mapped_column(sa.String(150))
    department: Mapped[Optional[str]] = mapped_column(sa.String(150))
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    # [{"activity", "start_time", "end_time", "description", "status"}]
    activities: Mapped[list] = mapped_column(JSONB, default=list)
    # [{"name", "from", "to", "status"}]
    breaks: Mapped[list] = mapped_column(JSONB, default=list)
    plans: Mapped[Optional[str]] = mapped_column(sa.Text)
    issues: Mapped[Optional[str]] = mapped_column(sa.Text)
    comments: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    employee: Mapped[Optional["Employee"]] = relationship()

    __table_args__ = (
        sa.Index("ix_eod_reports_employee_name", "employee_name"),
        sa.Index("ix_eod_reports_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<EODReport {self.employee_name!r} {self.date}>"
