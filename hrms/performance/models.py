"""Performance review ORM model."""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.database import Base


class PerformanceReview(Base):
    __tablename__ = "performance_reviews"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    reviewer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id", ondelete="SET NULL"),
    )
    period_start: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    period_end: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    # [{"title", "description", "target", "achieved", "status"}]
    goals: Mapped[list] = mapped_column(JSONB, default=list)
    # {"communication": 1..5, "teamwork": ..., "overall": ...}
    ratings: Mapped[dict] = mapped_column(JSONB, default=dict)
    reviewer_feedback: Mapped[Optional[str]] = mapped_column(sa.Text)
    employee_feedback: Mapped[Optional[str]] = mapped_column(sa.Text)
    promotion_recommended: Mapped[bool] = mapped_column(sa.Boolean, default=False)
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
    employee: Mapped["Employee"] = relationship(foreign_keys=[employee_id])
    reviewer: Mapped[Optional["Employee"]] = relationship(foreign_keys=[reviewer_id])

    __table_args__ = (
        sa.CheckConstraint("period_end >= period_start", name="ck_performance_period_order"),
        sa.Index("ix_performance_reviews_employee", "employee_id", "period_end"),
    )

    def __repr__(self) -> str:
        return (
            f"<PerformanceReview employee_id={self.employee_id}"
            f" {self.period_start}..{self.period_end}>"
        )
