"""Holiday ORM model."""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from hrms.common.constants import HolidayType
from hrms.database import Base


class Holiday(Base):
    __tablename__ = "holidays"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    type: Mapped[HolidayType] = mapped_column(
        sa.Enum(HolidayType, name="holiday_type"), default=HolidayType.company,
    )
    # Recurring holidays repeat on the same month/day every year
    is_recurring: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    year: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    # ["all"] or lower-cased department names
    applies_to: Mapped[list] = mapped_column(JSONB, default=lambda: ["all"])
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

    __table_args__ = (
        sa.UniqueConstraint("date", "name", name="uq_holiday_date_name"),
        sa.Index("ix_holidays_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Holiday {self.name!r} {self.date}>"
