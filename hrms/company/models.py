"""Company ORM model — the single organisation row and its settings."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from hrms.database import Base


def _default_recipients() -> dict:
    return {"to": [], "cc": [], "bcc": []}


def _default_leave_allocations() -> dict:
    return {"casual": 0, "medical": 0, "paid": 0}


class Company(Base):
    """JSONB settings columns are replaced wholesale on every update."""

    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    domain: Mapped[str] = mapped_column(sa.String(200), unique=True, nullable=False)
    logo: Mapped[Optional[str]] = mapped_column(sa.String(500))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    industry: Mapped[Optional[str]] = mapped_column(sa.String(100))
    website: Mapped[Optional[str]] = mapped_column(sa.String(255))

    # {"street", "city", "state", "country", "zip_code"}
    address: Mapped[dict] = mapped_column(JSONB, default=dict)
    # {"email", "phone", "fax"}
    contact_info: Mapped[dict] = mapped_column(JSONB, default=dict)

    ceo_name: Mapped[Optional[str]] = mapped_column(sa.String(150))
    ceo_talk: Mapped[Optional[str]] = mapped_column(sa.Text)

    # {"name", "email"} used as From: on outgoing mail
    email_sender: Mapped[dict] = mapped_column(JSONB, default=dict)
    email_recipients: Mapped[dict] = mapped_column(JSONB, default=_default_recipients)

    grace_period: Mapped[int] = mapped_column(sa.Integer, default=15)
    leave_allocations: Mapped[dict] = mapped_column(JSONB, default=_default_leave_allocations)
    # [{"name", "code", "percent", "is_active"}]
    payroll_components: Mapped[list] = mapped_column(JSONB, default=list)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Company {self.name!r} domain={self.domain!r}>"
