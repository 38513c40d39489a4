"""Notice board ORM model."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import NoticePriority, NoticeStatus
from hrms.database import Base


class Notice(Base):
    __tablename__ = "notices"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    content: Mapped[str] = mapped_column(sa.Text, nullable=False)
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    status: Mapped[NoticeStatus] = mapped_column(
        sa.Enum(NoticeStatus, name="notice_status"), default=NoticeStatus.draft,
    )
    category: Mapped[str] = mapped_column(sa.String(60), default="general")
    priority: Mapped[NoticePriority] = mapped_column(
        sa.Enum(NoticePriority, name="notice_priority"), default=NoticePriority.normal,
    )
    is_pinned: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    expiry_date: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
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
    author: Mapped[Optional["User"]] = relationship()

    def __repr__(self) -> str:
        return f"<Notice {self.title!r} {self.status}>"
