"""Role ORM model — a parent/child tree with materialised path."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.database import Base

role_menus = sa.Table(
    "role_menus",
    Base.metadata,
    sa.Column(
        "role_id",
        UUID(as_uuid=True),
        sa.ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    sa.Column(
        "menu_id",
        UUID(as_uuid=True),
        sa.ForeignKey("menus.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Role(Base):
    """A role in the organisation hierarchy.

    ``level`` is the depth from the root (0) and ``path`` lists the ids of
    every ancestor plus the role itself, e.g. ``/<root>/<child>``.
    """

    __tablename__ = "roles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(100), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("roles.id", ondelete="RESTRICT"),
    )
    level: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    path: Mapped[str] = mapped_column(sa.String(1000), default="", nullable=False)
    permissions: Mapped[list] = mapped_column(JSONB, default=list)
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
    parent: Mapped[Optional["Role"]] = relationship(
        remote_side=[id], back_populates="children",
    )
    children: Mapped[list["Role"]] = relationship(back_populates="parent")
    menus: Mapped[list["Menu"]] = relationship(secondary=role_menus)
    users: Mapped[list["User"]] = relationship(back_populates="role")

    __table_args__ = (
        sa.Index("ix_roles_parent_id", "parent_id"),
        sa.Index("ix_roles_path", "path"),
    )

    def __repr__(self) -> str:
        return f"<Role {self.name!r} level={self.level}>"
