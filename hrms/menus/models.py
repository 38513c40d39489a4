"""Menu ORM model — navigation entries that may sit under several parents."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import DEFAULT_MENU_ICON, MenuStatus
from hrms.database import Base

menu_parents = sa.Table(
    "menu_parents",
    Base.metadata,
    sa.Column(
        "menu_id",
        UUID(as_uuid=True),
        sa.ForeignKey("menus.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    sa.Column(
        "parent_id",
        UUID(as_uuid=True),
        sa.ForeignKey("menus.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Menu(Base):
    __tablename__ = "menus"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    slug: Mapped[str] = mapped_column(sa.String(120), unique=True, nullable=False)
    icon: Mapped[str] = mapped_column(sa.String(60), default=DEFAULT_MENU_ICON)
    status: Mapped[MenuStatus] = mapped_column(
        sa.Enum(MenuStatus, name="menu_status"), default=MenuStatus.active,
    )
    level: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    order: Mapped[int] = mapped_column("sort_order", sa.Integer, default=0)
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
    parents: Mapped[list["Menu"]] = relationship(
        secondary=menu_parents,
        primaryjoin=lambda: Menu.id == menu_parents.c.menu_id,
        secondaryjoin=lambda: Menu.id == menu_parents.c.parent_id,
        back_populates="children",
    )
    children: Mapped[list["Menu"]] = relationship(
        secondary=menu_parents,
        primaryjoin=lambda: Menu.id == menu_parents.c.parent_id,
        secondaryjoin=lambda: Menu.id == menu_parents.c.menu_id,
        back_populates="parents",
    )

    @property
    def parent_ids(self) -> list[uuid.UUID]:
        return [p.id for p in self.parents]

    def __repr__(self) -> str:
        return f"<Menu {self.slug!r} level={self.level}>"
