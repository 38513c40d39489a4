"""Country / State ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.database import Base


class Country(Base):
    __tablename__ = "countries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    code2: Mapped[str] = mapped_column(sa.String(2), unique=True, nullable=False)
    code3: Mapped[str] = mapped_column(sa.String(3), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    capital: Mapped[Optional[str]] = mapped_column(sa.String(150))
    region: Mapped[Optional[str]] = mapped_column(sa.String(100))
    subregion: Mapped[Optional[str]] = mapped_column(sa.String(100))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    states: Mapped[list["State"]] = relationship(
        back_populates="country",
        cascade="all, delete-orphan",
        order_by="State.name",
    )

    def __repr__(self) -> str:
        return f"<Country {self.code2} {self.name!r}>"


class State(Base):
    __tablename__ = "states"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    country_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("countries.id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    subdivision: Mapped[Optional[str]] = mapped_column(sa.String(100))

    # Relationships
    country: Mapped["Country"] = relationship(back_populates="states")

    __table_args__ = (
        sa.UniqueConstraint("country_id", "code", name="uq_states_country_code"),
    )

    def __repr__(self) -> str:
        return f"<State {self.code} {self.name!r}>"
