"""Supervisor assignment ORM models: EmployeeAssignment, AssignmentHistory."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import INET, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import AssignmentAction, AssignmentStatus
from hrms.database import Base


class EmployeeAssignment(Base):
    """Links a subordinate user to the supervisor they report to."""

    __tablename__ = "employee_assignments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    supervisor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    subordinate_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    status: Mapped[AssignmentStatus] = mapped_column(
        sa.Enum(AssignmentStatus, name="assignment_status"),
        default=AssignmentStatus.active,
    )
    assigned_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    assigned_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    ended_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    # Relationships
    supervisor: Mapped["User"] = relationship(foreign_keys=[supervisor_id])
    subordinate: Mapped["User"] = relationship(foreign_keys=[subordinate_id])

    __table_args__ = (
        sa.Index("ix_assignments_supervisor_status", "supervisor_id", "status"),
        sa.Index("ix_assignments_subordinate_status", "subordinate_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<EmployeeAssignment {self.supervisor_id} -> {self.subordinate_id}"
            f" {self.status}>"
        )


class AssignmentHistory(Base):
    """Append-only record of every assignment change."""

    __tablename__ = "assignment_history"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    assignment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employee_assignments.id", ondelete="SET NULL"),
    )
    supervisor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    subordinate_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    action: Mapped[AssignmentAction] = mapped_column(
        sa.Enum(AssignmentAction, name="assignment_action"), nullable=False,
    )
    performed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    previous_data: Mapped[Optional[dict]] = mapped_column(JSONB)
    new_data: Mapped[Optional[dict]] = mapped_column(JSONB)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    ip_address: Mapped[Optional[str]] = mapped_column(INET)
    user_agent: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        sa.Index("ix_assignment_history_supervisor", "supervisor_id"),
        sa.Index("ix_assignment_history_subordinate", "subordinate_id"),
    )

    def __repr__(self) -> str:
        return f"<AssignmentHistory {self.action} {self.subordinate_id}>"
