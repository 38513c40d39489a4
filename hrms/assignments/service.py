"""Supervisor assignment service.

Rules:
  - a subordinate must be active and sit strictly deeper in the role tree
    than the supervisor
  - a subordinate has at most one active assignment
  - every change appends an :class:`AssignmentHistory` row
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.assignments.models import AssignmentHistory, EmployeeAssignment
from hrms.auth.models import User
from hrms.common.constants import AssignmentAction, AssignmentStatus, UserStatus
from hrms.common.exceptions import NotFoundException, ValidationException
from hrms.common.filters import apply_filters
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate

logger = logging.getLogger(__name__)


def _assignment_options() -> tuple:
    return (
        selectinload(EmployeeAssignment.supervisor).selectinload(User.role),
        selectinload(EmployeeAssignment.subordinate).selectinload(User.role),
    )


class AssignmentService:

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _load_users(db: AsyncSession, ids: list[uuid.UUID]) -> dict[uuid.UUID, User]:
        result = await db.execute(
            select(User).where(User.id.in_(ids)).options(selectinload(User.role)),
        )
        return {u.id: u for u in result.scalars().all()}

    @staticmethod
    async def _supervisor(db: AsyncSession, supervisor_id: uuid.UUID) -> User:
        users = await AssignmentService._load_users(db, [supervisor_id])
        supervisor = users.get(supervisor_id)
        if supervisor is None:
            raise NotFoundException("User", str(supervisor_id))
        if not supervisor.is_active:
            raise ValidationException({"supervisor_id": ["Supervisor is not active."]})
        if supervisor.role is None:
            raise ValidationException({"supervisor_id": ["Supervisor has no role assigned."]})
        return supervisor

    @staticmethod
    async def _active_assignments(
        db: AsyncSession,
        subordinate_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, EmployeeAssignment]:
        result = await db.execute(
            select(EmployeeAssignment).where(
                EmployeeAssignment.subordinate_id.in_(subordinate_ids),
                EmployeeAssignment.status == AssignmentStatus.active,
            ),
        )
        return {a.subordinate_id: a for a in result.scalars().all()}

    @staticmethod
    def _check_subordinate(supervisor: User, sub: Optional[User], sub_id: uuid.UUID) -> Optional[str]:
        """Return an error message, or None when *sub* may report to *supervisor*."""
        if sub is None:
            return f"User {sub_id} not found."
        if sub.id == supervisor.id:
            return "A user cannot supervise themself."
        if sub.status != UserStatus.active:
            return f"{sub.full_name} is not active."
        if sub.role is None:
            return f"{sub.full_name} has no role assigned."
        if sub.role.level <= supervisor.role.level:
            return (
                f"{sub.full_name} (level {sub.role.level}) is not below "
                f"supervisor level {supervisor.role.level}."
            )
        return None

    @staticmethod
    def _record(
        db: AsyncSession,
        assignment: EmployeeAssignment,
        action: AssignmentAction,
        *,
        performed_by: Optional[uuid.UUID],
        previous_data: Optional[dict] = None,
        new_data: Optional[dict] = None,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AssignmentHistory:
        entry = AssignmentHistory(
            assignment_id=assignment.id,
            supervisor_id=assignment.supervisor_id,
            subordinate_id=assignment.subordinate_id,
            action=action,
            performed_by=performed_by,
            previous_data=previous_data,
            new_data=new_data,
            reason=reason,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(entry)
        return entry

    # ── Assign ──────────────────────────────────────────────────────

    @staticmethod
    async def assign(
        db: AsyncSession,
        supervisor_id: uuid.UUID,
        subordinate_ids: list[uuid.UUID],
        *,
        actor_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> list[EmployeeAssignment]:
        supervisor = await AssignmentService._supervisor(db, supervisor_id)
        ids = list(dict.fromkeys(subordinate_ids))
        subs = await AssignmentService._load_users(db, ids)
        existing = await AssignmentService._active_assignments(db, ids)

        errors: list[str] = []
        for sub_id in ids:
            problem = AssignmentService._check_subordinate(supervisor, subs.get(sub_id), sub_id)
            if problem is None and sub_id in existing:
                problem = f"{subs[sub_id].full_name} already has an active supervisor."
            if problem:
                errors.append(problem)
        if errors:
            raise ValidationException({"subordinate_ids": errors})

        now = datetime.now(timezone.utc)
        created: list[EmployeeAssignment] = []
        for sub_id in ids:
            assignment = EmployeeAssignment(
                id=uuid.uuid4(),
                supervisor_id=supervisor.id,
                subordinate_id=sub_id,
                status=AssignmentStatus.active,
                assigned_by=actor_id,
                notes=notes,
                assigned_at=now,
            )
            db.add(assignment)
            AssignmentService._record(
                db,
                assignment,
                AssignmentAction.created,
                performed_by=actor_id,
                new_data={"supervisor_id": str(supervisor.id), "status": "active"},
                reason=reason,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            created.append(assignment)
        await db.flush()

        logger.info("Assigned %d subordinate(s) to %s", len(created), supervisor.email)
        return await AssignmentService._reload([a.id for a in created], db)

    # ── Unassign ────────────────────────────────────────────────────

    @staticmethod
    async def unassign(
        db: AsyncSession,
        subordinate_ids: list[uuid.UUID],
        *,
        supervisor_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> int:
        ids = list(dict.fromkeys(subordinate_ids))
        existing = await AssignmentService._active_assignments(db, ids)

        missing = [
            str(sid) for sid in ids
            if sid not in existing
            or (supervisor_id is not None and existing[sid].supervisor_id != supervisor_id)
        ]
        if missing:
            raise ValidationException(
                {"subordinate_ids": [f"No active assignment for: {', '.join(missing)}"]},
            )

        now = datetime.now(timezone.utc)
        for assignment in existing.values():
            assignment.status = AssignmentStatus.ended
            assignment.ended_at = now
            AssignmentService._record(
                db,
                assignment,
                AssignmentAction.ended,
                performed_by=actor_id,
                previous_data={"supervisor_id": str(assignment.supervisor_id), "status": "active"},
                new_data={"status": "ended"},
                reason=reason,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        await db.flush()
        return len(existing)

    # ── Transfer ────────────────────────────────────────────────────

    @staticmethod
    async def transfer(
        db: AsyncSession,
        subordinate_ids: list[uuid.UUID],
        to_supervisor_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> list[EmployeeAssignment]:
        target = await AssignmentService._supervisor(db, to_supervisor_id)
        ids = list(dict.fromkeys(subordinate_ids))
        subs = await AssignmentService._load_users(db, ids)
        existing = await AssignmentService._active_assignments(db, ids)

        errors: list[str] = []
        for sub_id in ids:
            problem = AssignmentService._check_subordinate(target, subs.get(sub_id), sub_id)
            if problem is None:
                current = existing.get(sub_id)
                if current is None:
                    problem = f"{subs[sub_id].full_name} has no active assignment to transfer."
                elif current.supervisor_id == target.id:
                    problem = f"{subs[sub_id].full_name} already reports to this supervisor."
            if problem:
                errors.append(problem)
        if errors:
            raise ValidationException({"subordinate_ids": errors})

        now = datetime.now(timezone.utc)
        moved: list[EmployeeAssignment] = []
        for sub_id in ids:
            old = existing[sub_id]
            old.status = AssignmentStatus.transferred
            old.ended_at = now

            new = EmployeeAssignment(
                id=uuid.uuid4(),
                supervisor_id=target.id,
                subordinate_id=sub_id,
                status=AssignmentStatus.active,
                assigned_by=actor_id,
                notes=old.notes,
                assigned_at=now,
            )
            db.add(new)
            AssignmentService._record(
                db,
                new,
                AssignmentAction.transferred,
                performed_by=actor_id,
                previous_data={
                    "assignment_id": str(old.id),
                    "supervisor_id": str(old.supervisor_id),
                },
                new_data={"supervisor_id": str(target.id)},
                reason=reason,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            moved.append(new)
        await db.flush()

        logger.info("Transferred %d subordinate(s) to %s", len(moved), target.email)
        return await AssignmentService._reload([a.id for a in moved], db)

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def _reload(ids: list[uuid.UUID], db: AsyncSession) -> list[EmployeeAssignment]:
        result = await db.execute(
            select(EmployeeAssignment)
            .where(EmployeeAssignment.id.in_(ids))
            .options(*_assignment_options()),
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_assigned(db: AsyncSession, supervisor_id: uuid.UUID) -> list[EmployeeAssignment]:
        """Active assignments under *supervisor_id*."""
        result = await db.execute(
            select(EmployeeAssignment)
            .where(
                EmployeeAssignment.supervisor_id == supervisor_id,
                EmployeeAssignment.status == AssignmentStatus.active,
            )
            .options(*_assignment_options())
            .order_by(EmployeeAssignment.assigned_at),
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_available(db: AsyncSession, supervisor_id: uuid.UUID) -> list[User]:
        """Active users below the supervisor's level with no active supervisor."""
        supervisor = await AssignmentService._supervisor(db, supervisor_id)
        assigned = select(EmployeeAssignment.subordinate_id).where(
            EmployeeAssignment.status == AssignmentStatus.active,
        )
        result = await db.execute(
            select(User)
            .options(selectinload(User.role))
            .where(
                User.status == UserStatus.active,
                User.id != supervisor.id,
                User.id.not_in(assigned),
            )
            .order_by(User.first_name, User.last_name),
        )
        return [
            u for u in result.scalars().all()
            if u.role is not None and u.role.level > supervisor.role.level
        ]

    @staticmethod
    async def history(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        supervisor_id: Optional[uuid.UUID] = None,
        subordinate_id: Optional[uuid.UUID] = None,
        action: Optional[AssignmentAction] = None,
    ) -> PaginatedResponse:
        query = select(AssignmentHistory).order_by(AssignmentHistory.created_at.desc())
        query = apply_filters(
            query,
            AssignmentHistory,
            {"supervisor_id": supervisor_id, "subordinate_id": subordinate_id, "action": action},
        )
        return await paginate(db, query, pagination, model=AssignmentHistory)
