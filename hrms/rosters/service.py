"""Roster service layer: weekly shift plans per employee.

Weeks are ISO weeks (Monday to Sunday). A shift whose end is not after its
start runs past midnight, so "10pm"–"6am" counts as 8 hours.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.common.audit import create_audit_entry
from hrms.common.constants import DAYS_OF_WEEK, RosterStatus
from hrms.common.exceptions import DuplicateException, NotFoundException, ValidationException
from hrms.core_hr.models import Employee
from hrms.rosters.models import Roster
from hrms.rosters.schemas import (
    OFF,
    RosterBulkCreate,
    RosterCopyRequest,
    RosterCreate,
    RosterUpdate,
    WeekSchedule,
    time_to_minutes,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


# ── Pure helpers ────────────────────────────────────────────────────

def week_dates(year: int, week_number: int) -> tuple[date, date]:
    """Monday and Sunday of an ISO week."""
    try:
        start = date.fromisocalendar(year, week_number, 1)
    except ValueError:
        raise ValidationException(
            {"week_number": [f"{year} has no ISO week {week_number}."]},
        )
    return start, start + timedelta(days=6)


def shift_minutes(start_time: str, end_time: str) -> int:
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    if start is None or end is None:
        return 0
    if end <= start:
        end += MINUTES_PER_DAY
    return end - start


def total_hours(schedule: Mapping[str, Mapping[str, str]]) -> Decimal:
    minutes = sum(
        shift_minutes(day.get("start_time", OFF), day.get("end_time", OFF))
        for day in (schedule.get(name, {}) for name in DAYS_OF_WEEK)
    )
    return (Decimal(minutes) / 60).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def working_days(schedule: Mapping[str, Mapping[str, str]]) -> int:
    return sum(
        1 for name in DAYS_OF_WEEK
        if schedule.get(name, {}).get("start_time", OFF) != OFF
        and schedule.get(name, {}).get("end_time", OFF) != OFF
    )


def _roster_options() -> tuple:
    return (selectinload(Roster.employee).selectinload(Employee.user),)


class RosterService:

    @staticmethod
    async def _existing(
        db: AsyncSession,
        employee_ids: list[uuid.UUID],
        year: int,
        week_number: int,
    ) -> list[uuid.UUID]:
        result = await db.execute(
            select(Roster.employee_id).where(
                Roster.employee_id.in_(employee_ids),
                Roster.year == year,
                Roster.week_number == week_number,
            ),
        )
        return list(result.scalars().all())

    @staticmethod
    def _build(
        employee_id: uuid.UUID,
        year: int,
        week_number: int,
        schedule: dict[str, Any],
        *,
        notes: Optional[str],
        status: RosterStatus,
        created_by: Optional[uuid.UUID],
    ) -> Roster:
        start, end = week_dates(year, week_number)
        return Roster(
            employee_id=employee_id,
            year=year,
            week_number=week_number,
            week_start_date=start,
            week_end_date=end,
            schedule=schedule,
            total_hours=total_hours(schedule),
            notes=notes,
            status=status,
            created_by=created_by,
        )

    @staticmethod
    async def _reload(db: AsyncSession, ids: list[uuid.UUID]) -> list[Roster]:
        result = await db.execute(
            select(Roster)
            .where(Roster.id.in_(ids))
            .options(*_roster_options())
            .execution_options(populate_existing=True),
        )
        return sorted(result.scalars().all(), key=lambda r: r.employee.employee_code)

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def get_roster(db: AsyncSession, roster_id: uuid.UUID) -> Roster:
        rows = await RosterService._reload(db, [roster_id])
        if not rows:
            raise NotFoundException("Roster", str(roster_id))
        return rows[0]

    @staticmethod
    async def week_roster(db: AsyncSession, year: int, week_number: int) -> list[Roster]:
        week_dates(year, week_number)
        result = await db.execute(
            select(Roster)
            .where(Roster.year == year, Roster.week_number == week_number)
            .options(*_roster_options()),
        )
        return sorted(result.scalars().all(), key=lambda r: r.employee.employee_code)

    @staticmethod
    async def employee_roster(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Roster]:
        """Weeks of the employee overlapping [start_date, end_date]."""
        if start_date and end_date and end_date < start_date:
            raise ValidationException({"end_date": ["end_date must be on or after start_date."]})
        query = (
            select(Roster)
            .where(Roster.employee_id == employee_id)
            .options(*_roster_options())
            .order_by(Roster.week_start_date)
        )
        if start_date:
            query = query.where(Roster.week_end_date >= start_date)
        if end_date:
            query = query.where(Roster.week_start_date <= end_date)
        return list((await db.execute(query)).scalars().all())

    @staticmethod
    async def stats(db: AsyncSession, year: int, week_number: int) -> dict[str, Any]:
        rosters = await RosterService.week_roster(db, year, week_number)
        by_status = {s.value: 0 for s in RosterStatus}
        for r in rosters:
            by_status[r.status.value] += 1
        hours = sum((Decimal(r.total_hours) for r in rosters), Decimal("0"))
        start, end = week_dates(year, week_number)
        return {
            "year": year,
            "week_number": week_number,
            "week_start_date": start,
            "week_end_date": end,
            "total_employees": len(rosters),
            "total_working_days": sum(working_days(r.schedule or {}) for r in rosters),
            "total_hours": hours,
            "average_hours": (hours / len(rosters)).quantize(Decimal("0.01")) if rosters else Decimal("0"),
            "by_status": by_status,
        }

    # ── Writes ──────────────────────────────────────────────────────

    @staticmethod
    async def add_roster(
        db: AsyncSession,
        data: RosterCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Roster:
        if await db.get(Employee, data.employee_id) is None:
            raise NotFoundException("Employee", str(data.employee_id))
        if await RosterService._existing(db, [data.employee_id], data.year, data.week_number):
            raise DuplicateException("week", f"{data.year}-W{data.week_number:02d}")

        roster = RosterService._build(
            data.employee_id,
            data.year,
            data.week_number,
            data.schedule.as_dict(),
            notes=data.notes,
            status=data.status,
            created_by=actor_id,
        )
        db.add(roster)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="roster",
            entity_id=roster.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await RosterService.get_roster(db, roster.id)

    @staticmethod
    async def bulk_add(
        db: AsyncSession,
        data: RosterBulkCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[Roster]:
        employee_ids = list(dict.fromkeys(data.employee_ids))
        result = await db.execute(select(Employee.id).where(Employee.id.in_(employee_ids)))
        found = set(result.scalars().all())
        missing = [str(e) for e in employee_ids if e not in found]
        if missing:
            raise ValidationException({"employee_ids": [f"Employee {e} not found." for e in missing]})

        clashes = await RosterService._existing(db, employee_ids, data.year, data.week_number)
        if clashes:
            raise ValidationException(
                {"employee_ids": [f"Roster already exists for employee {e}." for e in clashes]},
                message="Roster already exists for some employees in this week.",
            )

        rosters = []
        for employee_id in employee_ids:
            schedule: WeekSchedule = data.individual_schedules.get(employee_id, data.default_schedule)
            roster = RosterService._build(
                employee_id,
                data.year,
                data.week_number,
                schedule.as_dict(),
                notes=data.notes,
                status=data.status,
                created_by=actor_id,
            )
            db.add(roster)
            rosters.append(roster)
        await db.flush()

        logger.info(
            "Bulk roster: %d employees for %d-W%02d", len(rosters), data.year, data.week_number,
        )
        return await RosterService._reload(db, [r.id for r in rosters])

    @staticmethod
    async def copy_week(
        db: AsyncSession,
        data: RosterCopyRequest,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[Roster]:
        """Copy a week's rosters (optionally for some employees) into another week as drafts."""
        if (data.from_year, data.from_week) == (data.to_year, data.to_week):
            raise ValidationException({"to_week": ["Source and target week are the same."]})
        week_dates(data.to_year, data.to_week)

        query = select(Roster).where(
            Roster.year == data.from_year, Roster.week_number == data.from_week,
        )
        if data.employee_ids:
            query = query.where(Roster.employee_id.in_(data.employee_ids))
        sources = (await db.execute(query)).scalars().all()
        if not sources:
            raise NotFoundException("Roster", f"{data.from_year}-W{data.from_week:02d}")

        clashes = await RosterService._existing(
            db, [s.employee_id for s in sources], data.to_year, data.to_week,
        )
        if clashes:
            raise ValidationException(
                {"employee_ids": [f"Roster already exists for employee {e}." for e in clashes]},
                message="Rosters already exist for some employees in the target week.",
            )

        copies = []
        for source in sources:
            roster = RosterService._build(
                source.employee_id,
                data.to_year,
                data.to_week,
                {day: dict(shift) for day, shift in (source.schedule or {}).items()},
                notes=source.notes,
                status=RosterStatus.draft,
                created_by=actor_id,
            )
            db.add(roster)
            copies.append(roster)
        await db.flush()

        logger.info(
            "Copied %d rosters %d-W%02d -> %d-W%02d",
            len(copies), data.from_year, data.from_week, data.to_year, data.to_week,
        )
        return await RosterService._reload(db, [r.id for r in copies])

    @staticmethod
    async def update_roster(
        db: AsyncSession,
        roster_id: uuid.UUID,
        data: RosterUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Roster:
        roster = await RosterService.get_roster(db, roster_id)
        old = jsonable_encoder({
            "schedule": roster.schedule, "notes": roster.notes, "status": roster.status,
        })
        if data.schedule is not None:
            roster.schedule = data.schedule.as_dict()
            roster.total_hours = total_hours(roster.schedule)
        if "notes" in data.model_fields_set:
            roster.notes = data.notes
        if data.status is not None:
            roster.status = data.status
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="roster",
            entity_id=roster.id,
            actor_id=actor_id,
            old_values=old,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return await RosterService.get_roster(db, roster.id)

    @staticmethod
    async def delete_roster(
        db: AsyncSession,
        roster_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        roster = await RosterService.get_roster(db, roster_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="roster",
            entity_id=roster.id,
            actor_id=actor_id,
            old_values={
                "employee_id": str(roster.employee_id),
                "year": roster.year,
                "week_number": roster.week_number,
            },
        )
        await db.delete(roster)
        await db.flush()
