"""Attendance service layer — clock in/out, breaks, late detection, admin CRUD.

Business logic:
  - One attendance row per employee per local calendar day
  - Clock-in after shift start + company grace period marks the day ``late``
  - Worked hours = (clock-out − clock-in − breaks), rounded to 2 dp
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import Attendance
from hrms.attendance.schemas import AttendanceCreate, AttendanceUpdate
from hrms.common.audit import create_audit_entry
from hrms.common.constants import AttendanceStatus
from hrms.common.exceptions import DuplicateException, NotFoundException, ValidationException
from hrms.common.filters import apply_filters
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.company.models import Company
from hrms.config import settings
from hrms.core_hr.models import Employee

logger = logging.getLogger(__name__)

MAX_DATE_RANGE_DAYS = 366


def _ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as some drivers return them) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _zone(name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def shift_start_time() -> time:
    hours, minutes = settings.SHIFT_START.split(":")
    return time(int(hours), int(minutes))


def is_late(clock_in: datetime, grace_minutes: int, tz: ZoneInfo) -> bool:
    """True when *clock_in* falls after shift start + grace on its local day."""
    local = _ensure_utc(clock_in).astimezone(tz)
    start = datetime.combine(local.date(), shift_start_time(), tzinfo=tz)
    return local > start + timedelta(minutes=grace_minutes)


def worked_hours(clock_in: datetime, clock_out: datetime, break_seconds: int = 0) -> Decimal:
    seconds = (_ensure_utc(clock_out) - _ensure_utc(clock_in)).total_seconds() - break_seconds
    hours = Decimal(str(max(seconds, 0) / 3600))
    return hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class AttendanceService:

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _grace_period(db: AsyncSession) -> int:
        result = await db.execute(select(Company.grace_period).limit(1))
        grace = result.scalar()
        return grace if grace is not None else settings.DEFAULT_GRACE_PERIOD_MINUTES

    @staticmethod
    async def _today_record(
        db: AsyncSession,
        employee_id: uuid.UUID,
        today: date,
    ) -> Optional[Attendance]:
        result = await db.execute(
            select(Attendance).where(
                Attendance.employee_id == employee_id,
                Attendance.date == today,
            ),
        )
        return result.scalars().first()

    @staticmethod
    def _local_now(employee: Employee) -> tuple[datetime, date, ZoneInfo]:
        tz = _zone(employee.user.work_timezone if employee.user else None)
        now = datetime.now(timezone.utc)
        return now, now.astimezone(tz).date(), tz

    # ── Clock in / out ──────────────────────────────────────────────

    @staticmethod
    async def clock_in(
        db: AsyncSession,
        employee: Employee,
        *,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Attendance:
        """Open today's attendance, or reopen it after a clock-out."""
        now, today, tz = AttendanceService._local_now(employee)
        record = await AttendanceService._today_record(db, employee.id, today)

        if record is not None:
            if record.clock_out is None:
                raise ValidationException({"clock_in": ["Already clocked in today."]})
            record.clock_out = None
            if location:
                record.location = location
            action = "reopen"
        else:
            grace = await AttendanceService._grace_period(db)
            record = Attendance(
                employee_id=employee.id,
                date=today,
                clock_in=now,
                status=(
                    AttendanceStatus.late if is_late(now, grace, tz)
                    else AttendanceStatus.present
                ),
                location=location,
                notes=notes,
                breaks=[],
                total_break_seconds=0,
                total_hours=Decimal("0"),
            )
            db.add(record)
            action = "clock_in"

        await db.flush()
        await create_audit_entry(
            db,
            action=action,
            entity_type="attendance",
            entity_id=record.id,
            actor_id=employee.user_id,
            new_values={"timestamp": now.isoformat(), "status": record.status.value},
            ip_address=ip_address,
        )
        logger.info("Employee %s %s at %s", employee.employee_code, action, now.isoformat())
        return record

    @staticmethod
    async def clock_out(
        db: AsyncSession,
        employee: Employee,
        *,
        notes: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Attendance:
        now, today, _ = AttendanceService._local_now(employee)
        record = await AttendanceService._today_record(db, employee.id, today)
        if record is None or record.clock_in is None:
            raise ValidationException({"clock_out": ["You have not clocked in today."]})
        if record.clock_out is not None:
            raise ValidationException({"clock_out": ["Already clocked out today."]})

        if record.on_break:
            AttendanceService._close_break(record, now)

        record.clock_out = now
        record.total_hours = worked_hours(record.clock_in, now, record.total_break_seconds)
        if notes:
            record.notes = notes
        await db.flush()

        await create_audit_entry(
            db,
            action="clock_out",
            entity_type="attendance",
            entity_id=record.id,
            actor_id=employee.user_id,
            new_values={"timestamp": now.isoformat(), "total_hours": str(record.total_hours)},
            ip_address=ip_address,
        )
        return record

    # ── Breaks ──────────────────────────────────────────────────────

    @staticmethod
    def _close_break(record: Attendance, now: datetime) -> None:
        breaks = [dict(b) for b in record.breaks]
        current = breaks[-1]
        started = _ensure_utc(datetime.fromisoformat(current["start"]))
        duration = int((now - started).total_seconds())
        current["end"] = now.isoformat()
        current["duration_seconds"] = duration
        record.breaks = breaks
        record.total_break_seconds = (record.total_break_seconds or 0) + duration

    @staticmethod
    async def _open_record(db: AsyncSession, employee: Employee, field: str) -> tuple[Attendance, datetime]:
        now, today, _ = AttendanceService._local_now(employee)
        record = await AttendanceService._today_record(db, employee.id, today)
        if record is None or record.clock_in is None or record.clock_out is not None:
            raise ValidationException({field: ["You are not clocked in."]})
        return record, now

    @staticmethod
    async def start_break(db: AsyncSession, employee: Employee) -> Attendance:
        record, now = await AttendanceService._open_record(db, employee, "break")
        if record.on_break:
            raise ValidationException({"break": ["A break is already in progress."]})
        record.breaks = [
            *(record.breaks or []),
            {"start": now.isoformat(), "end": None, "duration_seconds": 0},
        ]
        await db.flush()
        return record

    @staticmethod
    async def end_break(db: AsyncSession, employee: Employee) -> Attendance:
        record, now = await AttendanceService._open_record(db, employee, "break")
        if not record.on_break:
            raise ValidationException({"break": ["No break in progress."]})
        AttendanceService._close_break(record, now)
        await db.flush()
        return record

    @staticmethod
    async def today(db: AsyncSession, employee: Employee) -> Optional[Attendance]:
        _, today, _ = AttendanceService._local_now(employee)
        return await AttendanceService._today_record(db, employee.id, today)

    # ── Admin CRUD ──────────────────────────────────────────────────

    @staticmethod
    async def list_attendance(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> PaginatedResponse:
        if date_from and date_to:
            if date_to < date_from:
                raise ValidationException({"date_to": ["date_to must be on or after date_from."]})
            if (date_to - date_from).days > MAX_DATE_RANGE_DAYS:
                raise ValidationException(
                    {"date_to": [f"Date range cannot exceed {MAX_DATE_RANGE_DAYS} days."]},
                )
        query = select(Attendance).order_by(Attendance.date.desc(), Attendance.clock_in)
        query = apply_filters(
            query,
            Attendance,
            {
                "employee_id": employee_id,
                "date__from": date_from,
                "date__to": date_to,
                "status": status,
            },
        )
        return await paginate(db, query, pagination, model=Attendance)

    @staticmethod
    async def get_attendance(db: AsyncSession, attendance_id: uuid.UUID) -> Attendance:
        record = await db.get(Attendance, attendance_id)
        if record is None:
            raise NotFoundException("Attendance", str(attendance_id))
        return record

    @staticmethod
    async def create_attendance(
        db: AsyncSession,
        data: AttendanceCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Attendance:
        if await db.get(Employee, data.employee_id) is None:
            raise ValidationException({"employee_id": [f"Employee '{data.employee_id}' does not exist."]})
        if await AttendanceService._today_record(db, data.employee_id, data.date) is not None:
            raise DuplicateException("date", data.date.isoformat())

        record = Attendance(**data.model_dump(), breaks=[], total_break_seconds=0)
        record.total_hours = (
            worked_hours(data.clock_in, data.clock_out)
            if data.clock_in and data.clock_out else Decimal("0")
        )
        db.add(record)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="attendance",
            entity_id=record.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return record

    @staticmethod
    async def update_attendance(
        db: AsyncSession,
        attendance_id: uuid.UUID,
        data: AttendanceUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Attendance:
        record = await AttendanceService.get_attendance(db, attendance_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(record, field, value)

        if record.clock_in and record.clock_out:
            if _ensure_utc(record.clock_out) < _ensure_utc(record.clock_in):
                raise ValidationException({"clock_out": ["clock_out must be after clock_in."]})
            record.total_hours = worked_hours(
                record.clock_in, record.clock_out, record.total_break_seconds or 0,
            )
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="attendance",
            entity_id=record.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return record

    @staticmethod
    async def delete_attendance(
        db: AsyncSession,
        attendance_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        record = await AttendanceService.get_attendance(db, attendance_id)
        await db.delete(record)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="attendance",
            entity_id=attendance_id,
            actor_id=actor_id,
            old_values={"employee_id": str(record.employee_id), "date": record.date.isoformat()},
        )
