"""Attendance router — self-service clocking and admin record management.

Routes:
    /attendance/clock-in      — Start (or reopen) today
    /attendance/clock-out     — Close today and compute hours
    /attendance/break/start   — Begin a break
    /attendance/break/end     — End the running break
    /attendance/today         — Caller's record for today
    /attendance               — Admin list / create
    /attendance/{id}          — Admin get / update / delete
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.schemas import AttendanceCreate, AttendanceOut, AttendanceUpdate, ClockRequest
from hrms.attendance.service import AttendanceService
from hrms.auth.dependencies import get_current_employee, require_permission
from hrms.auth.models import User
from hrms.common.audit import client_meta
from hrms.common.constants import AttendanceStatus
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.core_hr.models import Employee
from hrms.database import get_db

router = APIRouter(prefix="", tags=["attendance"])


def _out(record) -> dict:
    return AttendanceOut.model_validate(record).model_dump(mode="json")


# ═════════════════════════════════════════════════════════════════════
# Self-service
# ═════════════════════════════════════════════════════════════════════


# ── POST /attendance/clock-in ───────────────────────────────────────

@router.post("/clock-in")
async def clock_in(
    request: Request,
    body: Optional[ClockRequest] = None,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    body = body or ClockRequest()
    ip, _ = client_meta(request)
    record = await AttendanceService.clock_in(
        db, employee, location=body.location, notes=body.notes, ip_address=ip,
    )
    return success(_out(record), message="Clocked in")


# ── POST /attendance/clock-out ──────────────────────────────────────

@router.post("/clock-out")
async def clock_out(
    request: Request,
    body: Optional[ClockRequest] = None,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    body = body or ClockRequest()
    ip, _ = client_meta(request)
    record = await AttendanceService.clock_out(db, employee, notes=body.notes, ip_address=ip)
    return success(_out(record), message="Clocked out")


# ── POST /attendance/break/start | /break/end ───────────────────────

@router.post("/break/start")
async def start_break(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    record = await AttendanceService.start_break(db, employee)
    return success(_out(record), message="Break started")


@router.post("/break/end")
async def end_break(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    record = await AttendanceService.end_break(db, employee)
    return success(_out(record), message="Break ended")


# ── GET /attendance/today ───────────────────────────────────────────

@router.get("/today")
async def today(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    record = await AttendanceService.today(db, employee)
    return {"success": True, "data": _out(record) if record else None}


# ═════════════════════════════════════════════════════════════════════
# Admin
# ═════════════════════════════════════════════════════════════════════


@router.get("")
async def list_attendance(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("attendance:manage")),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
):
    result = await AttendanceService.list_attendance(
        db,
        pagination,
        employee_id=employee_id,
        date_from=date_from,
        date_to=date_to,
        status=status,
    )
    return result.to_envelope(_out)


@router.post("", status_code=201)
async def create_attendance(
    body: AttendanceCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("attendance:manage")),
):
    record = await AttendanceService.create_attendance(db, body, actor_id=actor.id)
    return success(_out(record), message="Attendance created")


@router.get("/{attendance_id}")
async def get_attendance(
    attendance_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("attendance:manage")),
):
    return success(_out(await AttendanceService.get_attendance(db, attendance_id)))


@router.put("/{attendance_id}")
async def update_attendance(
    attendance_id: uuid.UUID,
    body: AttendanceUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("attendance:manage")),
):
    record = await AttendanceService.update_attendance(db, attendance_id, body, actor_id=actor.id)
    return success(_out(record), message="Attendance updated")


@router.delete("/{attendance_id}")
async def delete_attendance(
    attendance_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("attendance:manage")),
):
    await AttendanceService.delete_attendance(db, attendance_id, actor_id=actor.id)
    return success(message="Attendance deleted")
