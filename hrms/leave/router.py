"""Leave router — leave types, requests, approvals and balances.

Routes:
    /leave/types            — List, create leave types
    /leave/types/{id}       — Update, delete leave type
    /leave                  — Apply for leave, list all leaves
    /leave/my               — Caller's own leaves
    /leave/balance          — Caller's balance per leave type
    /leave/{id}             — Get, delete leave
    /leave/{id}/status      — Approve / reject
    /leave/{id}/cancel      — Owner cancels
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_employee, get_current_user, require_permission
from hrms.auth.models import User
from hrms.auth.service import has_permission
from hrms.common.constants import LeaveStatus
from hrms.common.exceptions import ForbiddenException, NotFoundException
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.core_hr.models import Employee
from hrms.database import get_db
from hrms.leave.schemas import (
    LeaveCreate,
    LeaveOut,
    LeaveStatusUpdate,
    LeaveTypeCreate,
    LeaveTypeOut,
    LeaveTypeUpdate,
)
from hrms.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


def _out(leave) -> dict:
    return LeaveOut.model_validate(leave).model_dump(mode="json")


# ═════════════════════════════════════════════════════════════════════
# Leave types
# ═════════════════════════════════════════════════════════════════════


@router.get("/types")
async def list_leave_types(
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    types = await LeaveService.list_types(db, include_inactive=include_inactive)
    return success([LeaveTypeOut.model_validate(t) for t in types])


@router.post("/types", status_code=201)
async def create_leave_type(
    body: LeaveTypeCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("leave:manage")),
):
    leave_type = await LeaveService.create_type(db, body, actor_id=actor.id)
    return success(LeaveTypeOut.model_validate(leave_type), message="Leave type created")


@router.put("/types/{type_id}")
async def update_leave_type(
    type_id: uuid.UUID,
    body: LeaveTypeUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("leave:manage")),
):
    leave_type = await LeaveService.update_type(db, type_id, body, actor_id=actor.id)
    return success(LeaveTypeOut.model_validate(leave_type), message="Leave type updated")


@router.delete("/types/{type_id}")
async def delete_leave_type(
    type_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("leave:manage")),
):
    await LeaveService.delete_type(db, type_id, actor_id=actor.id)
    return success(message="Leave type deleted")


# ═════════════════════════════════════════════════════════════════════
# Leave requests
# ═════════════════════════════════════════════════════════════════════


# ── POST /leave — Apply ─────────────────────────────────────────────

@router.post("", status_code=201)
async def create_leave(
    body: LeaveCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if body.employee_id is not None and (
        user.employee is None or body.employee_id != user.employee.id
    ):
        if not has_permission(user, "leave:manage"):
            raise ForbiddenException(detail="You can only apply for your own leave.")
        employee_id = body.employee_id
    elif user.employee is not None:
        employee_id = user.employee.id
    else:
        raise NotFoundException("Employee", f"user:{user.id}")

    leave = await LeaveService.create_leave(db, employee_id, body, actor_id=user.id)
    return success(_out(leave), message="Leave request submitted")


# ── GET /leave — All leaves (HR view) ───────────────────────────────

@router.get("")
async def list_leaves(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("leave:approve", "leave:manage")),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    leave_type_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
):
    result = await LeaveService.list_leaves(
        db,
        pagination,
        employee_id=employee_id,
        status=status,
        leave_type_id=leave_type_id,
        date_from=date_from,
        date_to=date_to,
    )
    return result.to_envelope(_out)


# ── GET /leave/my — Own leaves ──────────────────────────────────────

@router.get("/my")
async def my_leaves(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    pagination: PaginationParams = Depends(),
    status: Optional[LeaveStatus] = Query(None),
):
    result = await LeaveService.list_leaves(
        db, pagination, employee_id=employee.id, status=status,
    )
    return result.to_envelope(_out)


# ── GET /leave/balance ──────────────────────────────────────────────

@router.get("/balance")
async def my_balance(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    return success(await LeaveService.balance(db, employee.id, year))


# ── GET /leave/{id} ─────────────────────────────────────────────────

@router.get("/{leave_id}")
async def get_leave(
    leave_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    leave = await LeaveService.get_leave(db, leave_id)
    is_owner = user.employee is not None and leave.employee_id == user.employee.id
    if not is_owner and not (
        has_permission(user, "leave:approve") or has_permission(user, "leave:manage")
    ):
        raise ForbiddenException(detail="You can only view your own leave requests.")
    return success(_out(leave))


# ── PATCH /leave/{id}/status — Approve / reject ─────────────────────

@router.patch("/{leave_id}/status")
async def update_leave_status(
    leave_id: uuid.UUID,
    body: LeaveStatusUpdate,
    db: AsyncSession = Depends(get_db),
    approver: User = Depends(require_permission("leave:approve", "leave:manage")),
):
    leave = await LeaveService.update_status(db, leave_id, body, approver_id=approver.id)
    return success(_out(leave), message=f"Leave {body.status}")


# ── PATCH /leave/{id}/cancel ────────────────────────────────────────

@router.patch("/{leave_id}/cancel")
async def cancel_leave(
    leave_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    leave = await LeaveService.cancel_leave(
        db, leave_id, employee_id=employee.id, actor_id=employee.user_id,
    )
    return success(_out(leave), message="Leave cancelled")


# ── DELETE /leave/{id} ──────────────────────────────────────────────

@router.delete("/{leave_id}")
async def delete_leave(
    leave_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("leave:manage")),
):
    await LeaveService.delete_leave(db, leave_id, actor_id=actor.id)
    return success(message="Leave deleted")
