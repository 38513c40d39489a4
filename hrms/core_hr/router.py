"""Core HR router — Employee, Department, Designation API endpoints.

Routes:
    /employees                          — List, create employees
    /employees/birthdays                — Upcoming birthdays
    /employees/new-members              — Joiners of the current month
    /employees/new-members/{y}/{m}      — Joiners of a given month
    /employees/me/profile               — Caller's own employee record
    /employees/{id}                     — Get, update, delete employee
    /employees/{id}/profile-picture     — Upload profile picture
    /employees/{id}/documents           — Upload an employee document
    /departments                        — Department CRUD
    /designations                       — Designation CRUD
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.auth.models import User
from hrms.auth.service import has_permission
from hrms.common.exceptions import ForbiddenException
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.core_hr.schemas import (
    DepartmentCreate,
    DepartmentUpdate,
    DesignationCreate,
    DesignationOut,
    DesignationUpdate,
    EmployeeCreate,
    EmployeeDetail,
    EmployeeListItem,
    EmployeeUpdate,
)
from hrms.core_hr.service import DepartmentService, DesignationService, EmployeeService
from hrms.database import get_db


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

employees_router = APIRouter(prefix="", tags=["employees"])
departments_router = APIRouter(prefix="", tags=["departments"])
designations_router = APIRouter(prefix="", tags=["designations"])


def _ensure_self_or(user: User, employee_id: uuid.UUID, permission: str) -> None:
    """Allow the employee themself, or any holder of *permission*."""
    is_self = user.employee is not None and user.employee.id == employee_id
    if not is_self and not has_permission(user, permission):
        raise ForbiddenException(detail="You can only access your own employee record.")


# ═════════════════════════════════════════════════════════════════════
# Employee Endpoints
# ═════════════════════════════════════════════════════════════════════


# ── GET /employees — List employees ─────────────────────────────────

@employees_router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("employees:read", "employees:manage")),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, email, or employee code"),
    department_id: Optional[uuid.UUID] = Query(None),
    designation_id: Optional[uuid.UUID] = Query(None),
    role_id: Optional[uuid.UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
):
    result = await EmployeeService.list_employees(
        db,
        pagination,
        search=search,
        department_id=department_id,
        designation_id=designation_id,
        role_id=role_id,
        is_active=is_active,
    )
    return result.to_envelope(
        lambda e: EmployeeListItem.model_validate(e).model_dump(mode="json"),
    )


# ── POST /employees — Create employee + login account ──────────────

@employees_router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("employees:manage")),
):
    employee = await EmployeeService.create_employee(db, body, actor_id=actor.id)
    return success(EmployeeDetail.model_validate(employee), message="Employee created")


# ── GET /employees/birthdays — Upcoming birthdays ──────────────────

@employees_router.get("/birthdays")
async def upcoming_birthdays(
    days: int = Query(30, ge=0, le=366, description="Look-ahead window in days"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(await EmployeeService.upcoming_birthdays(db, days))


# ── GET /employees/new-members — Joiners this month ────────────────

@employees_router.get("/new-members")
async def new_members(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    members = await EmployeeService.new_members(db)
    return success([EmployeeListItem.model_validate(e) for e in members])


@employees_router.get("/new-members/{year}/{month}")
async def new_members_for_month(
    year: int,
    month: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    members = await EmployeeService.new_members(db, year, month)
    return success([EmployeeListItem.model_validate(e) for e in members])


# ── GET /employees/me/profile — Own record ─────────────────────────

@employees_router.get("/me/profile")
async def my_profile(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    employee = await EmployeeService.get_by_user(db, user.id)
    return success(EmployeeDetail.model_validate(employee))


# ── GET /employees/{id} — Employee detail ───────────────────────────

@employees_router.get("/{employee_id}")
async def get_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _ensure_self_or(user, employee_id, "employees:read")
    employee = await EmployeeService.get_employee(db, employee_id)
    return success(EmployeeDetail.model_validate(employee))


# ── PUT /employees/{id} — Update employee ───────────────────────────

@employees_router.put("/{employee_id}")
async def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("employees:manage")),
):
    employee = await EmployeeService.update_employee(db, employee_id, body, actor_id=actor.id)
    return success(EmployeeDetail.model_validate(employee), message="Employee updated")


# ── DELETE /employees/{id} ──────────────────────────────────────────

@employees_router.delete("/{employee_id}")
async def delete_employee(
    employee_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("employees:manage")),
):
    await EmployeeService.delete_employee(db, employee_id, actor_id=actor.id)
    return success(message="Employee deleted")


# ── POST /employees/{id}/profile-picture ────────────────────────────

@employees_router.post("/{employee_id}/profile-picture")
async def upload_profile_picture(
    employee_id: uuid.UUID,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _ensure_self_or(user, employee_id, "employees:manage")
    employee = await EmployeeService.set_profile_picture(db, employee_id, file, actor_id=user.id)
    return success(
        {"profile_picture": employee.user.profile_picture},
        message="Profile picture updated",
    )


# ── POST /employees/{id}/documents ──────────────────────────────────

@employees_router.post("/{employee_id}/documents", status_code=201)
async def upload_document(
    employee_id: uuid.UUID,
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _ensure_self_or(user, employee_id, "employees:manage")
    document = await EmployeeService.add_document(
        db, employee_id, file, name=name, actor_id=user.id,
    )
    return success(document, message="Document uploaded")


# ═════════════════════════════════════════════════════════════════════
# Department Endpoints
# ═════════════════════════════════════════════════════════════════════


@departments_router.get("")
async def list_departments(
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(await DepartmentService.list_departments(db, search=search))


@departments_router.get("/{department_id}")
async def get_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(await DepartmentService.get_department(db, department_id))


@departments_router.post("", status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("departments:manage")),
):
    dept = await DepartmentService.create_department(db, body, actor_id=actor.id)
    return success(dept, message="Department created")


@departments_router.put("/{department_id}")
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("departments:manage")),
):
    dept = await DepartmentService.update_department(db, department_id, body, actor_id=actor.id)
    return success(dept, message="Department updated")


@departments_router.delete("/{department_id}")
async def delete_department(
    department_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("departments:manage")),
):
    await DepartmentService.delete_department(db, department_id, actor_id=actor.id)
    return success(message="Department deleted")


# ═════════════════════════════════════════════════════════════════════
# Designation Endpoints
# ═════════════════════════════════════════════════════════════════════


@designations_router.get("")
async def list_designations(
    department_id: Optional[uuid.UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    designations = await DesignationService.list_designations(
        db, department_id=department_id, is_active=is_active,
    )
    return success([DesignationOut.model_validate(d) for d in designations])


@designations_router.get("/{designation_id}")
async def get_designation(
    designation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    designation = await DesignationService.get_designation(db, designation_id)
    return success(DesignationOut.model_validate(designation))


@designations_router.post("", status_code=201)
async def create_designation(
    body: DesignationCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("departments:manage")),
):
    designation = await DesignationService.create_designation(db, body, actor_id=actor.id)
    return success(DesignationOut.model_validate(designation), message="Designation created")


@designations_router.put("/{designation_id}")
async def update_designation(
    designation_id: uuid.UUID,
    body: DesignationUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("departments:manage")),
):
    designation = await DesignationService.update_designation(
        db, designation_id, body, actor_id=actor.id,
    )
    return success(DesignationOut.model_validate(designation), message="Designation updated")


@designations_router.delete("/{designation_id}")
async def delete_designation(
    designation_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("departments:manage")),
):
    await DesignationService.delete_designation(db, designation_id, actor_id=actor.id)
    return success(message="Designation deleted")
