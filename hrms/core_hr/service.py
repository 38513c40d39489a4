"""Core HR service layer — async CRUD + business logic.

Uses:
  - ``paginate()`` from hrms.common.pagination
  - ``apply_filters / apply_search`` from hrms.common.filters
  - ``create_audit_entry`` from hrms.common.audit
  - ``NotFoundException / DuplicateException`` from hrms.common.exceptions
"""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from fastapi import UploadFile
from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.models import User
from hrms.auth.service import hash_password
from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import DuplicateException, NotFoundException, ValidationException
from hrms.common.filters import apply_filters
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.common.uploads import DOCUMENT_TYPES, IMAGE_TYPES, save_upload
from hrms.core_hr.models import Department, Designation, Employee
from hrms.core_hr.schemas import (
    USER_FIELDS,
    BirthdayItem,
    DepartmentCreate,
    DepartmentOut,
    DepartmentUpdate,
    DesignationCreate,
    DesignationUpdate,
    EmployeeCreate,
    EmployeeUpdate,
)
from hrms.roles.models import Role

logger = logging.getLogger(__name__)


def _employee_options() -> tuple:
    return (
        selectinload(Employee.user).selectinload(User.role),
        selectinload(Employee.user).selectinload(User.department),
        selectinload(Employee.designation),
    )


def _next_birthday(dob: date, today: date) -> date:
    """Next occurrence of *dob* on or after *today* (29 Feb → 28 Feb)."""
    for year in (today.year, today.year + 1):
        day = dob.day
        if dob.month == 2 and day == 29 and not calendar.isleap(year):
            day = 28
        candidate = date(year, dob.month, day)
        if candidate >= today:
            return candidate
    return candidate


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── Reference checks ────────────────────────────────────────────

    @staticmethod
    async def _check_refs(
        db: AsyncSession,
        *,
        role_id: Optional[uuid.UUID] = None,
        department_id: Optional[uuid.UUID] = None,
        designation_id: Optional[uuid.UUID] = None,
    ) -> None:
        errors: dict[str, list[str]] = {}
        if role_id is not None and await db.get(Role, role_id) is None:
            errors["role_id"] = [f"Role '{role_id}' does not exist."]
        if department_id is not None and await db.get(Department, department_id) is None:
            errors["department_id"] = [f"Department '{department_id}' does not exist."]
        if designation_id is not None and await db.get(Designation, designation_id) is None:
            errors["designation_id"] = [f"Designation '{designation_id}' does not exist."]
        if errors:
            raise ValidationException(errors)

    @staticmethod
    async def _ensure_unique_code(
        db: AsyncSession,
        code: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Employee.id).where(func.lower(Employee.employee_code) == code.lower())
        if exclude_id is not None:
            query = query.where(Employee.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise DuplicateException("employee_code", code)

    # ── List (paginated, searchable, filterable) ────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
        designation_id: Optional[uuid.UUID] = None,
        role_id: Optional[uuid.UUID] = None,
        is_active: Optional[bool] = None,
    ) -> PaginatedResponse:
        """Return a paginated, filtered list of employees."""
        query = (
            select(Employee)
            .join(User, Employee.user_id == User.id)
            .options(*_employee_options())
            .order_by(User.first_name, User.last_name)
        )
        query = apply_filters(
            query, Employee, {"designation_id": designation_id, "is_active": is_active},
        )
        if department_id is not None:
            query = query.where(User.department_id == department_id)
        if role_id is not None:
            query = query.where(User.role_id == role_id)
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.where(
                or_(
                    User.first_name.ilike(term),
                    User.last_name.ilike(term),
                    User.email.ilike(term),
                    Employee.employee_code.ilike(term),
                ),
            )
        return await paginate(db, query, pagination, model=Employee)

    # ── Get ─────────────────────────────────────────────────────────

    @staticmethod
    async def get_employee(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
        result = await db.execute(
            select(Employee).where(Employee.id == employee_id).options(*_employee_options())
            .execution_options(populate_existing=True),
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    @staticmethod
    async def get_by_user(db: AsyncSession, user_id: uuid.UUID) -> Employee:
        """Employee profile of a login account (404 when it has none)."""
        result = await db.execute(
            select(Employee).where(Employee.user_id == user_id).options(*_employee_options()),
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", f"user:{user_id}")
        return employee

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        data: EmployeeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Create the login account and the employee record in one go."""
        email = data.email.lower()
        if (await db.execute(select(User.id).where(User.email == email))).scalar() is not None:
            raise DuplicateException("email", email)
        await EmployeeService._ensure_unique_code(db, data.employee_code)
        await EmployeeService._check_refs(
            db,
            role_id=data.role_id,
            department_id=data.department_id,
            designation_id=data.designation_id,
        )

        user = User(
            email=email,
            password_hash=hash_password(data.password),
            **data.model_dump(include=USER_FIELDS - {"status"}),
        )
        db.add(user)
        await db.flush()

        employee = Employee(
            user_id=user.id,
            **data.model_dump(
                mode="python",
                exclude=USER_FIELDS | {"email", "password", "emergency_contact", "bank_details"},
            ),
            emergency_contact=(
                data.emergency_contact.model_dump() if data.emergency_contact else None
            ),
            bank_details=data.bank_details.model_dump() if data.bank_details else None,
        )
        db.add(employee)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude={"password", "bank_details"}),
        )
        logger.info("Created employee %s for %s", employee.employee_code, email)
        return await EmployeeService.get_employee(db, employee.id)

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: EmployeeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Apply a partial update, writing account fields through to the user."""
        employee = await EmployeeService.get_employee(db, employee_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return employee

        if changes.get("employee_code"):
            await EmployeeService._ensure_unique_code(db, changes["employee_code"], employee.id)
        await EmployeeService._check_refs(
            db,
            role_id=changes.get("role_id"),
            department_id=changes.get("department_id"),
            designation_id=changes.get("designation_id"),
        )

        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            target = employee.user if field in USER_FIELDS else employee
            old = getattr(target, field)
            old_values[field] = jsonable_encoder(old)
            setattr(target, field, value)

        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return await EmployeeService.get_employee(db, employee_id)

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Delete the employee together with its login account."""
        employee = await EmployeeService.get_employee(db, employee_id)
        user = employee.user
        code = employee.employee_code

        await db.delete(employee)
        await db.flush()
        await db.delete(user)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="employee",
            entity_id=employee_id,
            actor_id=actor_id,
            old_values={"employee_code": code, "email": user.email},
        )
        logger.info("Deleted employee %s", code)

    # ── Birthdays / new joiners ─────────────────────────────────────

    @staticmethod
    async def upcoming_birthdays(
        db: AsyncSession,
        days: int = 30,
        *,
        today: Optional[date] = None,
    ) -> list[BirthdayItem]:
        """Active employees whose birthday falls within the next *days* days."""
        today = today or date.today()
        result = await db.execute(
            select(Employee)
            .where(Employee.is_active.is_(True), Employee.date_of_birth.is_not(None))
            .options(selectinload(Employee.user)),
        )
        items: list[BirthdayItem] = []
        for emp in result.scalars().all():
            upcoming = _next_birthday(emp.date_of_birth, today)
            delta = (upcoming - today).days
            if delta <= days:
                items.append(
                    BirthdayItem(
                        employee_id=emp.id,
                        full_name=emp.full_name,
                        date_of_birth=emp.date_of_birth,
                        next_birthday=upcoming,
                        days_until=delta,
                        profile_picture=emp.user.profile_picture,
                    ),
                )
        items.sort(key=lambda b: (b.days_until, b.full_name))
        return items

    @staticmethod
    async def new_members(
        db: AsyncSession,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> list[Employee]:
        """Employees who joined in the given month (default: current month)."""
        today = date.today()
        year = year or today.year
        month = month or today.month
        if not 1 <= month <= 12:
            raise ValidationException({"month": ["Month must be between 1 and 12."]})

        start = date(year, month, 1)
        end = date(year, month, calendar.monthrange(year, month)[1])
        result = await db.execute(
            select(Employee)
            .where(Employee.joining_date >= start, Employee.joining_date <= end)
            .options(*_employee_options())
            .order_by(Employee.joining_date.desc()),
        )
        return list(result.scalars().all())

    # ── Uploads ─────────────────────────────────────────────────────

    @staticmethod
    async def set_profile_picture(
        db: AsyncSession,
        employee_id: uuid.UUID,
        file: UploadFile,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        employee = await EmployeeService.get_employee(db, employee_id)
        stored = await save_upload(file, "profile_pictures", IMAGE_TYPES, field="file")

        employee.user.profile_picture = stored["url"]
        await db.flush()
        await create_audit_entry(
            db,
            action="upload_profile_picture",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values={"profile_picture": stored["url"]},
        )
        return employee

    @staticmethod
    async def add_document(
        db: AsyncSession,
        employee_id: uuid.UUID,
        file: UploadFile,
        *,
        name: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict[str, Any]:
        employee = await EmployeeService.get_employee(db, employee_id)
        stored = await save_upload(file, f"documents/{employee.id}", DOCUMENT_TYPES)

        document = {
            "name": name or stored["original_name"] or stored["filename"],
            **stored,
            "uploaded_at": datetime.now(timezone.utc).isoformat(),
        }
        # New list so the JSONB column is flagged dirty
        employee.documents = [*(employee.documents or []), document]
        await db.flush()
        await create_audit_entry(
            db,
            action="upload_document",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values={"document": document["url"]},
        )
        return document


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:
    """Async CRUD for departments; reads carry an employee count."""

    @staticmethod
    async def _employee_counts(
        db: AsyncSession,
        department_ids: Optional[list[uuid.UUID]] = None,
    ) -> dict[uuid.UUID, int]:
        query = (
            select(User.department_id, func.count(Employee.id))
            .join(Employee, Employee.user_id == User.id)
            .where(User.department_id.is_not(None), Employee.is_active.is_(True))
            .group_by(User.department_id)
        )
        if department_ids is not None:
            query = query.where(User.department_id.in_(department_ids))
        return {row[0]: row[1] for row in (await db.execute(query)).all()}

    @staticmethod
    async def _ensure_unique_name(
        db: AsyncSession,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Department.id).where(func.lower(Department.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Department.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise DuplicateException("name", name)

    @staticmethod
    async def list_departments(
        db: AsyncSession,
        *,
        search: Optional[str] = None,
    ) -> list[DepartmentOut]:
        """Return all departments with their active employee count."""
        query = select(Department).order_by(Department.name)
        if search and search.strip():
            query = query.where(Department.name.ilike(f"%{search.strip()}%"))
        departments = (await db.execute(query)).scalars().all()

        counts = await DepartmentService._employee_counts(db)
        responses: list[DepartmentOut] = []
        for dept in departments:
            resp = DepartmentOut.model_validate(dept)
            resp.employee_count = counts.get(dept.id, 0)
            responses.append(resp)
        return responses

    @staticmethod
    async def _get(db: AsyncSession, department_id: uuid.UUID) -> Department:
        dept = await db.get(Department, department_id)
        if dept is None:
            raise NotFoundException("Department", str(department_id))
        return dept

    @staticmethod
    async def get_department(db: AsyncSession, department_id: uuid.UUID) -> DepartmentOut:
        dept = await DepartmentService._get(db, department_id)
        resp = DepartmentOut.model_validate(dept)
        counts = await DepartmentService._employee_counts(db, [dept.id])
        resp.employee_count = counts.get(dept.id, 0)
        return resp

    @staticmethod
    async def create_department(
        db: AsyncSession,
        data: DepartmentCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DepartmentOut:
        name = data.name.strip()
        await DepartmentService._ensure_unique_name(db, name)
        dept = Department(name=name, description=data.description)
        db.add(dept)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="department",
            entity_id=dept.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return DepartmentOut.model_validate(dept)

    @staticmethod
    async def update_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        data: DepartmentUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> DepartmentOut:
        dept = await DepartmentService._get(db, department_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name"):
            changes["name"] = changes["name"].strip()
            await DepartmentService._ensure_unique_name(db, changes["name"], dept.id)
        for field, value in changes.items():
            setattr(dept, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="department",
            entity_id=dept.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return await DepartmentService.get_department(db, dept.id)

    @staticmethod
    async def delete_department(
        db: AsyncSession,
        department_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        dept = await DepartmentService._get(db, department_id)
        members = (
            await db.execute(
                select(func.count()).select_from(User).where(User.department_id == dept.id),
            )
        ).scalar() or 0
        if members:
            raise ValidationException(
                {"department": [f"Department still has {members} member(s)."]},
            )
        await db.delete(dept)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="department",
            entity_id=department_id,
            actor_id=actor_id,
            old_values={"name": dept.name},
        )


# ═════════════════════════════════════════════════════════════════════
# DesignationService
# ═════════════════════════════════════════════════════════════════════


class DesignationService:

    @staticmethod
    async def _ensure_unique_title(
        db: AsyncSession,
        title: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Designation.id).where(func.lower(Designation.title) == title.lower())
        if exclude_id is not None:
            query = query.where(Designation.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise DuplicateException("title", title)

    @staticmethod
    async def _check_department(db: AsyncSession, department_id: Optional[uuid.UUID]) -> None:
        if department_id is not None and await db.get(Department, department_id) is None:
            raise ValidationException(
                {"department_id": [f"Department '{department_id}' does not exist."]},
            )

    @staticmethod
    async def list_designations(
        db: AsyncSession,
        *,
        department_id: Optional[uuid.UUID] = None,
        is_active: Optional[bool] = None,
    ) -> list[Designation]:
        query = (
            select(Designation)
            .options(selectinload(Designation.department))
            .order_by(Designation.title)
        )
        query = apply_filters(
            query, Designation, {"department_id": department_id, "is_active": is_active},
        )
        return list((await db.execute(query)).scalars().all())

    @staticmethod
    async def get_designation(db: AsyncSession, designation_id: uuid.UUID) -> Designation:
        result = await db.execute(
            select(Designation)
            .where(Designation.id == designation_id)
            .options(selectinload(Designation.department))
            .execution_options(populate_existing=True),
        )
        designation = result.scalars().first()
        if designation is None:
            raise NotFoundException("Designation", str(designation_id))
        return designation

    @staticmethod
    async def create_designation(
        db: AsyncSession,
        data: DesignationCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Designation:
        title = data.title.strip()
        await DesignationService._ensure_unique_title(db, title)
        await DesignationService._check_department(db, data.department_id)

        designation = Designation(**data.model_dump(exclude={"title"}), title=title)
        db.add(designation)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="designation",
            entity_id=designation.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await DesignationService.get_designation(db, designation.id)

    @staticmethod
    async def update_designation(
        db: AsyncSession,
        designation_id: uuid.UUID,
        data: DesignationUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Designation:
        designation = await DesignationService.get_designation(db, designation_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("title"):
            changes["title"] = changes["title"].strip()
            await DesignationService._ensure_unique_title(db, changes["title"], designation.id)
        if "department_id" in changes:
            await DesignationService._check_department(db, changes["department_id"])

        for field, value in changes.items():
            setattr(designation, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="designation",
            entity_id=designation.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return await DesignationService.get_designation(db, designation_id)

    @staticmethod
    async def delete_designation(
        db: AsyncSession,
        designation_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        designation = await DesignationService.get_designation(db, designation_id)
        await db.delete(designation)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="designation",
            entity_id=designation_id,
            actor_id=actor_id,
            old_values={"title": designation.title},
        )
