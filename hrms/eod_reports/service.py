"""End-of-day report service layer."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.models import User
from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import NotFoundException, ValidationException
from hrms.common.filters import apply_filters
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.core_hr.models import Employee
from hrms.eod_reports.models import EODReport
from hrms.eod_reports.schemas import EODReportCreate, EODReportUpdate

logger = logging.getLogger(__name__)


class EODReportService:

    @staticmethod
    async def _profile(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
        result = await db.execute(
            select(Employee)
            .where(Employee.id == employee_id)
            .options(
                selectinload(Employee.user).selectinload(User.department),
                selectinload(Employee.designation),
            ),
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    @staticmethod
    async def create_report(
        db: AsyncSession,
        data: EODReportCreate,
        *,
        employee_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EODReport:
        """Create a report; name, position and department default from *employee_id*."""
        fields = data.model_dump(mode="json", exclude={"employee_id", "date"})
        employee_id = data.employee_id or employee_id
        if employee_id is not None:
            employee = await EODReportService._profile(db, employee_id)
            user = employee.user
            fields["employee_name"] = fields.get("employee_name") or employee.full_name
            fields["position"] = fields.get("position") or (
                employee.designation.title if employee.designation else user.position
            )
            if not fields.get("department") and user.department is not None:
                fields["department"] = user.department.name
        if not fields.get("employee_name"):
            raise ValidationException({"employee_name": ["employee_name is required."]})

        report = EODReport(employee_id=employee_id, date=data.date, **fields)
        db.add(report)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="eod_report",
            entity_id=report.id,
            actor_id=actor_id,
            new_values={"employee_name": report.employee_name, "date": data.date.isoformat()},
        )
        logger.info("EOD report %s for %s on %s", report.id, report.employee_name, report.date)
        return report

    @staticmethod
    async def list_reports(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> PaginatedResponse:
        query = select(EODReport).order_by(EODReport.date.desc(), EODReport.created_at.desc())
        query = apply_filters(
            query,
            EODReport,
            {"employee_id": employee_id, "date__from": date_from, "date__to": date_to},
        )
        return await paginate(db, query, pagination, model=EODReport)

    @staticmethod
    async def by_employee_name(db: AsyncSession, employee_name: str) -> list[EODReport]:
        result = await db.execute(
            select(EODReport)
            .where(func.lower(EODReport.employee_name) == employee_name.strip().lower())
            .order_by(EODReport.date.desc(), EODReport.created_at.desc()),
        )
        reports = list(result.scalars().all())
        if not reports:
            raise NotFoundException("EODReport", f"employee:{employee_name}")
        return reports

    @staticmethod
    async def get_report(db: AsyncSession, report_id: uuid.UUID) -> EODReport:
        report = await db.get(EODReport, report_id)
        if report is None:
            raise NotFoundException("EODReport", str(report_id))
        return report

    @staticmethod
    async def update_report(
        db: AsyncSession,
        report_id: uuid.UUID,
        data: EODReportUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EODReport:
        report = await EODReportService.get_report(db, report_id)
        updates = data.model_dump(mode="json", exclude_unset=True)
        for required in ("employee_name", "date"):
            if required in updates and updates[required] is None:
                updates.pop(required)
        if "date" in updates:
            updates["date"] = data.date
        for field, value in updates.items():
            setattr(report, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="eod_report",
            entity_id=report.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return report

    @staticmethod
    async def delete_report(
        db: AsyncSession,
        report_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        report = await EODReportService.get_report(db, report_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="eod_report",
            entity_id=report.id,
            actor_id=actor_id,
            old_values={"employee_name": report.employee_name, "date": report.date.isoformat()},
        )
        await db.delete(report)
        await db.flush()
