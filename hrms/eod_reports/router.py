"""EOD reports router.

Routes:
    /eod-reports                        — List (paginated), create
    /eod-reports/employee/{name}        — All reports of one employee by name
    /eod-reports/{id}                   — Get, update, delete
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user
from hrms.auth.models import User
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.database import get_db
from hrms.eod_reports.schemas import EODReportCreate, EODReportOut, EODReportUpdate
from hrms.eod_reports.service import EODReportService

router = APIRouter(prefix="", tags=["eod-reports"])


def _out(report) -> dict:
    return EODReportOut.model_validate(report).model_dump(mode="json")


@router.post("", status_code=201)
async def create_report(
    body: EODReportCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    report = await EODReportService.create_report(
        db,
        body,
        employee_id=user.employee.id if user.employee else None,
        actor_id=user.id,
    )
    return success(_out(report), message="EOD report submitted")


@router.get("")
async def list_reports(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
):
    result = await EODReportService.list_reports(
        db, pagination, employee_id=employee_id, date_from=date_from, date_to=date_to,
    )
    return result.to_envelope(_out)


@router.get("/employee/{employee_name}")
async def reports_by_employee(
    employee_name: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    reports = await EODReportService.by_employee_name(db, employee_name)
    return success([_out(r) for r in reports], count=len(reports))


@router.get("/{report_id}")
async def get_report(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(_out(await EODReportService.get_report(db, report_id)))


@router.put("/{report_id}")
async def update_report(
    report_id: uuid.UUID,
    body: EODReportUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    report = await EODReportService.update_report(db, report_id, body, actor_id=user.id)
    return success(_out(report), message="EOD report updated")


@router.delete("/{report_id}")
async def delete_report(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await EODReportService.delete_report(db, report_id, actor_id=user.id)
    return success(message="EOD report deleted")
