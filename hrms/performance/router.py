"""Performance reviews router.

Routes:
    /performance                 — List (paginated), create
    /performance/my              — Caller's own reviews
    /performance/my/{id}         — One of the caller's reviews
    /performance/my/{id}/feedback — Caller answers a review of themselves
    /performance/{id}            — Get, update, delete
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_employee, require_permission
from hrms.auth.models import User
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.core_hr.models import Employee
from hrms.database import get_db
from hrms.performance.schemas import (
    EmployeeFeedback,
    PerformanceCreate,
    PerformanceOut,
    PerformanceUpdate,
)
from hrms.performance.service import PerformanceService

router = APIRouter(prefix="", tags=["performance"])

_manage = require_permission("performance:manage")


def _out(review) -> dict:
    return PerformanceOut.model_validate(review).model_dump(mode="json")


@router.get("")
async def list_reviews(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(_manage),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    reviewer_id: Optional[uuid.UUID] = Query(None),
    promotion_recommended: Optional[bool] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
):
    result = await PerformanceService.list_reviews(
        db,
        pagination,
        employee_id=employee_id,
        reviewer_id=reviewer_id,
        promotion_recommended=promotion_recommended,
        date_from=date_from,
        date_to=date_to,
    )
    return result.to_envelope(_out)


@router.post("", status_code=201)
async def create_review(
    body: PerformanceCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    review = await PerformanceService.create_review(
        db,
        body,
        reviewer_id=actor.employee.id if actor.employee else None,
        actor_id=actor.id,
    )
    return success(_out(review), message="Performance review created")


# ── Self-service ────────────────────────────────────────────────────

@router.get("/my")
async def my_reviews(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    pagination: PaginationParams = Depends(),
):
    result = await PerformanceService.list_reviews(db, pagination, employee_id=employee.id)
    return result.to_envelope(_out)


@router.get("/my/{review_id}")
async def my_review(
    review_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    return success(_out(await PerformanceService.get_own_review(db, review_id, employee.id)))


@router.patch("/my/{review_id}/feedback")
async def give_feedback(
    review_id: uuid.UUID,
    body: EmployeeFeedback,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    review = await PerformanceService.add_employee_feedback(
        db, review_id, body, employee_id=employee.id, actor_id=employee.user_id,
    )
    return success(_out(review), message="Feedback saved")


# ── /performance/{id} ───────────────────────────────────────────────

@router.get("/{review_id}")
async def get_review(
    review_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(_manage),
):
    return success(_out(await PerformanceService.get_review(db, review_id)))


@router.put("/{review_id}")
async def update_review(
    review_id: uuid.UUID,
    body: PerformanceUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    review = await PerformanceService.update_review(db, review_id, body, actor_id=actor.id)
    return success(_out(review), message="Performance review updated")


@router.delete("/{review_id}")
async def delete_review(
    review_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    await PerformanceService.delete_review(db, review_id, actor_id=actor.id)
    return success(message="Performance review deleted")
