"""Performance review service layer.

A review covers one employee over a period and is written by another
employee (the reviewer). Goals and ratings are stored as JSONB; the
reviewed employee may add their own feedback to a review of themselves.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import NotFoundException, ValidationException
from hrms.common.filters import apply_filters
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.core_hr.models import Employee
from hrms.performance.models import PerformanceReview
from hrms.performance.schemas import (
    EmployeeFeedback,
    PerformanceCreate,
    PerformanceUpdate,
)

logger = logging.getLogger(__name__)

_DOCUMENT_FIELDS = {
    "goals",
    "ratings",
    "reviewer_feedback",
    "employee_feedback",
    "promotion_recommended",
}


def _review_options() -> tuple:
    return (
        selectinload(PerformanceReview.employee).selectinload(Employee.user),
        selectinload(PerformanceReview.reviewer).selectinload(Employee.user),
    )


class PerformanceService:

    @staticmethod
    async def _require_employee(db: AsyncSession, employee_id: uuid.UUID) -> None:
        result = await db.execute(select(Employee.id).where(Employee.id == employee_id))
        if result.first() is None:
            raise NotFoundException("Employee", str(employee_id))

    @staticmethod
    async def _check_people(
        db: AsyncSession,
        employee_id: uuid.UUID,
        reviewer_id: Optional[uuid.UUID],
    ) -> None:
        if reviewer_id is None:
            raise ValidationException(
                {"reviewer_id": ["reviewer_id is required when the caller has no employee profile."]},
            )
        if reviewer_id == employee_id:
            raise ValidationException({"reviewer_id": ["An employee cannot review themselves."]})
        await PerformanceService._require_employee(db, employee_id)
        await PerformanceService._require_employee(db, reviewer_id)

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def get_review(db: AsyncSession, review_id: uuid.UUID) -> PerformanceReview:
        result = await db.execute(
            select(PerformanceReview)
            .where(PerformanceReview.id == review_id)
            .options(*_review_options())
            .execution_options(populate_existing=True),
        )
        review = result.scalars().first()
        if review is None:
            raise NotFoundException("PerformanceReview", str(review_id))
        return review

    @staticmethod
    async def get_own_review(
        db: AsyncSession,
        review_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> PerformanceReview:
        review = await PerformanceService.get_review(db, review_id)
        if review.employee_id != employee_id:
            raise NotFoundException("PerformanceReview", str(review_id))
        return review

    @staticmethod
    async def list_reviews(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        reviewer_id: Optional[uuid.UUID] = None,
        promotion_recommended: Optional[bool] = None,
        date_from: Optional[dt.date] = None,
        date_to: Optional[dt.date] = None,
    ) -> PaginatedResponse:
        """Reviews, latest period first; the date range keeps overlapping periods."""
        query = (
            select(PerformanceReview)
            .options(*_review_options())
            .order_by(PerformanceReview.period_end.desc(), PerformanceReview.created_at.desc())
        )
        query = apply_filters(
            query,
            PerformanceReview,
            {
                "employee_id": employee_id,
                "reviewer_id": reviewer_id,
                "promotion_recommended": promotion_recommended,
                "period_end__from": date_from,
                "period_start__to": date_to,
            },
        )
        return await paginate(db, query, pagination, model=PerformanceReview)

    # ── Writes ──────────────────────────────────────────────────────

    @staticmethod
    async def create_review(
        db: AsyncSession,
        data: PerformanceCreate,
        *,
        reviewer_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PerformanceReview:
        """Create a review; the reviewer defaults to *reviewer_id* (the caller)."""
        reviewer_id = data.reviewer_id or reviewer_id
        await PerformanceService._check_people(db, data.employee_id, reviewer_id)

        review = PerformanceReview(
            employee_id=data.employee_id,
            reviewer_id=reviewer_id,
            period_start=data.period_start,
            period_end=data.period_end,
            created_by=actor_id,
            **data.model_dump(mode="json", include=_DOCUMENT_FIELDS),
        )
        db.add(review)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="performance_review",
            entity_id=review.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", include={"employee_id", "period_start", "period_end"}),
        )
        logger.info("Performance review %s created for employee %s", review.id, data.employee_id)
        return await PerformanceService.get_review(db, review.id)

    @staticmethod
    async def update_review(
        db: AsyncSession,
        review_id: uuid.UUID,
        data: PerformanceUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PerformanceReview:
        review = await PerformanceService.get_review(db, review_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if not updates:
            raise ValidationException({"body": ["No valid fields to update."]})

        start = updates.get("period_start", review.period_start)
        end = updates.get("period_end", review.period_end)
        if end < start:
            raise ValidationException({"period_end": ["period_end must not be before period_start."]})
        if "reviewer_id" in updates:
            await PerformanceService._check_people(db, review.employee_id, updates["reviewer_id"])

        json_updates = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        for field in ("goals", "ratings"):
            if field in json_updates:
                updates[field] = json_updates[field]
        for field, value in updates.items():
            setattr(review, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="performance_review",
            entity_id=review.id,
            actor_id=actor_id,
            new_values=json_updates,
        )
        return await PerformanceService.get_review(db, review.id)

    @staticmethod
    async def add_employee_feedback(
        db: AsyncSession,
        review_id: uuid.UUID,
        data: EmployeeFeedback,
        *,
        employee_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PerformanceReview:
        review = await PerformanceService.get_own_review(db, review_id, employee_id)
        review.employee_feedback = data.employee_feedback.strip()
        await db.flush()
        await create_audit_entry(
            db,
            action="employee_feedback",
            entity_type="performance_review",
            entity_id=review.id,
            actor_id=actor_id,
        )
        return await PerformanceService.get_review(db, review.id)

    @staticmethod
    async def delete_review(
        db: AsyncSession,
        review_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        review = await PerformanceService.get_review(db, review_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="performance_review",
            entity_id=review.id,
            actor_id=actor_id,
            old_values={
                "employee_id": str(review.employee_id),
                "period_start": review.period_start.isoformat(),
                "period_end": review.period_end.isoformat(),
            },
        )
        await db.delete(review)
        await db.flush()
