"""Leave service layer — leave types, requests, approval and balances.

Business logic:
  - total days are inclusive calendar days (0.5 for a single half day)
  - a request may not overlap the employee's pending or approved leaves
  - days covered by the remaining yearly allocation of the leave type are
    booked ``from_allocation``; the rest is unpaid ``from_normal_leave``
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.common.audit import create_audit_entry
from hrms.common.constants import BLOCKING_LEAVE_STATUSES, LeaveStatus
from hrms.common.exceptions import (
    DuplicateException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hrms.common.filters import apply_filters
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.core_hr.models import Employee
from hrms.leave.models import Leave, LeaveType
from hrms.leave.schemas import (
    LeaveBalance,
    LeaveBalanceItem,
    LeaveCreate,
    LeaveStatusUpdate,
    LeaveTypeCreate,
    LeaveTypeUpdate,
)

logger = logging.getLogger(__name__)

HALF = Decimal("0.5")


def leave_days(start: date, end: date, is_half_day: bool = False) -> Decimal:
    """Inclusive calendar days between *start* and *end*."""
    if is_half_day and start == end:
        return HALF
    return Decimal((end - start).days + 1)


def split_allocation(requested: Decimal, available: Decimal, type_name: str) -> dict:
    """Book *requested* days against the *available* allocation first."""
    available = max(available, Decimal("0"))
    from_allocation = min(requested, available)
    from_normal = requested - from_allocation
    if from_normal:
        message = (
            f"{from_allocation} days from {type_name} allocation + "
            f"{from_normal} normal leave days"
        )
    else:
        message = f"{requested} days deducted from {type_name} allocation"
    return {
        "from_allocation": float(from_allocation),
        "from_normal_leave": float(from_normal),
        "available_balance": float(available),
        "requested_days": float(requested),
        "message": message,
    }


def _leave_options() -> tuple:
    return (
        selectinload(Leave.leave_type),
        selectinload(Leave.employee).selectinload(Employee.user),
    )


class LeaveService:

    # ═════════════════════════════════════════════════════════════════
    # Leave types
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def list_types(db: AsyncSession, *, include_inactive: bool = False) -> list[LeaveType]:
        query = select(LeaveType).order_by(LeaveType.name)
        if not include_inactive:
            query = query.where(LeaveType.is_active.is_(True))
        return list((await db.execute(query)).scalars().all())

    @staticmethod
    async def _get_type(db: AsyncSession, type_id: uuid.UUID) -> LeaveType:
        leave_type = await db.get(LeaveType, type_id)
        if leave_type is None:
            raise NotFoundException("LeaveType", str(type_id))
        return leave_type

    @staticmethod
    async def _ensure_unique_type_name(
        db: AsyncSession,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(LeaveType.id).where(func.lower(LeaveType.name) == name.lower())
        if exclude_id is not None:
            query = query.where(LeaveType.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise DuplicateException("name", name)

    @staticmethod
    async def create_type(
        db: AsyncSession,
        data: LeaveTypeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LeaveType:
        name = data.name.strip()
        await LeaveService._ensure_unique_type_name(db, name)
        leave_type = LeaveType(**data.model_dump(exclude={"name"}), name=name)
        db.add(leave_type)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_type",
            entity_id=leave_type.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return leave_type

    @staticmethod
    async def update_type(
        db: AsyncSession,
        type_id: uuid.UUID,
        data: LeaveTypeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LeaveType:
        leave_type = await LeaveService._get_type(db, type_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name"):
            changes["name"] = changes["name"].strip()
            await LeaveService._ensure_unique_type_name(db, changes["name"], leave_type.id)
        for field, value in changes.items():
            setattr(leave_type, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="leave_type",
            entity_id=leave_type.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return leave_type

    @staticmethod
    async def delete_type(
        db: AsyncSession,
        type_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        leave_type = await LeaveService._get_type(db, type_id)
        in_use = (
            await db.execute(
                select(func.count()).select_from(Leave).where(Leave.leave_type_id == type_id),
            )
        ).scalar() or 0
        if in_use:
            raise ValidationException(
                {"leave_type": [f"{in_use} leave request(s) use this type; deactivate it instead."]},
            )
        await db.delete(leave_type)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="leave_type",
            entity_id=type_id,
            actor_id=actor_id,
            old_values={"name": leave_type.name},
        )

    # ═════════════════════════════════════════════════════════════════
    # Balances
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def _allocation_taken(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: int,
        statuses: tuple[LeaveStatus, ...],
    ) -> list[Leave]:
        result = await db.execute(
            select(Leave).where(
                Leave.employee_id == employee_id,
                Leave.status.in_(statuses),
                extract("year", Leave.start_date) == year,
            ),
        )
        return list(result.scalars().all())

    @staticmethod
    def _booked(leave: Leave, key: str) -> Decimal:
        if leave.breakdown and key in leave.breakdown:
            return Decimal(str(leave.breakdown[key]))
        # Rows without a breakdown count entirely against the allocation
        return Decimal(leave.total_days) if key == "from_allocation" else Decimal("0")

    @staticmethod
    async def available_allocation(
        db: AsyncSession,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
        year: int,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Decimal:
        leaves = await LeaveService._allocation_taken(
            db, employee_id, year, BLOCKING_LEAVE_STATUSES,
        )
        taken = sum(
            (
                LeaveService._booked(lv, "from_allocation") for lv in leaves
                if lv.leave_type_id == leave_type.id and lv.id != exclude_id
            ),
            Decimal("0"),
        )
        return Decimal(leave_type.leave_count) - taken

    @staticmethod
    async def balance(
        db: AsyncSession,
        employee_id: uuid.UUID,
        year: Optional[int] = None,
    ) -> LeaveBalance:
        year = year or date.today().year
        types = await LeaveService.list_types(db)
        leaves = await LeaveService._allocation_taken(
            db, employee_id, year, BLOCKING_LEAVE_STATUSES,
        )

        items: list[LeaveBalanceItem] = []
        for lt in types:
            used = sum(
                (
                    LeaveService._booked(lv, "from_allocation") for lv in leaves
                    if lv.leave_type_id == lt.id and lv.status == LeaveStatus.approved
                ),
                Decimal("0"),
            )
            pending = sum(
                (
                    LeaveService._booked(lv, "from_allocation") for lv in leaves
                    if lv.leave_type_id == lt.id and lv.status == LeaveStatus.pending
                ),
                Decimal("0"),
            )
            allocated = Decimal(lt.leave_count)
            items.append(
                LeaveBalanceItem(
                    leave_type_id=lt.id,
                    leave_type=lt.name,
                    is_paid=lt.is_paid,
                    allocated=allocated,
                    used=used,
                    pending=pending,
                    remaining=max(allocated - used - pending, Decimal("0")),
                ),
            )

        normal_used = sum(
            (
                LeaveService._booked(lv, "from_normal_leave") for lv in leaves
                if lv.status == LeaveStatus.approved
            ),
            Decimal("0"),
        )
        return LeaveBalance(
            employee_id=employee_id,
            year=year,
            balances=items,
            normal_leave_used=normal_used,
        )

    # ═════════════════════════════════════════════════════════════════
    # Leave requests
    # ═════════════════════════════════════════════════════════════════

    @staticmethod
    async def find_overlap(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start: date,
        end: date,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[Leave]:
        """First pending/approved leave of the employee intersecting [start, end]."""
        query = select(Leave).where(
            Leave.employee_id == employee_id,
            Leave.status.in_(BLOCKING_LEAVE_STATUSES),
            Leave.start_date <= end,
            Leave.end_date >= start,
        )
        if exclude_id is not None:
            query = query.where(Leave.id != exclude_id)
        return (await db.execute(query.limit(1))).scalars().first()

    @staticmethod
    async def create_leave(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: LeaveCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Leave:
        if await db.get(Employee, employee_id) is None:
            raise NotFoundException("Employee", str(employee_id))
        leave_type = await LeaveService._get_type(db, data.leave_type_id)
        if not leave_type.is_active:
            raise ValidationException({"leave_type_id": [f"Leave type '{leave_type.name}' is inactive."]})

        clash = await LeaveService.find_overlap(db, employee_id, data.start_date, data.end_date)
        if clash is not None:
            raise ValidationException(
                {"start_date": [
                    f"Overlaps an existing {clash.status.value} leave "
                    f"({clash.start_date.isoformat()} to {clash.end_date.isoformat()}).",
                ]},
                message="Leave dates overlap an existing leave request.",
            )

        total = leave_days(data.start_date, data.end_date, data.is_half_day)
        available = await LeaveService.available_allocation(
            db, employee_id, leave_type, data.start_date.year,
        )
        leave = Leave(
            employee_id=employee_id,
            leave_type_id=leave_type.id,
            start_date=data.start_date,
            end_date=data.end_date,
            total_days=total,
            is_half_day=data.is_half_day,
            reason=data.reason,
            status=LeaveStatus.pending,
            breakdown=split_allocation(total, available, leave_type.name),
            attachments=[a.model_dump() for a in data.attachments],
        )
        db.add(leave)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave",
            entity_id=leave.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info(
            "Leave %s requested for employee %s (%s days)", leave.id, employee_id, total,
        )
        return await LeaveService.get_leave(db, leave.id)

    @staticmethod
    async def list_leaves(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[LeaveStatus] = None,
        leave_type_id: Optional[uuid.UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> PaginatedResponse:
        query = select(Leave).options(*_leave_options()).order_by(Leave.start_date.desc())
        query = apply_filters(
            query,
            Leave,
            {
                "employee_id": employee_id,
                "status": status,
                "leave_type_id": leave_type_id,
                "start_date__from": date_from,
                "end_date__to": date_to,
            },
        )
        return await paginate(db, query, pagination, model=Leave)

    @staticmethod
    async def get_leave(db: AsyncSession, leave_id: uuid.UUID) -> Leave:
        result = await db.execute(
            select(Leave)
            .where(Leave.id == leave_id)
            .options(*_leave_options())
            .execution_options(populate_existing=True),
        )
        leave = result.scalars().first()
        if leave is None:
            raise NotFoundException("Leave", str(leave_id))
        return leave

    @staticmethod
    async def update_status(
        db: AsyncSession,
        leave_id: uuid.UUID,
        data: LeaveStatusUpdate,
        *,
        approver_id: uuid.UUID,
    ) -> Leave:
        """Approve or reject a pending leave."""
        leave = await LeaveService.get_leave(db, leave_id)
        if leave.status != LeaveStatus.pending:
            raise ValidationException(
                {"status": [f"Only pending leaves can be reviewed; this one is {leave.status.value}."]},
            )

        old_status = leave.status.value
        leave.status = LeaveStatus(data.status)
        leave.approved_by = approver_id
        leave.approval_date = datetime.now(timezone.utc)
        leave.rejection_reason = data.rejection_reason if data.status == "rejected" else None
        await db.flush()

        await create_audit_entry(
            db,
            action="approve" if data.status == "approved" else "reject",
            entity_type="leave",
            entity_id=leave.id,
            actor_id=approver_id,
            old_values={"status": old_status},
            new_values=data.model_dump(mode="json"),
        )
        return await LeaveService.get_leave(db, leave.id)

    @staticmethod
    async def cancel_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        *,
        employee_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Leave:
        """Owner withdraws a pending or approved leave."""
        leave = await LeaveService.get_leave(db, leave_id)
        if leave.employee_id != employee_id:
            raise ForbiddenException(detail="You can only cancel your own leave requests.")
        if leave.status not in BLOCKING_LEAVE_STATUSES:
            raise ValidationException(
                {"status": [f"A {leave.status.value} leave cannot be cancelled."]},
            )
        old_status = leave.status.value
        leave.status = LeaveStatus.cancelled
        await db.flush()
        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave",
            entity_id=leave.id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": "cancelled"},
        )
        return await LeaveService.get_leave(db, leave.id)

    @staticmethod
    async def delete_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        leave = await LeaveService.get_leave(db, leave_id)
        await db.delete(leave)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="leave",
            entity_id=leave_id,
            actor_id=actor_id,
            old_values={
                "employee_id": str(leave.employee_id),
                "start_date": leave.start_date.isoformat(),
                "end_date": leave.end_date.isoformat(),
                "status": leave.status.value,
            },
        )

    @staticmethod
    async def paid_leave_credits(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start: date,
        end: date,
    ) -> dict[date, Decimal]:
        """Paid-leave credit per date inside [start, end] for approved leaves.

        A date of a paid leave is worth 1 (0.5 for a half day) scaled by the
        allocation-backed share of that leave; the normal-leave share stays
        unaccounted for payroll.
        """
        result = await db.execute(
            select(Leave)
            .join(LeaveType, Leave.leave_type_id == LeaveType.id)
            .where(
                Leave.employee_id == employee_id,
                Leave.status == LeaveStatus.approved,
                LeaveType.is_paid.is_(True),
                Leave.start_date <= end,
                Leave.end_date >= start,
            ),
        )
        credits: dict[date, Decimal] = {}
        for leave in result.scalars().all():
            whole = Decimal(leave.total_days) or Decimal("1")
            paid_share = LeaveService._booked(leave, "from_allocation") / whole
            per_day = paid_share * (HALF if leave.is_half_day else Decimal("1"))
            day = max(leave.start_date, start)
            while day <= min(leave.end_date, end):
                credits[day] = credits.get(day, Decimal("0")) + per_day
                day += timedelta(days=1)
        return credits
