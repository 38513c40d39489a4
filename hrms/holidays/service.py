"""Holiday service layer — the company holiday calendar.

A holiday closes the office for the departments in ``applies_to`` (or for
everyone with ``["all"]``). Recurring holidays repeat on the same month and
day every year. Payroll drops observed holidays from the working days of a
month.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Iterable, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.audit import create_audit_entry
from hrms.common.constants import HolidayType
from hrms.common.exceptions import DuplicateException, NotFoundException
from hrms.holidays.models import Holiday
from hrms.holidays.schemas import ALL_DEPARTMENTS, HolidayCreate, HolidayUpdate

logger = logging.getLogger(__name__)


def applies_to_department(holiday: Holiday, department: Optional[str]) -> bool:
    scope = holiday.applies_to or [ALL_DEPARTMENTS]
    if ALL_DEPARTMENTS in scope:
        return True
    return department is not None and department.strip().lower() in scope


def observed_dates(
    holidays: Iterable[Holiday],
    start: dt.date,
    end: dt.date,
    department: Optional[str] = None,
) -> set[dt.date]:
    """Dates in [start, end] on which *department* observes a holiday."""
    dates: set[dt.date] = set()
    for holiday in holidays:
        if not applies_to_department(holiday, department):
            continue
        if not holiday.is_recurring:
            if start <= holiday.date <= end:
                dates.add(holiday.date)
            continue
        for year in range(start.year, end.year + 1):
            try:
                day = holiday.date.replace(year=year)
            except ValueError:
                # 29 February outside a leap year
                continue
            if start <= day <= end and day >= holiday.date:
                dates.add(day)
    return dates


class HolidayService:

    @staticmethod
    async def list_holidays(
        db: AsyncSession,
        *,
        year: Optional[int] = None,
        type: Optional[HolidayType] = None,
    ) -> list[Holiday]:
        """Holidays by date; a *year* filter keeps recurring holidays too."""
        query = select(Holiday).order_by(Holiday.date, Holiday.name)
        if year is not None:
            query = query.where(
                or_(
                    Holiday.year == year,
                    (Holiday.is_recurring.is_(True)) & (Holiday.year <= year),
                ),
            )
        if type is not None:
            query = query.where(Holiday.type == type)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def between(db: AsyncSession, start: dt.date, end: dt.date) -> list[Holiday]:
        """Every holiday that can fall inside [start, end]."""
        result = await db.execute(
            select(Holiday).where(
                or_(
                    Holiday.is_recurring.is_(True),
                    Holiday.date.between(start, end),
                ),
            ),
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_holiday(db: AsyncSession, holiday_id: uuid.UUID) -> Holiday:
        result = await db.execute(
            select(Holiday)
            .where(Holiday.id == holiday_id)
            .execution_options(populate_existing=True),
        )
        holiday = result.scalars().first()
        if holiday is None:
            raise NotFoundException("Holiday", str(holiday_id))
        return holiday

    @staticmethod
    async def _check_unique(
        db: AsyncSession,
        name: str,
        day: dt.date,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Holiday.id).where(Holiday.date == day, Holiday.name == name)
        if exclude_id is not None:
            query = query.where(Holiday.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise DuplicateException("name", name)

    @staticmethod
    async def create_holiday(
        db: AsyncSession,
        data: HolidayCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Holiday:
        await HolidayService._check_unique(db, data.name, data.date)
        holiday = Holiday(year=data.date.year, created_by=actor_id, **data.model_dump())
        db.add(holiday)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Holiday %s on %s created", holiday.name, holiday.date)
        return await HolidayService.get_holiday(db, holiday.id)

    @staticmethod
    async def update_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        data: HolidayUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Holiday:
        holiday = await HolidayService.get_holiday(db, holiday_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in updates or "date" in updates:
            await HolidayService._check_unique(
                db,
                updates.get("name", holiday.name),
                updates.get("date", holiday.date),
                exclude_id=holiday.id,
            )
        old = jsonable_encoder({k: getattr(holiday, k) for k in updates})
        for field, value in updates.items():
            setattr(holiday, field, value)
        holiday.year = holiday.date.year
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            old_values=old,
            new_values=jsonable_encoder(updates),
        )
        return await HolidayService.get_holiday(db, holiday.id)

    @staticmethod
    async def delete_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        holiday = await HolidayService.get_holiday(db, holiday_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            old_values={"name": holiday.name, "date": holiday.date.isoformat()},
        )
        await db.delete(holiday)
        await db.flush()
