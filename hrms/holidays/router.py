"""Holidays router.

Routes:
    /holidays        — List (by date; year and type filters), create
    /holidays/{id}   — Get, update, delete
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.auth.models import User
from hrms.common.constants import HolidayType
from hrms.common.responses import success
from hrms.database import get_db
from hrms.holidays.schemas import HolidayCreate, HolidayOut, HolidayUpdate
from hrms.holidays.service import HolidayService

router = APIRouter(prefix="", tags=["holidays"])


def _out(holiday) -> dict:
    return HolidayOut.model_validate(holiday).model_dump(mode="json")


@router.get("")
async def list_holidays(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
    year: Optional[int] = Query(None, ge=1900, le=2200),
    type: Optional[HolidayType] = Query(None),
):
    holidays = await HolidayService.list_holidays(db, year=year, type=type)
    return success([_out(h) for h in holidays], count=len(holidays))


@router.get("/{holiday_id}")
async def get_holiday(
    holiday_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(_out(await HolidayService.get_holiday(db, holiday_id)))


@router.post("", status_code=201)
async def create_holiday(
    body: HolidayCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("holidays:manage")),
):
    holiday = await HolidayService.create_holiday(db, body, actor_id=actor.id)
    return success(_out(holiday), message="Holiday created")


@router.put("/{holiday_id}")
async def update_holiday(
    holiday_id: uuid.UUID,
    body: HolidayUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("holidays:manage")),
):
    holiday = await HolidayService.update_holiday(db, holiday_id, body, actor_id=actor.id)
    return success(_out(holiday), message="Holiday updated")


@router.delete("/{holiday_id}")
async def delete_holiday(
    holiday_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("holidays:manage")),
):
    await HolidayService.delete_holiday(db, holiday_id, actor_id=actor.id)
    return success(message="Holiday deleted")
