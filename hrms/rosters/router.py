"""Rosters router — weekly shift plans.

Routes:
    /rosters/week/{year}/{week}     — All rosters of an ISO week
    /rosters/stats/{year}/{week}    — Headcount, working days and hours
    /rosters/employee/{id}          — One employee's weeks (optional date range)
    /rosters                        — Add one roster
    /rosters/bulk                   — Add the same week for many employees
    /rosters/copy                   — Copy a week into another week
    /rosters/{id}                   — Update, delete
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.auth.models import User
from hrms.common.responses import success
from hrms.database import get_db
from hrms.rosters.schemas import (
    RosterBulkCreate,
    RosterCopyRequest,
    RosterCreate,
    RosterOut,
    RosterUpdate,
)
from hrms.rosters.service import RosterService, week_dates

router = APIRouter(prefix="", tags=["rosters"])

_manage = require_permission("rosters:manage")


def _out(roster) -> dict:
    return RosterOut.model_validate(roster).model_dump(mode="json")


# ── GET /rosters/week/{year}/{week_number} ──────────────────────────

@router.get("/week/{year}/{week_number}")
async def week_roster(
    year: int = Path(..., ge=2000, le=2100),
    week_number: int = Path(..., ge=1, le=53),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    rosters = await RosterService.week_roster(db, year, week_number)
    start, end = week_dates(year, week_number)
    return success(
        [_out(r) for r in rosters],
        week_info={
            "year": year,
            "week_number": week_number,
            "week_start_date": start.isoformat(),
            "week_end_date": end.isoformat(),
        },
    )


@router.get("/stats/{year}/{week_number}")
async def roster_stats(
    year: int = Path(..., ge=2000, le=2100),
    week_number: int = Path(..., ge=1, le=53),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    stats = await RosterService.stats(db, year, week_number)
    return success({
        **stats,
        "week_start_date": stats["week_start_date"].isoformat(),
        "week_end_date": stats["week_end_date"].isoformat(),
        "total_hours": float(stats["total_hours"]),
        "average_hours": float(stats["average_hours"]),
    })


@router.get("/employee/{employee_id}")
async def employee_roster(
    employee_id: uuid.UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    rosters = await RosterService.employee_roster(
        db, employee_id, start_date=start_date, end_date=end_date,
    )
    return success([_out(r) for r in rosters])


# ── Writes ──────────────────────────────────────────────────────────

@router.post("", status_code=201)
async def add_roster(
    body: RosterCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    roster = await RosterService.add_roster(db, body, actor_id=actor.id)
    return success(_out(roster), message="Roster created successfully")


@router.post("/bulk", status_code=201)
async def bulk_add_roster(
    body: RosterBulkCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    rosters = await RosterService.bulk_add(db, body, actor_id=actor.id)
    return success(
        [_out(r) for r in rosters],
        message=f"Successfully created {len(rosters)} rosters",
        count=len(rosters),
    )


@router.post("/copy", status_code=201)
async def copy_roster_week(
    body: RosterCopyRequest,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    rosters = await RosterService.copy_week(db, body, actor_id=actor.id)
    return success(
        [_out(r) for r in rosters],
        message=f"Successfully copied {len(rosters)} rosters",
        count=len(rosters),
    )


@router.put("/{roster_id}")
async def update_roster(
    roster_id: uuid.UUID,
    body: RosterUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    roster = await RosterService.update_roster(db, roster_id, body, actor_id=actor.id)
    return success(_out(roster), message="Roster updated successfully")


@router.delete("/{roster_id}")
async def delete_roster(
    roster_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    await RosterService.delete_roster(db, roster_id, actor_id=actor.id)
    return success(message="Roster deleted successfully")
