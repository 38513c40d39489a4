"""Assignments router — supervisor/subordinate links and their history.

Routes:
    /assignments                            — Assign subordinates
    /assignments/unassign                   — End active assignments
    /assignments/transfer                   — Move subordinates to another supervisor
    /assignments/assigned                   — Caller's own subordinates
    /assignments/supervisors/{id}/assigned  — Subordinates of a supervisor
    /assignments/available                  — Users that can still be assigned
    /assignments/history                    — Paginated change log
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.assignments.schemas import (
    AssignableUser,
    AssignmentHistoryOut,
    AssignmentOut,
    AssignRequest,
    TransferRequest,
    UnassignRequest,
)
from hrms.assignments.service import AssignmentService
from hrms.auth.dependencies import require_permission, require_role_level
from hrms.auth.models import User
from hrms.common.audit import client_meta
from hrms.common.constants import MAX_HIERARCHY_LEVEL, AssignmentAction
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.database import get_db

router = APIRouter(prefix="", tags=["assignments"])

# Roles on the deepest level have nobody below them to supervise
_can_supervise = require_role_level(MAX_HIERARCHY_LEVEL - 1)


# ── POST /assignments — Assign subordinates ─────────────────────────

@router.post("", status_code=201)
async def assign(
    body: AssignRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("assignments:manage")),
):
    ip, user_agent = client_meta(request)
    created = await AssignmentService.assign(
        db,
        body.supervisor_id,
        body.subordinate_ids,
        actor_id=actor.id,
        notes=body.notes,
        reason=body.reason,
        ip_address=ip,
        user_agent=user_agent,
    )
    return success(
        [AssignmentOut.model_validate(a) for a in created],
        message=f"Assigned {len(created)} employee(s)",
    )


# ── POST /assignments/unassign ──────────────────────────────────────

@router.post("/unassign")
async def unassign(
    body: UnassignRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("assignments:manage")),
):
    ip, user_agent = client_meta(request)
    ended = await AssignmentService.unassign(
        db,
        body.subordinate_ids,
        supervisor_id=body.supervisor_id,
        actor_id=actor.id,
        reason=body.reason,
        ip_address=ip,
        user_agent=user_agent,
    )
    return success({"ended": ended}, message=f"Unassigned {ended} employee(s)")


# ── POST /assignments/transfer ──────────────────────────────────────

@router.post("/transfer")
async def transfer(
    body: TransferRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("assignments:manage")),
):
    ip, user_agent = client_meta(request)
    moved = await AssignmentService.transfer(
        db,
        body.subordinate_ids,
        body.to_supervisor_id,
        actor_id=actor.id,
        reason=body.reason,
        ip_address=ip,
        user_agent=user_agent,
    )
    return success(
        [AssignmentOut.model_validate(a) for a in moved],
        message=f"Transferred {len(moved)} employee(s)",
    )


# ── GET /assignments/assigned — My subordinates ─────────────────────

@router.get("/assigned")
async def my_assigned(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_can_supervise),
):
    assignments = await AssignmentService.list_assigned(db, user.id)
    return success([AssignmentOut.model_validate(a) for a in assignments])


# ── GET /assignments/supervisors/{id}/assigned ──────────────────────

@router.get("/supervisors/{supervisor_id}/assigned")
async def supervisor_assigned(
    supervisor_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("assignments:manage")),
):
    assignments = await AssignmentService.list_assigned(db, supervisor_id)
    return success([AssignmentOut.model_validate(a) for a in assignments])


# ── GET /assignments/available ──────────────────────────────────────

@router.get("/available")
async def available(
    supervisor_id: Optional[uuid.UUID] = Query(None, description="Defaults to the caller"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(_can_supervise),
):
    users = await AssignmentService.list_available(db, supervisor_id or user.id)
    return success([AssignableUser.model_validate(u) for u in users])


# ── GET /assignments/history ────────────────────────────────────────

@router.get("/history")
async def history(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("assignments:manage")),
    pagination: PaginationParams = Depends(),
    supervisor_id: Optional[uuid.UUID] = Query(None),
    subordinate_id: Optional[uuid.UUID] = Query(None),
    action: Optional[AssignmentAction] = Query(None),
):
    result = await AssignmentService.history(
        db,
        pagination,
        supervisor_id=supervisor_id,
        subordinate_id=subordinate_id,
        action=action,
    )
    return result.to_envelope(
        lambda h: AssignmentHistoryOut.model_validate(h).model_dump(mode="json"),
    )
