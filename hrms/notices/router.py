"""Notices router.

Routes:
    /notices         — List (published, unexpired, pinned first), create
    /notices/{id}    — Get, update, delete
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.auth.models import User
from hrms.common.constants import NoticePriority, NoticeStatus
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.database import get_db
from hrms.notices.schemas import NoticeCreate, NoticeOut, NoticeUpdate
from hrms.notices.service import NoticeService

router = APIRouter(prefix="", tags=["notices"])


def _out(notice) -> dict:
    return NoticeOut.model_validate(notice).model_dump(mode="json")


@router.get("")
async def list_notices(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    status: NoticeStatus = Query(NoticeStatus.published),
    category: Optional[str] = Query(None),
    priority: Optional[NoticePriority] = Query(None),
    search: Optional[str] = Query(None),
):
    result = await NoticeService.list_notices(
        db,
        pagination,
        status=status,
        category=category,
        priority=priority,
        search=search,
    )
    return result.to_envelope(_out)


@router.get("/{notice_id}")
async def get_notice(
    notice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(_out(await NoticeService.get_notice(db, notice_id)))


@router.post("", status_code=201)
async def create_notice(
    body: NoticeCreate,
    db: AsyncSession = Depends(get_db),
    author: User = Depends(require_permission("notices:manage")),
):
    notice = await NoticeService.create_notice(db, body, author_id=author.id)
    return success(_out(notice), message="Notice created")


@router.put("/{notice_id}")
async def update_notice(
    notice_id: uuid.UUID,
    body: NoticeUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("notices:manage")),
):
    notice = await NoticeService.update_notice(db, notice_id, body, actor_id=actor.id)
    return success(_out(notice), message="Notice updated")


@router.delete("/{notice_id}")
async def delete_notice(
    notice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("notices:manage")),
):
    await NoticeService.delete_notice(db, notice_id, actor_id=actor.id)
    return success(message="Notice deleted")
