"""Notice board service layer."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.common.audit import create_audit_entry
from hrms.common.constants import NoticePriority, NoticeStatus
from hrms.common.exceptions import NotFoundException
from hrms.common.filters import apply_filters, apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.notices.models import Notice
from hrms.notices.schemas import NoticeCreate, NoticeUpdate

logger = logging.getLogger(__name__)


class NoticeService:

    @staticmethod
    async def list_notices(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        status: Optional[NoticeStatus] = NoticeStatus.published,
        category: Optional[str] = None,
        priority: Optional[NoticePriority] = None,
        search: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PaginatedResponse:
        """Active, unexpired notices; pinned first, newest first."""
        now = now or datetime.now(timezone.utc)
        query = (
            select(Notice)
            .options(selectinload(Notice.author))
            .where(
                Notice.is_active.is_(True),
                or_(Notice.expiry_date.is_(None), Notice.expiry_date > now),
            )
            .order_by(Notice.is_pinned.desc(), Notice.created_at.desc())
        )
        query = apply_filters(
            query, Notice, {"status": status, "category": category, "priority": priority},
        )
        query = apply_search(query, Notice, search, ["title", "content"])
        return await paginate(db, query, pagination, model=Notice)

    @staticmethod
    async def get_notice(db: AsyncSession, notice_id: uuid.UUID) -> Notice:
        result = await db.execute(
            select(Notice)
            .where(Notice.id == notice_id)
            .options(selectinload(Notice.author))
            .execution_options(populate_existing=True),
        )
        notice = result.scalars().first()
        if notice is None:
            raise NotFoundException("Notice", str(notice_id))
        return notice

    @staticmethod
    async def create_notice(
        db: AsyncSession,
        data: NoticeCreate,
        *,
        author_id: uuid.UUID,
    ) -> Notice:
        notice = Notice(author_id=author_id, is_active=True, **data.model_dump())
        db.add(notice)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="notice",
            entity_id=notice.id,
            actor_id=author_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Notice %s created (%s)", notice.id, notice.status.value)
        return await NoticeService.get_notice(db, notice.id)

    @staticmethod
    async def update_notice(
        db: AsyncSession,
        notice_id: uuid.UUID,
        data: NoticeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Notice:
        notice = await NoticeService.get_notice(db, notice_id)
        updates = data.model_dump(exclude_unset=True)
        old = jsonable_encoder({k: getattr(notice, k) for k in updates})
        for field, value in updates.items():
            setattr(notice, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="notice",
            entity_id=notice.id,
            actor_id=actor_id,
            old_values=old,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return await NoticeService.get_notice(db, notice.id)

    @staticmethod
    async def delete_notice(
        db: AsyncSession,
        notice_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        notice = await NoticeService.get_notice(db, notice_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="notice",
            entity_id=notice.id,
            actor_id=actor_id,
            old_values={"title": notice.title},
        )
        await db.delete(notice)
        await db.flush()
