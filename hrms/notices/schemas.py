"""Notice board Pydantic v2 schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.common.constants import NoticePriority, NoticeStatus


class NoticeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    status: NoticeStatus = NoticeStatus.draft
    category: str = Field("general", min_length=1, max_length=60)
    priority: NoticePriority = NoticePriority.normal
    is_pinned: bool = False
    expiry_date: Optional[datetime] = None


class NoticeUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    status: Optional[NoticeStatus] = None
    category: Optional[str] = Field(None, min_length=1, max_length=60)
    priority: Optional[NoticePriority] = None
    is_pinned: Optional[bool] = None
    expiry_date: Optional[datetime] = None
    is_active: Optional[bool] = None


class NoticeAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: str
    email: str


class NoticeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    content: str
    author_id: Optional[uuid.UUID] = None
    author: Optional[NoticeAuthor] = None
    status: NoticeStatus
    category: str
    priority: NoticePriority
    is_pinned: bool
    expiry_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
