"""Assignment Pydantic v2 schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hrms.common.constants import AssignmentAction, AssignmentStatus


class AssignRequest(BaseModel):
    supervisor_id: uuid.UUID
    subordinate_ids: list[uuid.UUID] = Field(..., min_length=1)
    notes: Optional[str] = None
    reason: Optional[str] = None


class UnassignRequest(BaseModel):
    subordinate_ids: list[uuid.UUID] = Field(..., min_length=1)
    supervisor_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None


class TransferRequest(BaseModel):
    subordinate_ids: list[uuid.UUID] = Field(..., min_length=1)
    to_supervisor_id: uuid.UUID
    reason: Optional[str] = None


class RoleBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    level: int


class AssignableUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    full_name: str
    position: Optional[str] = None
    role: Optional[RoleBrief] = None


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    status: AssignmentStatus
    notes: Optional[str] = None
    assigned_at: datetime
    ended_at: Optional[datetime] = None
    supervisor: AssignableUser
    subordinate: AssignableUser


class AssignmentHistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    assignment_id: Optional[uuid.UUID] = None
    supervisor_id: uuid.UUID
    subordinate_id: uuid.UUID
    action: AssignmentAction
    performed_by: Optional[uuid.UUID] = None
    previous_data: Optional[dict] = None
    new_data: Optional[dict] = None
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    @field_validator("ip_address", mode="before")
    @classmethod
    def _ip_to_str(cls, value):
        # asyncpg hands INET back as an ipaddress object
        return str(value) if value is not None else None
