"""Leave Pydantic v2 schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hrms.common.constants import LeaveStatus


# ── Leave types ─────────────────────────────────────────────────────

class LeaveTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    leave_count: int = Field(0, ge=0, le=366)
    is_paid: bool = True
    is_active: bool = True


class LeaveTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    leave_count: Optional[int] = Field(None, ge=0, le=366)
    is_paid: Optional[bool] = None
    is_active: Optional[bool] = None


class LeaveTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    leave_count: int
    is_paid: bool
    is_active: bool


# ── Leave requests ──────────────────────────────────────────────────

class AttachmentSchema(BaseModel):
    name: str
    url: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None


class LeaveCreate(BaseModel):
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    is_half_day: bool = False
    reason: str = Field(..., min_length=1)
    attachments: list[AttachmentSchema] = Field(default_factory=list, max_length=5)
    # Only honoured for callers holding leave:manage
    employee_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        if self.is_half_day and self.start_date != self.end_date:
            raise ValueError("a half-day leave must start and end on the same day")
        return self


class LeaveStatusUpdate(BaseModel):
    status: Literal["approved", "rejected"]
    rejection_reason: Optional[str] = None

    @model_validator(mode="after")
    def _reason_on_reject(self):
        if self.status == "rejected" and not (self.rejection_reason or "").strip():
            raise ValueError("rejection_reason is required when rejecting")
        return self


class EmployeeBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str


class LeaveOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    employee: Optional[EmployeeBrief] = None
    leave_type: LeaveTypeOut
    start_date: date
    end_date: date
    total_days: Decimal
    is_half_day: bool
    reason: str
    status: LeaveStatus
    breakdown: Optional[dict] = None
    approved_by: Optional[uuid.UUID] = None
    approval_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    attachments: list[dict] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class LeaveBalanceItem(BaseModel):
    leave_type_id: uuid.UUID
    leave_type: str
    is_paid: bool
    allocated: Decimal
    used: Decimal
    pending: Decimal
    remaining: Decimal


class LeaveBalance(BaseModel):
    employee_id: uuid.UUID
    year: int
    balances: list[LeaveBalanceItem]
    normal_leave_used: Decimal
