"""Attendance Pydantic v2 schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hrms.common.constants import AttendanceStatus


class ClockRequest(BaseModel):
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class AttendanceCreate(BaseModel):
    employee_id: uuid.UUID
    date: date
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    status: AttendanceStatus = AttendanceStatus.present
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_times(self):
        if self.clock_in and self.clock_out and self.clock_out < self.clock_in:
            raise ValueError("clock_out must be after clock_in")
        return self


class AttendanceUpdate(BaseModel):
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    status: Optional[AttendanceStatus] = None
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class BreakOut(BaseModel):
    start: datetime
    end: Optional[datetime] = None
    duration_seconds: int = 0


class EmployeeBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str


class AttendanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    date: date
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    total_hours: Decimal
    status: AttendanceStatus
    location: Optional[str] = None
    breaks: list[BreakOut] = Field(default_factory=list)
    total_break_seconds: int = 0
    on_break: bool = False
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
