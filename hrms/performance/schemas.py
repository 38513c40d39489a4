"""Performance review Pydantic v2 schemas."""

import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hrms.common.constants import GoalStatus


class Goal(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    target: Optional[str] = None
    achieved: Optional[str] = None
    status: GoalStatus = GoalStatus.not_started


class Ratings(BaseModel):
    """Scores from 1 (poor) to 5 (excellent); unrated areas stay empty."""

    communication: Optional[int] = Field(None, ge=1, le=5)
    teamwork: Optional[int] = Field(None, ge=1, le=5)
    problem_solving: Optional[int] = Field(None, ge=1, le=5)
    technical_skills: Optional[int] = Field(None, ge=1, le=5)
    punctuality: Optional[int] = Field(None, ge=1, le=5)
    overall: Optional[int] = Field(None, ge=1, le=5)


class PerformanceCreate(BaseModel):
    employee_id: uuid.UUID
    # Defaults to the caller's employee profile
    reviewer_id: Optional[uuid.UUID] = None
    period_start: dt.date
    period_end: dt.date
    goals: list[Goal] = Field(default_factory=list)
    ratings: Ratings = Field(default_factory=Ratings)
    reviewer_feedback: Optional[str] = None
    employee_feedback: Optional[str] = None
    promotion_recommended: bool = False

    @model_validator(mode="after")
    def _check_period(self) -> "PerformanceCreate":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class PerformanceUpdate(BaseModel):
    reviewer_id: Optional[uuid.UUID] = None
    period_start: Optional[dt.date] = None
    period_end: Optional[dt.date] = None
    goals: Optional[list[Goal]] = None
    ratings: Optional[Ratings] = None
    reviewer_feedback: Optional[str] = None
    employee_feedback: Optional[str] = None
    promotion_recommended: Optional[bool] = None


class EmployeeFeedback(BaseModel):
    employee_feedback: str = Field(..., min_length=1)


class ReviewEmployee(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str


class PerformanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    employee: Optional[ReviewEmployee] = None
    reviewer_id: Optional[uuid.UUID] = None
    reviewer: Optional[ReviewEmployee] = None
    period_start: dt.date
    period_end: dt.date
    goals: list[Goal]
    ratings: Ratings
    reviewer_feedback: Optional[str] = None
    employee_feedback: Optional[str] = None
    promotion_recommended: bool
    created_at: dt.datetime
    updated_at: dt.datetime
