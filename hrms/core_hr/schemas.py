"""Core HR Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Out / *Detail     → response bodies (read)
  - *Brief / *ListItem → compact read representations
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from hrms.common.constants import GenderType, PaymentFrequency, UserStatus


# ═════════════════════════════════════════════════════════════════════
# Shared / embedded
# ═════════════════════════════════════════════════════════════════════


class EmergencyContactSchema(BaseModel):
    """Emergency contact block (stored as JSONB)."""

    name: Optional[str] = None
    relationship: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class BankDetailsSchema(BaseModel):
    """Bank account block (stored as JSONB)."""

    bank_name: Optional[str] = None
    account_name: Optional[str] = None
    account_number: Optional[str] = None
    routing_code: Optional[str] = None


class RoleBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    display_name: str
    level: int


class DepartmentBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


class DesignationBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str


class EmployeeUserBrief(BaseModel):
    """Login-account fields shown alongside an employee."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    gender: Optional[GenderType] = None
    position: Optional[str] = None
    profile_picture: Optional[str] = None
    status: UserStatus
    role: Optional[RoleBrief] = None
    department: Optional[DepartmentBrief] = None


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None


class DepartmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    employee_count: int = 0
    created_at: datetime
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Designation
# ═════════════════════════════════════════════════════════════════════


class DesignationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    is_active: bool = True


class DesignationUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None


class DesignationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    department: Optional[DepartmentBrief] = None
    is_active: bool
    created_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(BaseModel):
    """Creates the login account and the HR profile together."""

    # Account
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    gender: Optional[GenderType] = None
    phone: Optional[str] = Field(None, max_length=30)
    position: Optional[str] = Field(None, max_length=150)
    work_timezone: str = "UTC"
    role_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None

    # HR profile
    employee_code: str = Field(..., min_length=1, max_length=50)
    designation_id: Optional[uuid.UUID] = None
    joining_date: date
    date_of_birth: Optional[date] = None
    emergency_contact: Optional[EmergencyContactSchema] = None
    bank_details: Optional[BankDetailsSchema] = None
    tax_information: Optional[dict[str, Any]] = None
    salary_amount: Optional[Decimal] = Field(None, ge=0)
    salary_currency: str = Field("USD", min_length=3, max_length=3)
    payment_frequency: PaymentFrequency = PaymentFrequency.monthly


class EmployeeUpdate(BaseModel):
    """Partial update; account fields are written through to the user."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    gender: Optional[GenderType] = None
    phone: Optional[str] = Field(None, max_length=30)
    position: Optional[str] = Field(None, max_length=150)
    work_timezone: Optional[str] = None
    role_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    status: Optional[UserStatus] = None

    employee_code: Optional[str] = Field(None, min_length=1, max_length=50)
    designation_id: Optional[uuid.UUID] = None
    joining_date: Optional[date] = None
    date_of_birth: Optional[date] = None
    emergency_contact: Optional[EmergencyContactSchema] = None
    bank_details: Optional[BankDetailsSchema] = None
    tax_information: Optional[dict[str, Any]] = None
    salary_amount: Optional[Decimal] = Field(None, ge=0)
    salary_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    payment_frequency: Optional[PaymentFrequency] = None
    is_active: Optional[bool] = None


USER_FIELDS = frozenset({
    "first_name", "last_name", "gender", "phone", "position",
    "work_timezone", "role_id", "department_id", "status",
})


class EmployeeListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str
    joining_date: date
    is_active: bool
    user: EmployeeUserBrief
    designation: Optional[DesignationBrief] = None


class EmployeeDetail(EmployeeListItem):
    date_of_birth: Optional[date] = None
    emergency_contact: Optional[dict] = None
    bank_details: Optional[dict] = None
    tax_information: Optional[dict] = None
    documents: list[dict] = Field(default_factory=list)
    salary_amount: Optional[Decimal] = None
    salary_currency: str = "USD"
    payment_frequency: PaymentFrequency
    created_at: datetime
    updated_at: datetime


class BirthdayItem(BaseModel):
    employee_id: uuid.UUID
    full_name: str
    date_of_birth: date
    next_birthday: date
    days_until: int
    profile_picture: Optional[str] = None
