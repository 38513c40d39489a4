"""Company settings Pydantic v2 schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from hrms.common.constants import PAYROLL_COMPONENT_CODES

DEFAULT_CEO_TALK = (
    "Thank you for reaching out. Your success is our priority. "
    "We will get back to you soon."
)

RecipientKind = Literal["to", "cc", "bcc"]


class AddressSchema(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None


class ContactSchema(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    fax: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _lower(cls, v):
        return v.lower() if v else v


class PayrollComponent(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=30)
    percent: Decimal = Field(..., ge=0, le=100)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _normalise_code(cls, v: str) -> str:
        return v.strip().lower()


class PayrollComponentPatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    percent: Optional[Decimal] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None


class PayrollComponentsReplace(BaseModel):
    components: list[PayrollComponent]

    @field_validator("components")
    @classmethod
    def _check_codes(cls, v: list[PayrollComponent]) -> list[PayrollComponent]:
        seen: set[str] = set()
        for idx, comp in enumerate(v, start=1):
            if comp.code not in PAYROLL_COMPONENT_CODES:
                raise ValueError(
                    f"Row {idx}: code must be one of: {', '.join(PAYROLL_COMPONENT_CODES)}",
                )
            if comp.code in seen:
                raise ValueError(f"Duplicate code: {comp.code}")
            seen.add(comp.code)
        return v


class CompanyInitialize(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    domain: str = Field(..., min_length=1, max_length=200)
    logo: Optional[str] = None
    description: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    address: AddressSchema = Field(default_factory=AddressSchema)
    contact_info: ContactSchema = Field(default_factory=ContactSchema)
    ceo_name: str = Field(..., min_length=1, max_length=150)
    ceo_talk: Optional[str] = None
    grace_period: int = Field(15, ge=0, le=240)
    leave_allocations: dict[str, int] = Field(
        default_factory=lambda: {"casual": 0, "medical": 0, "paid": 0},
    )

    @field_validator("domain")
    @classmethod
    def _lower_domain(cls, v: str) -> str:
        return v.strip().lower()


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    domain: Optional[str] = Field(None, min_length=1, max_length=200)
    logo: Optional[str] = None
    description: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    ceo_name: Optional[str] = Field(None, min_length=1, max_length=150)
    grace_period: Optional[int] = Field(None, ge=0, le=240)

    @field_validator("domain")
    @classmethod
    def _lower_domain(cls, v):
        return v.strip().lower() if v else v


class CeoTalkUpdate(BaseModel):
    message: str = Field(..., min_length=1)


class SenderUpdate(BaseModel):
    user_id: Optional[uuid.UUID] = None
    name: Optional[str] = Field(None, max_length=150)
    email: Optional[EmailStr] = None


class RecipientCreate(BaseModel):
    type: RecipientKind
    email: EmailStr
    name: Optional[str] = Field(None, max_length=150)


class LeaveAllocationUpdate(BaseModel):
    leave_type: str = Field(..., min_length=1, max_length=50)
    allocation: int = Field(..., ge=0, le=366)


class CompanyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    domain: str
    logo: Optional[str] = None
    description: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    address: dict = Field(default_factory=dict)
    contact_info: dict = Field(default_factory=dict)
    ceo_name: Optional[str] = None
    ceo_talk: Optional[str] = None
    email_sender: dict = Field(default_factory=dict)
    email_recipients: dict = Field(default_factory=dict)
    grace_period: int
    leave_allocations: dict = Field(default_factory=dict)
    payroll_components: list[dict] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
