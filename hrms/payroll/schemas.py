"""Payroll and salary-deduction-rule Pydantic v2 schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hrms.common.constants import CalculationMode, PaymentMethod, PaymentStatus


# ── Deduction rules ─────────────────────────────────────────────────

class TaxSlab(BaseModel):
    min: Decimal = Field(Decimal("0"), ge=0)
    max: Optional[Decimal] = None
    percent: Optional[Decimal] = Field(None, ge=0, le=100)
    amount: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def _check(self):
        if self.max is not None and self.max < self.min:
            raise ValueError("slab max must be >= min")
        if self.percent is None and self.amount is None:
            raise ValueError("a slab needs either percent or amount")
        return self


class DeductionRuleCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=150)
    code: str = Field(..., min_length=1, max_length=60)
    is_applicable: bool = True
    calculation_mode: Optional[CalculationMode] = None
    amount: Decimal = Field(Decimal("0"), ge=0)
    tax_slab: list[TaxSlab] = Field(default_factory=list)
    active: bool = True
    # Shorthand: {"percent": 10, "base": "gross"} → percent_of_gross, amount=10
    percent: Optional[Decimal] = Field(None, ge=0)
    base: Optional[Literal["basic", "gross"]] = None

    @model_validator(mode="after")
    def _resolve(self):
        self.code = self.code.strip().lower()
        if self.percent is not None:
            self.calculation_mode = (
                CalculationMode.percent_of_gross
                if self.base == "gross"
                else CalculationMode.percent_of_basic
            )
            self.amount = self.percent
        if self.calculation_mode is None:
            self.calculation_mode = CalculationMode.fixed
        if self.calculation_mode == CalculationMode.tax_slab and not self.tax_slab:
            raise ValueError("tax_slab mode requires at least one slab")
        if not self.name:
            self.name = self.code.upper()
        return self


class DeductionRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    code: Optional[str] = Field(None, min_length=1, max_length=60)
    is_applicable: Optional[bool] = None
    calculation_mode: Optional[CalculationMode] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    tax_slab: Optional[list[TaxSlab]] = None
    active: Optional[bool] = None


class PercentRuleUpsert(BaseModel):
    type: str = Field(..., min_length=1, max_length=60)
    percent: Decimal = Field(..., ge=0)
    base: Literal["basic", "gross"] = "basic"
    code: Optional[str] = Field(None, max_length=60)
    name: Optional[str] = Field(None, max_length=150)
    active: bool = True


class PercentRulePatch(BaseModel):
    percent: Optional[Decimal] = Field(None, ge=0)
    base: Optional[Literal["basic", "gross"]] = None
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    active: Optional[bool] = None


class DeductionRuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: str
    is_applicable: bool
    calculation_mode: CalculationMode
    amount: Decimal
    tax_slab: list[dict] = Field(default_factory=list)
    active: bool
    created_at: datetime
    updated_at: datetime


# ── Payroll ─────────────────────────────────────────────────────────

class PayLine(BaseModel):
    code: str = Field(..., min_length=1, max_length=60)
    name: str = Field(..., min_length=1, max_length=150)
    amount: Decimal = Field(..., ge=0)
    mode: Optional[str] = None


class PayrollCreate(BaseModel):
    """Manual payroll; totals are computed from the given figures."""

    employee_id: uuid.UUID
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    gross_salary: Decimal = Field(Decimal("0"), ge=0)
    basic_salary: Decimal = Field(Decimal("0"), ge=0)
    hra: Decimal = Field(Decimal("0"), ge=0)
    allowances: list[PayLine] = Field(default_factory=list)
    bonus: Decimal = Field(Decimal("0"), ge=0)
    overtime_pay: Decimal = Field(Decimal("0"), ge=0)
    deductions: list[PayLine] = Field(default_factory=list)
    working_days: Decimal = Field(Decimal("0"), ge=0)
    present_days: Decimal = Field(Decimal("0"), ge=0)
    paid_leave_days: Decimal = Field(Decimal("0"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.bank_transfer
    notes: Optional[str] = None


class PayrollUpdate(BaseModel):
    gross_salary: Optional[Decimal] = Field(None, ge=0)
    basic_salary: Optional[Decimal] = Field(None, ge=0)
    hra: Optional[Decimal] = Field(None, ge=0)
    allowances: Optional[list[PayLine]] = None
    bonus: Optional[Decimal] = Field(None, ge=0)
    overtime_pay: Optional[Decimal] = Field(None, ge=0)
    deductions: Optional[list[PayLine]] = None
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = Field(None, max_length=120)
    payslip_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None


class PayrollStatusUpdate(BaseModel):
    payment_status: PaymentStatus
    payment_date: Optional[date] = None
    transaction_id: Optional[str] = Field(None, max_length=120)


class PayrollGenerateRequest(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    overwrite: bool = False


class GenerateError(BaseModel):
    employee_id: uuid.UUID
    employee_code: Optional[str] = None
    error: str


class GenerateResult(BaseModel):
    month: int
    year: int
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[GenerateError] = Field(default_factory=list)


class PayrollEmployeeBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str


class PayrollOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    employee: Optional[PayrollEmployeeBrief] = None
    month: int
    year: int
    gross_salary: Decimal
    basic_salary: Decimal
    hra: Decimal
    allowances: list[dict] = Field(default_factory=list)
    bonus: Decimal
    overtime_pay: Decimal
    deductions: list[dict] = Field(default_factory=list)
    working_days: Decimal
    present_days: Decimal
    paid_leave_days: Decimal
    lop_days: Decimal
    lop_amount: Decimal
    total_earnings: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    payment_status: PaymentStatus
    payment_date: Optional[date] = None
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    payslip_url: Optional[str] = None
    notes: Optional[str] = None
    generated_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
