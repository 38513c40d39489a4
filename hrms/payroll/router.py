"""Payroll and salary-deduction-rule routers.

Routes (payroll):
    /payroll                    — List, create (manual)
    /payroll/generate           — Month-end generation for all employees
    /payroll/my                 — Caller's payslips
    /payroll/my/{id}            — One of the caller's payslips
    /payroll/{id}               — Get, update, delete
    /payroll/{id}/status        — Change payment status
    /payroll/{id}/recalculate   — Recompute from attendance and leave

Routes (salary-deduction-rules):
    /salary-deduction-rules              — List, create
    /salary-deduction-rules/percent      — Upsert a percent rule by code
    /salary-deduction-rules/{id}         — Get, update, delete
    /salary-deduction-rules/{id}/percent — Patch a percent rule
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_employee, require_permission
from hrms.auth.models import User
from hrms.common.constants import PaymentStatus
from hrms.common.pagination import PaginationParams
from hrms.common.rate_limit import limiter
from hrms.common.responses import success
from hrms.core_hr.models import Employee
from hrms.database import get_db
from hrms.payroll.schemas import (
    DeductionRuleCreate,
    DeductionRuleOut,
    DeductionRuleUpdate,
    PayrollCreate,
    PayrollGenerateRequest,
    PayrollOut,
    PayrollStatusUpdate,
    PayrollUpdate,
    PercentRulePatch,
    PercentRuleUpsert,
)
from hrms.payroll.service import DeductionRuleService, PayrollService

router = APIRouter(prefix="", tags=["payroll"])
rules_router = APIRouter(prefix="", tags=["salary-deduction-rules"])

_manage = require_permission("payroll:manage")


def _out(payroll) -> dict:
    return PayrollOut.model_validate(payroll).model_dump(mode="json")


def _rule(rule) -> dict:
    return DeductionRuleOut.model_validate(rule).model_dump(mode="json")


# ═════════════════════════════════════════════════════════════════════
# Payroll
# ═════════════════════════════════════════════════════════════════════


@router.get("")
async def list_payrolls(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(_manage),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    payment_status: Optional[PaymentStatus] = Query(None),
):
    result = await PayrollService.list_payrolls(
        db,
        pagination,
        employee_id=employee_id,
        month=month,
        year=year,
        payment_status=payment_status,
    )
    return result.to_envelope(_out)


@router.post("", status_code=201)
async def create_payroll(
    body: PayrollCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    payroll = await PayrollService.create_payroll(db, body, actor_id=actor.id)
    return success(_out(payroll), message="Payroll created")


# ── POST /payroll/generate ──────────────────────────────────────────

@router.post("/generate")
@limiter.limit("5/minute")
async def generate_payroll(
    request: Request,
    body: PayrollGenerateRequest,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    outcome = await PayrollService.generate(
        db, body.month, body.year, overwrite=body.overwrite, actor_id=actor.id,
    )
    return success(
        outcome,
        message=f"Payroll generated for {body.year}-{body.month:02d}",
    )


# ── GET /payroll/my ─────────────────────────────────────────────────

@router.get("/my")
async def my_payrolls(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    pagination: PaginationParams = Depends(),
    year: Optional[int] = Query(None, ge=2000, le=2100),
):
    result = await PayrollService.list_payrolls(db, pagination, employee_id=employee.id, year=year)
    return result.to_envelope(_out)


@router.get("/my/{payroll_id}")
async def my_payroll(
    payroll_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    return success(_out(await PayrollService.get_own_payroll(db, payroll_id, employee.id)))


# ── /payroll/{id} ───────────────────────────────────────────────────

@router.get("/{payroll_id}")
async def get_payroll(
    payroll_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(_manage),
):
    return success(_out(await PayrollService.get_payroll(db, payroll_id)))


@router.put("/{payroll_id}")
async def update_payroll(
    payroll_id: uuid.UUID,
    body: PayrollUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    payroll = await PayrollService.update_payroll(db, payroll_id, body, actor_id=actor.id)
    return success(_out(payroll), message="Payroll updated")


@router.patch("/{payroll_id}/status")
async def update_payroll_status(
    payroll_id: uuid.UUID,
    body: PayrollStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    payroll = await PayrollService.update_status(db, payroll_id, body, actor_id=actor.id)
    return success(_out(payroll), message=f"Payment status set to {body.payment_status.value}")


@router.post("/{payroll_id}/recalculate")
async def recalculate_payroll(
    payroll_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    payroll = await PayrollService.recalculate(db, payroll_id, actor_id=actor.id)
    return success(_out(payroll), message="Payroll recalculated")


@router.delete("/{payroll_id}")
async def delete_payroll(
    payroll_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    await PayrollService.delete_payroll(db, payroll_id, actor_id=actor.id)
    return success(message="Payroll deleted")


# ═════════════════════════════════════════════════════════════════════
# Salary deduction rules
# ═════════════════════════════════════════════════════════════════════


@rules_router.get("")
async def list_rules(
    active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(_manage),
):
    return success([_rule(r) for r in await DeductionRuleService.list_rules(db, active=active)])


@rules_router.post("", status_code=201)
async def create_rule(
    body: DeductionRuleCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    rule = await DeductionRuleService.create_rule(db, body, actor_id=actor.id)
    return success(_rule(rule), message="Deduction rule created")


# ── POST /salary-deduction-rules/percent ────────────────────────────

@rules_router.post("/percent")
async def upsert_percent_rule(
    body: PercentRuleUpsert,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    rule, created = await DeductionRuleService.upsert_percent(db, body, actor_id=actor.id)
    return JSONResponse(
        status_code=201 if created else 200,
        content=success(_rule(rule), message="Deduction rule created" if created else "Deduction rule updated"),
    )


@rules_router.get("/{rule_id}")
async def get_rule(
    rule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(_manage),
):
    return success(_rule(await DeductionRuleService.get_rule(db, rule_id)))


@rules_router.put("/{rule_id}")
async def update_rule(
    rule_id: uuid.UUID,
    body: DeductionRuleUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    rule = await DeductionRuleService.update_rule(db, rule_id, body, actor_id=actor.id)
    return success(_rule(rule), message="Deduction rule updated")


@rules_router.patch("/{rule_id}/percent")
async def patch_percent_rule(
    rule_id: uuid.UUID,
    body: PercentRulePatch,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    rule = await DeductionRuleService.patch_percent(db, rule_id, body, actor_id=actor.id)
    return success(_rule(rule), message="Deduction rule updated")


@rules_router.delete("/{rule_id}")
async def delete_rule(
    rule_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    await DeductionRuleService.delete_rule(db, rule_id, actor_id=actor.id)
    return success(message="Deduction rule deleted")
