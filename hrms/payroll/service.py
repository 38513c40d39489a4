"""Payroll service layer — deduction rules, manual payroll and month-end generation.

Generation reads, per employee-month:
  - the monthly gross from ``Employee.salary_amount``
  - the company payroll components (basic / hra / allowances split)
  - every active, applicable salary-deduction rule
  - the working dates: weekdays outside the weekly off that are not a
    holiday observed by the employee's department
  - attendance per date (present, late and WFH count 1; half day counts 0.5)
  - approved paid leave per date, which only fills days attendance left open
and hands them to :mod:`hrms.payroll.calculator`.
"""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.attendance.models import Attendance
from hrms.auth.models import User
from hrms.common.audit import create_audit_entry
from hrms.common.constants import (
    PRESENT_STATUSES,
    AttendanceStatus,
    CalculationMode,
    PaymentStatus,
)
from hrms.common.exceptions import (
    AppException,
    DuplicateException,
    NotFoundException,
    ValidationException,
)
from hrms.common.filters import apply_filters
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.company.models import Company
from hrms.config import settings
from hrms.core_hr.models import Department, Employee
from hrms.holidays.models import Holiday
from hrms.holidays.service import HolidayService, observed_dates
from hrms.leave.service import LeaveService
from hrms.payroll import calculator
from hrms.payroll.models import Payroll, SalaryDeductionRule
from hrms.payroll.schemas import (
    DeductionRuleCreate,
    DeductionRuleUpdate,
    GenerateError,
    GenerateResult,
    PayLine,
    PayrollCreate,
    PayrollStatusUpdate,
    PayrollUpdate,
    PercentRulePatch,
    PercentRuleUpsert,
)

logger = logging.getLogger(__name__)

HALF = Decimal("0.5")


def _lines(lines: Optional[list[PayLine]]) -> list[dict[str, Any]]:
    """JSONB line items with float amounts."""
    return [
        {"code": ln.code, "name": ln.name, "amount": float(ln.amount), "mode": ln.mode}
        for ln in lines or []
    ]


def _percent_name(rule_type: str, percent: Decimal, base: str) -> str:
    return f"{rule_type.upper()} ({format(percent.normalize(), 'f')}% of {base.capitalize()})"


def _percent_mode(base: str) -> CalculationMode:
    return CalculationMode.percent_of_gross if base == "gross" else CalculationMode.percent_of_basic


def _payroll_options() -> tuple:
    return (selectinload(Payroll.employee).selectinload(Employee.user),)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    _, last = calendar.monthrange(year, month)
    return date(year, month, 1), date(year, month, last)


# ═════════════════════════════════════════════════════════════════════
# Salary deduction rules
# ═════════════════════════════════════════════════════════════════════


class DeductionRuleService:

    @staticmethod
    async def _ensure_unique_code(
        db: AsyncSession,
        code: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(SalaryDeductionRule.id).where(SalaryDeductionRule.code == code.lower())
        if exclude_id is not None:
            query = query.where(SalaryDeductionRule.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise DuplicateException("code", code)

    @staticmethod
    async def list_rules(
        db: AsyncSession,
        *,
        active: Optional[bool] = None,
    ) -> list[SalaryDeductionRule]:
        query = select(SalaryDeductionRule).order_by(
            SalaryDeductionRule.active.desc(), SalaryDeductionRule.name,
        )
        if active is not None:
            query = query.where(SalaryDeductionRule.active.is_(active))
        return list((await db.execute(query)).scalars().all())

    @staticmethod
    async def get_rule(db: AsyncSession, rule_id: uuid.UUID) -> SalaryDeductionRule:
        rule = await db.get(SalaryDeductionRule, rule_id)
        if rule is None:
            raise NotFoundException("SalaryDeductionRule", str(rule_id))
        return rule

    @staticmethod
    async def create_rule(
        db: AsyncSession,
        data: DeductionRuleCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> SalaryDeductionRule:
        await DeductionRuleService._ensure_unique_code(db, data.code)
        rule = SalaryDeductionRule(
            name=data.name,
            code=data.code,
            is_applicable=data.is_applicable,
            calculation_mode=data.calculation_mode,
            amount=data.amount,
            tax_slab=[s.model_dump(mode="json") for s in data.tax_slab],
            active=data.active,
        )
        db.add(rule)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="salary_deduction_rule",
            entity_id=rule.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude={"percent", "base"}),
        )
        logger.info("Deduction rule %s created (%s)", rule.code, rule.calculation_mode.value)
        return rule

    @staticmethod
    async def update_rule(
        db: AsyncSession,
        rule_id: uuid.UUID,
        data: DeductionRuleUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> SalaryDeductionRule:
        rule = await DeductionRuleService.get_rule(db, rule_id)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("code"):
            updates["code"] = updates["code"].strip().lower()
            await DeductionRuleService._ensure_unique_code(db, updates["code"], exclude_id=rule.id)
        if "tax_slab" in updates:
            updates["tax_slab"] = [s.model_dump(mode="json") for s in data.tax_slab or []]

        mode = updates.get("calculation_mode", rule.calculation_mode)
        slabs = updates.get("tax_slab", rule.tax_slab)
        if mode == CalculationMode.tax_slab and not slabs:
            raise ValidationException({"tax_slab": ["tax_slab mode requires at least one slab."]})

        old = jsonable_encoder({k: getattr(rule, k) for k in updates})
        for field, value in updates.items():
            setattr(rule, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="salary_deduction_rule",
            entity_id=rule.id,
            actor_id=actor_id,
            old_values=old,
            new_values=jsonable_encoder(updates),
        )
        return rule

    @staticmethod
    async def upsert_percent(
        db: AsyncSession,
        data: PercentRuleUpsert,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> tuple[SalaryDeductionRule, bool]:
        """Create or update a percent-based rule keyed by code.

        Returns ``(rule, created)``.
        """
        code = (data.code or data.type).strip().lower()
        name = data.name or _percent_name(data.type, data.percent, data.base)
        result = await db.execute(
            select(SalaryDeductionRule).where(SalaryDeductionRule.code == code),
        )
        rule = result.scalars().first()
        created = rule is None
        if created:
            rule = SalaryDeductionRule(code=code, is_applicable=True, tax_slab=[])
            db.add(rule)
        rule.name = name
        rule.calculation_mode = _percent_mode(data.base)
        rule.amount = data.percent
        rule.active = data.active
        await db.flush()

        await create_audit_entry(
            db,
            action="create" if created else "update",
            entity_type="salary_deduction_rule",
            entity_id=rule.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Percent rule %s %s at %s%%", code, "created" if created else "updated", data.percent)
        return rule, created

    @staticmethod
    async def patch_percent(
        db: AsyncSession,
        rule_id: uuid.UUID,
        data: PercentRulePatch,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> SalaryDeductionRule:
        rule = await DeductionRuleService.get_rule(db, rule_id)
        if data.base is None and rule.calculation_mode not in (
            CalculationMode.percent_of_basic,
            CalculationMode.percent_of_gross,
        ):
            raise ValidationException(
                {"base": [f"Rule '{rule.code}' is not percent based; give a base to convert it."]},
            )
        old = jsonable_encoder({
            "name": rule.name, "amount": rule.amount,
            "calculation_mode": rule.calculation_mode, "active": rule.active,
        })
        if data.percent is not None:
            rule.amount = data.percent
        if data.base is not None:
            rule.calculation_mode = _percent_mode(data.base)
        if data.name is not None:
            rule.name = data.name
        if data.active is not None:
            rule.active = data.active
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="salary_deduction_rule",
            entity_id=rule.id,
            actor_id=actor_id,
            old_values=old,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return rule

    @staticmethod
    async def delete_rule(
        db: AsyncSession,
        rule_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        rule = await DeductionRuleService.get_rule(db, rule_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="salary_deduction_rule",
            entity_id=rule.id,
            actor_id=actor_id,
            old_values={"code": rule.code, "name": rule.name},
        )
        await db.delete(rule)
        await db.flush()


# ═════════════════════════════════════════════════════════════════════
# Payroll
# ═════════════════════════════════════════════════════════════════════


class PayrollService:

    # ── Inputs ──────────────────────────────────────────────────────

    @staticmethod
    async def split_percents(db: AsyncSession) -> dict[str, Decimal]:
        result = await db.execute(select(Company.payroll_components).limit(1))
        components = result.scalar()
        return calculator.split_percents(components, settings.payroll_split_defaults)

    @staticmethod
    async def active_rules(db: AsyncSession) -> list[SalaryDeductionRule]:
        result = await db.execute(
            select(SalaryDeductionRule)
            .where(
                SalaryDeductionRule.active.is_(True),
                SalaryDeductionRule.is_applicable.is_(True),
            )
            .order_by(SalaryDeductionRule.code),
        )
        return list(result.scalars().all())

    @staticmethod
    async def attendance_credits(
        db: AsyncSession,
        employee_id: uuid.UUID,
        start: date,
        end: date,
    ) -> dict[date, Decimal]:
        """Attendance credit per date: 1 for present, late or WFH, 0.5 for a half day."""
        result = await db.execute(
            select(Attendance.date, Attendance.status).where(
                Attendance.employee_id == employee_id,
                Attendance.date >= start,
                Attendance.date <= end,
            ),
        )
        credits: dict[date, Decimal] = {}
        for day, status in result.all():
            if status in PRESENT_STATUSES:
                credit = Decimal("1")
            elif status == AttendanceStatus.half_day:
                credit = HALF
            else:
                continue
            credits[day] = max(credits.get(day, Decimal("0")), credit)
        return credits

    @staticmethod
    async def department_name(db: AsyncSession, employee: Employee) -> Optional[str]:
        result = await db.execute(
            select(Department.name)
            .join(User, User.department_id == Department.id)
            .where(User.id == employee.user_id),
        )
        return result.scalar()

    @staticmethod
    async def compute(
        db: AsyncSession,
        employee: Employee,
        month: int,
        year: int,
        *,
        bonus: Any = 0,
        overtime_pay: Any = 0,
        percents: Optional[dict[str, Decimal]] = None,
        rules: Optional[list[SalaryDeductionRule]] = None,
        holidays: Optional[list[Holiday]] = None,
    ) -> dict[str, Any]:
        """Computed payroll columns for *employee* in the given month."""
        if not employee.salary_amount or employee.salary_amount <= 0:
            raise ValidationException(
                {"salary_amount": [f"Employee {employee.employee_code} has no salary configured."]},
            )
        if percents is None:
            percents = await PayrollService.split_percents(db)
        if rules is None:
            rules = await PayrollService.active_rules(db)

        start, end = month_bounds(year, month)
        if holidays is None:
            holidays = await HolidayService.between(db, start, end)
        closed = observed_dates(
            holidays, start, end, await PayrollService.department_name(db, employee),
        )
        working = calculator.working_dates(year, month, settings.weekly_off_days, closed)
        present, paid_leave = calculator.day_coverage(
            working,
            await PayrollService.attendance_credits(db, employee.id, start, end),
            await LeaveService.paid_leave_credits(db, employee.id, start, end),
        )
        return calculator.build_payroll(
            employee.salary_amount,
            percents=percents,
            rules=rules,
            working_days=len(working),
            present_days=present,
            paid_leave_days=paid_leave,
            bonus=bonus,
            overtime_pay=overtime_pay,
        )

    # ── Lookups ─────────────────────────────────────────────────────

    @staticmethod
    async def _for_period(
        db: AsyncSession,
        employee_id: uuid.UUID,
        month: int,
        year: int,
    ) -> Optional[Payroll]:
        result = await db.execute(
            select(Payroll).where(
                Payroll.employee_id == employee_id,
                Payroll.month == month,
                Payroll.year == year,
            ),
        )
        return result.scalars().first()

    @staticmethod
    async def get_payroll(db: AsyncSession, payroll_id: uuid.UUID) -> Payroll:
        result = await db.execute(
            select(Payroll)
            .where(Payroll.id == payroll_id)
            .options(*_payroll_options())
            .execution_options(populate_existing=True),
        )
        payroll = result.scalars().first()
        if payroll is None:
            raise NotFoundException("Payroll", str(payroll_id))
        return payroll

    @staticmethod
    async def get_own_payroll(
        db: AsyncSession,
        payroll_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Payroll:
        payroll = await PayrollService.get_payroll(db, payroll_id)
        if payroll.employee_id != employee_id:
            raise NotFoundException("Payroll", str(payroll_id))
        return payroll

    @staticmethod
    async def list_payrolls(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        payment_status: Optional[PaymentStatus] = None,
    ) -> PaginatedResponse:
        query = (
            select(Payroll)
            .options(*_payroll_options())
            .order_by(Payroll.year.desc(), Payroll.month.desc(), Payroll.created_at.desc())
        )
        query = apply_filters(
            query,
            Payroll,
            {
                "employee_id": employee_id,
                "month": month,
                "year": year,
                "payment_status": payment_status,
            },
        )
        return await paginate(db, query, pagination, model=Payroll)

    # ── Manual CRUD ─────────────────────────────────────────────────

    @staticmethod
    def _apply_totals(payroll: Payroll) -> None:
        figures = calculator.totals(
            basic=payroll.basic_salary,
            hra=payroll.hra,
            allowances=payroll.allowances,
            bonus=payroll.bonus,
            overtime_pay=payroll.overtime_pay,
            deductions=payroll.deductions,
        )
        payroll.lop_amount = calculator.line_total(
            [ln for ln in payroll.deductions or [] if ln.get("code") == calculator.LOP_CODE],
        )
        for field, value in figures.items():
            setattr(payroll, field, value)

    @staticmethod
    async def create_payroll(
        db: AsyncSession,
        data: PayrollCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Payroll:
        if await db.get(Employee, data.employee_id) is None:
            raise NotFoundException("Employee", str(data.employee_id))
        if await PayrollService._for_period(db, data.employee_id, data.month, data.year):
            raise DuplicateException("period", f"{data.year}-{data.month:02d}")

        payroll = Payroll(
            employee_id=data.employee_id,
            month=data.month,
            year=data.year,
            gross_salary=data.gross_salary,
            basic_salary=data.basic_salary,
            hra=data.hra,
            allowances=_lines(data.allowances),
            bonus=data.bonus,
            overtime_pay=data.overtime_pay,
            deductions=_lines(data.deductions),
            working_days=data.working_days,
            present_days=data.present_days,
            paid_leave_days=data.paid_leave_days,
            lop_days=Decimal("0"),
            payment_status=PaymentStatus.pending,
            payment_method=data.payment_method,
            notes=data.notes,
            generated_by=actor_id,
        )
        PayrollService._apply_totals(payroll)
        db.add(payroll)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="payroll",
            entity_id=payroll.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info(
            "Manual payroll %s for employee %s %d-%02d net=%s",
            payroll.id, data.employee_id, data.year, data.month, payroll.net_salary,
        )
        return await PayrollService.get_payroll(db, payroll.id)

    @staticmethod
    async def update_payroll(
        db: AsyncSession,
        payroll_id: uuid.UUID,
        data: PayrollUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Payroll:
        payroll = await PayrollService.get_payroll(db, payroll_id)
        updates = data.model_dump(exclude_unset=True)
        if "allowances" in updates:
            updates["allowances"] = _lines(data.allowances)
        if "deductions" in updates:
            updates["deductions"] = _lines(data.deductions)

        old = jsonable_encoder({k: getattr(payroll, k) for k in updates})
        for field, value in updates.items():
            setattr(payroll, field, value)
        PayrollService._apply_totals(payroll)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="payroll",
            entity_id=payroll.id,
            actor_id=actor_id,
            old_values=old,
            new_values=jsonable_encoder(updates),
        )
        return await PayrollService.get_payroll(db, payroll.id)

    @staticmethod
    async def update_status(
        db: AsyncSession,
        payroll_id: uuid.UUID,
        data: PayrollStatusUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Payroll:
        payroll = await PayrollService.get_payroll(db, payroll_id)
        old_status = payroll.payment_status
        payroll.payment_status = data.payment_status
        if data.payment_status == PaymentStatus.paid:
            payroll.payment_date = data.payment_date or date.today()
        elif data.payment_date is not None:
            payroll.payment_date = data.payment_date
        if data.transaction_id is not None:
            payroll.transaction_id = data.transaction_id
        await db.flush()

        await create_audit_entry(
            db,
            action="status_change",
            entity_type="payroll",
            entity_id=payroll.id,
            actor_id=actor_id,
            old_values={"payment_status": old_status.value},
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Payroll %s: %s -> %s", payroll.id, old_status.value, data.payment_status.value)
        return await PayrollService.get_payroll(db, payroll.id)

    @staticmethod
    async def recalculate(
        db: AsyncSession,
        payroll_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Payroll:
        """Recompute from current salary, rules, attendance and leave; keeps bonus and overtime."""
        payroll = await PayrollService.get_payroll(db, payroll_id)
        if payroll.payment_status == PaymentStatus.paid:
            raise ValidationException({"payment_status": ["A paid payroll cannot be recalculated."]})

        old_net = payroll.net_salary
        figures = await PayrollService.compute(
            db,
            payroll.employee,
            payroll.month,
            payroll.year,
            bonus=payroll.bonus,
            overtime_pay=payroll.overtime_pay,
        )
        for field, value in figures.items():
            setattr(payroll, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="recalculate",
            entity_type="payroll",
            entity_id=payroll.id,
            actor_id=actor_id,
            old_values={"net_salary": float(old_net)},
            new_values={"net_salary": float(payroll.net_salary)},
        )
        return await PayrollService.get_payroll(db, payroll.id)

    @staticmethod
    async def delete_payroll(
        db: AsyncSession,
        payroll_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        payroll = await PayrollService.get_payroll(db, payroll_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="payroll",
            entity_id=payroll.id,
            actor_id=actor_id,
            old_values={
                "employee_id": str(payroll.employee_id),
                "month": payroll.month,
                "year": payroll.year,
                "net_salary": float(payroll.net_salary),
            },
        )
        await db.delete(payroll)
        await db.flush()

    # ── Month-end generation ────────────────────────────────────────

    @staticmethod
    async def generate(
        db: AsyncSession,
        month: int,
        year: int,
        *,
        overwrite: bool = False,
        actor_id: Optional[uuid.UUID] = None,
    ) -> GenerateResult:
        """Generate payroll for every active employee with a salary.

        Existing rows for the period are skipped unless *overwrite* is set;
        paid rows are never overwritten. A failure for one employee is
        recorded in ``errors`` and does not stop the run.
        """
        outcome = GenerateResult(month=month, year=year)
        percents = await PayrollService.split_percents(db)
        rules = await PayrollService.active_rules(db)
        holidays = await HolidayService.between(db, *month_bounds(year, month))

        result = await db.execute(
            select(Employee)
            .where(
                Employee.is_active.is_(True),
                Employee.salary_amount.is_not(None),
                Employee.salary_amount > 0,
            )
            .options(selectinload(Employee.user))
            .order_by(Employee.employee_code),
        )
        employees = result.scalars().all()

        for employee in employees:
            existing = await PayrollService._for_period(db, employee.id, month, year)
            if existing is not None and (
                not overwrite or existing.payment_status == PaymentStatus.paid
            ):
                outcome.skipped += 1
                continue

            try:
                figures = await PayrollService.compute(
                    db,
                    employee,
                    month,
                    year,
                    bonus=existing.bonus if existing else 0,
                    overtime_pay=existing.overtime_pay if existing else 0,
                    percents=percents,
                    rules=rules,
                    holidays=holidays,
                )
            except (AppException, ArithmeticError, ValueError) as exc:
                logger.warning("Payroll generation failed for %s: %s", employee.employee_code, exc)
                outcome.errors.append(
                    GenerateError(
                        employee_id=employee.id,
                        employee_code=employee.employee_code,
                        error=getattr(exc, "message", str(exc)),
                    ),
                )
                continue

            if existing is None:
                payroll = Payroll(
                    employee_id=employee.id,
                    month=month,
                    year=year,
                    payment_status=PaymentStatus.pending,
                    generated_by=actor_id,
                    **figures,
                )
                db.add(payroll)
                outcome.created += 1
            else:
                payroll = existing
                for field, value in figures.items():
                    setattr(payroll, field, value)
                payroll.generated_by = actor_id
                outcome.updated += 1
            await db.flush()

            await create_audit_entry(
                db,
                action="generate",
                entity_type="payroll",
                entity_id=payroll.id,
                actor_id=actor_id,
                new_values=jsonable_encoder({
                    "month": month,
                    "year": year,
                    "net_salary": figures["net_salary"],
                    "lop_days": figures["lop_days"],
                }),
            )

        logger.info(
            "Payroll %d-%02d: created=%d updated=%d skipped=%d errors=%d",
            year, month, outcome.created, outcome.updated, outcome.skipped, len(outcome.errors),
        )
        return outcome
