"""Pure payroll arithmetic with no database access.

All money is handled as :class:`~decimal.Decimal` and rounded half-up to
cents. JSONB line items carry amounts as floats.

Pipeline for one employee-month::

    gross ─► split_gross ─► basic / hra / allowances
          ─► rule_deductions (fixed, % of basic, % of gross, tax slab)
          ─► day_coverage (attendance, then paid leave, per working date)
          ─► compute_lop (unaccounted working days × gross / working days)
          ─► totals (net = total earnings − total deductions)
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional

from hrms.common.constants import PAYROLL_COMPONENT_CODES, CalculationMode

CENT = Decimal("0.01")
ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
LOP_CODE = "lop"


def money(value: Any) -> Decimal:
    """Coerce *value* to a Decimal rounded to cents."""
    if value is None:
        return ZERO.quantize(CENT)
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _dec(value: Any) -> Decimal:
    return ZERO if value is None else Decimal(str(value))


# ── Gross split ─────────────────────────────────────────────────────

def split_percents(
    components: Optional[Iterable[Mapping[str, Any]]],
    defaults: Mapping[str, Any],
) -> dict[str, Decimal]:
    """Percentages for basic/hra/allowances.

    Active company payroll components override *defaults* code by code.
    """
    percents = {code: _dec(defaults.get(code, 0)) for code in PAYROLL_COMPONENT_CODES}
    for comp in components or []:
        code = str(comp.get("code", "")).lower()
        if code in percents and comp.get("is_active", True):
            percents[code] = _dec(comp.get("percent", 0))
    return percents


def split_gross(gross: Any, percents: Mapping[str, Decimal]) -> dict[str, Decimal]:
    """Split *gross* into basic, HRA and allowances.

    Allowances take whatever basic and HRA leave, so the three parts always
    add up to the rounded gross. The company API keeps the percentages at a
    100% total, which makes that residue equal to ``gross × allowances%``
    up to rounding.
    """
    gross = money(gross)
    basic = money(gross * percents["basic"] / HUNDRED)
    hra = money(gross * percents["hra"] / HUNDRED)
    return {"basic": basic, "hra": hra, "allowances": gross - basic - hra}


# ── Deduction rules ─────────────────────────────────────────────────

def find_tax_slab(slabs: Optional[Iterable[Mapping[str, Any]]], gross: Any) -> Optional[Mapping[str, Any]]:
    """The slab with ``min <= gross <= max``; a missing ``max`` is open-ended."""
    gross = _dec(gross)
    for slab in sorted(slabs or [], key=lambda s: _dec(s.get("min"))):
        low = _dec(slab.get("min"))
        high = slab.get("max")
        if gross >= low and (high is None or gross <= _dec(high)):
            return slab
    return None


def compute_rule_deduction(
    mode: CalculationMode | str,
    amount: Any,
    *,
    basic: Any,
    gross: Any,
    tax_slab: Optional[Iterable[Mapping[str, Any]]] = None,
) -> Decimal:
    mode = CalculationMode(mode)
    amount = _dec(amount)
    if mode == CalculationMode.fixed:
        return money(amount)
    if mode == CalculationMode.percent_of_basic:
        return money(_dec(basic) * amount / HUNDRED)
    if mode == CalculationMode.percent_of_gross:
        return money(_dec(gross) * amount / HUNDRED)

    slab = find_tax_slab(tax_slab, gross)
    if slab is None:
        return money(ZERO)
    if slab.get("percent") is not None:
        return money(_dec(gross) * _dec(slab["percent"]) / HUNDRED)
    return money(slab.get("amount", 0))


def rule_deductions(rules: Iterable[Any], *, basic: Any, gross: Any) -> list[dict[str, Any]]:
    """Deduction lines for every active, applicable rule."""
    lines: list[dict[str, Any]] = []
    for rule in rules:
        if not rule.active or not rule.is_applicable:
            continue
        value = compute_rule_deduction(
            rule.calculation_mode,
            rule.amount,
            basic=basic,
            gross=gross,
            tax_slab=rule.tax_slab,
        )
        lines.append({
            "code": rule.code,
            "name": rule.name,
            "amount": float(value),
            "mode": CalculationMode(rule.calculation_mode).value,
        })
    return lines


# ── Loss of pay ─────────────────────────────────────────────────────

def working_dates(
    year: int,
    month: int,
    off_days: Iterable[int],
    holidays: Iterable[date] = (),
) -> list[date]:
    """Dates of the month that are neither a weekly off (Mon=0) nor a holiday."""
    off = set(off_days)
    closed = set(holidays)
    _, days_in_month = calendar.monthrange(year, month)
    dates = (date(year, month, day) for day in range(1, days_in_month + 1))
    return [d for d in dates if d.weekday() not in off and d not in closed]


def count_working_days(
    year: int,
    month: int,
    off_days: Iterable[int],
    holidays: Iterable[date] = (),
) -> int:
    return len(working_dates(year, month, off_days, holidays))


def day_coverage(
    working: Iterable[date],
    attendance: Mapping[date, Any],
    paid_leave: Mapping[date, Any],
) -> tuple[Decimal, Decimal]:
    """Present and paid-leave days over the *working* dates.

    Both maps hold a credit per date (1, or 0.5 for a half day). Dates off
    the working calendar are ignored, and a day is never credited more than
    once: paid leave only fills what attendance left open.
    """
    present = paid = ZERO
    for day in working:
        worked = min(_dec(attendance.get(day)), ONE)
        present += worked
        paid += min(_dec(paid_leave.get(day)), ONE - worked)
    return present, paid


def compute_lop(
    gross: Any,
    working_days: Any,
    present_days: Any,
    paid_leave_days: Any,
) -> dict[str, Decimal]:
    """Loss of pay for working days covered by neither attendance nor paid leave."""
    gross = money(gross)
    working = _dec(working_days)
    if working <= 0:
        return {"lop_days": ZERO, "lop_amount": money(ZERO), "per_day": money(ZERO)}

    lop_days = max(working - _dec(present_days) - _dec(paid_leave_days), ZERO)
    per_day = gross / working
    lop_amount = min(money(per_day * lop_days), gross)
    return {"lop_days": lop_days, "lop_amount": lop_amount, "per_day": money(per_day)}


# ── Totals ──────────────────────────────────────────────────────────

def line_total(lines: Optional[Iterable[Mapping[str, Any]]]) -> Decimal:
    return money(sum((_dec(line.get("amount")) for line in lines or []), ZERO))


def totals(
    *,
    basic: Any,
    hra: Any,
    allowances: Optional[Iterable[Mapping[str, Any]]],
    bonus: Any = 0,
    overtime_pay: Any = 0,
    deductions: Optional[Iterable[Mapping[str, Any]]] = None,
) -> dict[str, Decimal]:
    total_earnings = money(
        _dec(basic) + _dec(hra) + line_total(allowances) + _dec(bonus) + _dec(overtime_pay),
    )
    total_deductions = line_total(deductions)
    return {
        "total_earnings": total_earnings,
        "total_deductions": total_deductions,
        "net_salary": total_earnings - total_deductions,
    }


# ── Whole payroll ───────────────────────────────────────────────────

def build_payroll(
    gross: Any,
    *,
    percents: Mapping[str, Decimal],
    rules: Iterable[Any],
    working_days: Any,
    present_days: Any,
    paid_leave_days: Any,
    bonus: Any = 0,
    overtime_pay: Any = 0,
) -> dict[str, Any]:
    """Every computed column of a :class:`Payroll` row."""
    gross = money(gross)
    parts = split_gross(gross, percents)
    allowances = [{"code": "allowances", "name": "Allowances", "amount": float(parts["allowances"])}]

    deductions = rule_deductions(rules, basic=parts["basic"], gross=gross)
    lop = compute_lop(gross, working_days, present_days, paid_leave_days)
    if lop["lop_amount"] > 0:
        deductions.append({
            "code": LOP_CODE,
            "name": "Loss of Pay",
            "amount": float(lop["lop_amount"]),
            "mode": LOP_CODE,
        })

    return {
        "gross_salary": gross,
        "basic_salary": parts["basic"],
        "hra": parts["hra"],
        "allowances": allowances,
        "bonus": money(bonus),
        "overtime_pay": money(overtime_pay),
        "deductions": deductions,
        "working_days": _dec(working_days),
        "present_days": _dec(present_days),
        "paid_leave_days": _dec(paid_leave_days),
        "lop_days": lop["lop_days"],
        "lop_amount": lop["lop_amount"],
        **totals(
            basic=parts["basic"],
            hra=parts["hra"],
            allowances=allowances,
            bonus=bonus,
            overtime_pay=overtime_pay,
            deductions=deductions,
        ),
    }
