"""Payroll arithmetic — gross split, deduction modes, tax slabs, LOP, totals.

Pure functions; no database or app needed.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from hrms.common.constants import CalculationMode
from hrms.payroll.calculator import (
    LOP_CODE,
    build_payroll,
    compute_lop,
    compute_rule_deduction,
    count_working_days,
    day_coverage,
    find_tax_slab,
    line_total,
    money,
    rule_deductions,
    split_gross,
    split_percents,
    totals,
    working_dates,
)

DEFAULTS = {"basic": 50, "hra": 20, "allowances": 30}

SLABS = [
    {"min": 0, "max": 20000, "percent": 0},
    {"min": 20000.01, "max": 50000, "percent": 10},
    {"min": 50000.01, "max": None, "amount": 8000},
]


def _rule(
    code: str,
    mode: CalculationMode,
    amount,
    *,
    tax_slab=None,
    active: bool = True,
    is_applicable: bool = True,
):
    return SimpleNamespace(
        code=code,
        name=code.upper(),
        calculation_mode=mode,
        amount=Decimal(str(amount)),
        tax_slab=tax_slab or [],
        active=active,
        is_applicable=is_applicable,
    )


# ═════════════════════════════════════════════════════════════════════
# Gross split
# ═════════════════════════════════════════════════════════════════════


class TestSplit:

    def test_default_split(self):
        parts = split_gross(30000, split_percents(None, DEFAULTS))
        assert parts == {
            "basic": Decimal("15000.00"),
            "hra": Decimal("6000.00"),
            "allowances": Decimal("9000.00"),
        }

    def test_rounding_residue_goes_to_allowances(self):
        parts = split_gross(Decimal("1000.01"), split_percents(None, DEFAULTS))
        assert parts["basic"] == Decimal("500.01")
        assert parts["hra"] == Decimal("200.00")
        assert sum(parts.values()) == Decimal("1000.01")

    def test_company_components_override_defaults(self):
        components = [
            {"code": "basic", "percent": 60, "is_active": True},
            {"code": "HRA", "percent": 25, "is_active": True},
            {"code": "allowances", "percent": 15, "is_active": True},
        ]
        percents = split_percents(components, DEFAULTS)
        assert percents == {
            "basic": Decimal("60"),
            "hra": Decimal("25"),
            "allowances": Decimal("15"),
        }

    def test_inactive_component_keeps_default(self):
        components = [{"code": "basic", "percent": 80, "is_active": False}]
        assert split_percents(components, DEFAULTS)["basic"] == Decimal("50")

    def test_parts_add_up_even_when_percents_do_not(self):
        percents = {"basic": Decimal("60"), "hra": Decimal("30"), "allowances": Decimal("30")}
        parts = split_gross(30000, percents)
        assert parts["basic"] == Decimal("18000.00")
        assert parts["hra"] == Decimal("9000.00")
        assert sum(parts.values()) == Decimal("30000.00")


# ═════════════════════════════════════════════════════════════════════
# Deduction modes
# ═════════════════════════════════════════════════════════════════════


class TestDeductionModes:

    def test_fixed(self):
        assert compute_rule_deduction("fixed", 200, basic=15000, gross=30000) == Decimal("200.00")

    def test_percent_of_basic(self):
        value = compute_rule_deduction(
            CalculationMode.percent_of_basic, 12, basic=15000, gross=30000,
        )
        assert value == Decimal("1800.00")

    def test_percent_of_gross(self):
        value = compute_rule_deduction(
            CalculationMode.percent_of_gross, 10, basic=15000, gross=30000,
        )
        assert value == Decimal("3000.00")

    @pytest.mark.parametrize(
        "gross, expected",
        [
            (15000, Decimal("0.00")),
            (30000, Decimal("3000.00")),
            (60000, Decimal("8000.00")),
        ],
    )
    def test_tax_slab(self, gross, expected):
        value = compute_rule_deduction(
            CalculationMode.tax_slab, 0, basic=0, gross=gross, tax_slab=SLABS,
        )
        assert value == expected

    def test_tax_slab_without_match_is_zero(self):
        slabs = [{"min": 1000, "max": 2000, "percent": 5}]
        assert compute_rule_deduction("tax_slab", 0, basic=0, gross=500, tax_slab=slabs) == Decimal("0.00")

    def test_find_tax_slab_open_ended(self):
        assert find_tax_slab(SLABS, 10_000_000)["amount"] == 8000
        assert find_tax_slab([], 100) is None

    def test_inactive_and_non_applicable_rules_skipped(self):
        rules = [
            _rule("pf", CalculationMode.percent_of_basic, 12),
            _rule("old", CalculationMode.fixed, 500, active=False),
            _rule("na", CalculationMode.fixed, 300, is_applicable=False),
        ]
        lines = rule_deductions(rules, basic=Decimal("15000"), gross=Decimal("30000"))
        assert [line["code"] for line in lines] == ["pf"]
        assert lines[0] == {
            "code": "pf",
            "name": "PF",
            "amount": 1800.0,
            "mode": "percent_of_basic",
        }


# ═════════════════════════════════════════════════════════════════════
# Loss of pay
# ═════════════════════════════════════════════════════════════════════


class TestLossOfPay:

    def test_working_days_excludes_weekends(self):
        # February 2026 starts on a Sunday: four full weeks
        assert count_working_days(2026, 2, {5, 6}) == 20
        assert count_working_days(2026, 2, set()) == 28

    def test_holidays_are_not_working_days(self):
        holidays = {date(2026, 2, 16), date(2026, 2, 21)}  # Monday, Saturday
        dates = working_dates(2026, 2, {5, 6}, holidays)
        assert len(dates) == 19
        assert date(2026, 2, 16) not in dates
        assert count_working_days(2026, 2, {5, 6}, holidays) == 19

    def test_coverage_ignores_off_days_and_counts_each_day_once(self):
        working = [date(2026, 2, d) for d in (5, 6, 9, 10)]  # Thu, Fri, Mon, Tue
        attendance = {
            date(2026, 2, 5): 1,
            date(2026, 2, 7): 1,  # Saturday
            date(2026, 2, 9): 1,
            date(2026, 2, 10): Decimal("0.5"),
        }
        paid_leave = {
            date(2026, 2, 6): 1,
            date(2026, 2, 7): 1,
            date(2026, 2, 8): 1,
            date(2026, 2, 9): 1,
            date(2026, 2, 10): 1,
        }
        present, paid = day_coverage(working, attendance, paid_leave)
        assert present == Decimal("2.5")
        assert paid == Decimal("1.5")

    def test_empty_coverage(self):
        assert day_coverage([date(2026, 2, 2)], {}, {}) == (Decimal("0"), Decimal("0"))

    def test_lop_amount_is_per_day_rate_times_unaccounted_days(self):
        lop = compute_lop(22000, 22, 18, 2)
        assert lop["lop_days"] == Decimal("2")
        assert lop["per_day"] == Decimal("1000.00")
        assert lop["lop_amount"] == Decimal("2000.00")

    def test_half_days_count_half(self):
        lop = compute_lop(20000, 20, Decimal("18.5"), 0)
        assert lop["lop_days"] == Decimal("1.5")
        assert lop["lop_amount"] == Decimal("1500.00")

    def test_lop_floored_at_zero(self):
        lop = compute_lop(20000, 20, 25, 3)
        assert lop["lop_days"] == Decimal("0")
        assert lop["lop_amount"] == Decimal("0.00")

    def test_lop_never_exceeds_gross(self):
        lop = compute_lop(100, 3, 0, 0)
        assert lop["lop_amount"] == Decimal("100.00")

    def test_no_working_days(self):
        assert compute_lop(5000, 0, 0, 0)["lop_amount"] == Decimal("0.00")


# ═════════════════════════════════════════════════════════════════════
# Totals
# ═════════════════════════════════════════════════════════════════════


class TestTotals:

    def test_net_is_earnings_minus_deductions(self):
        result = totals(
            basic=15000,
            hra=6000,
            allowances=[{"amount": 9000.0}, {"amount": 250.5}],
            bonus=1000,
            overtime_pay=Decimal("99.50"),
            deductions=[{"amount": 1800.0}, {"amount": 200.0}],
        )
        assert result["total_earnings"] == Decimal("31350.00")
        assert result["total_deductions"] == Decimal("2000.00")
        assert result["net_salary"] == result["total_earnings"] - result["total_deductions"]

    def test_line_total_handles_empty(self):
        assert line_total(None) == Decimal("0.00")
        assert line_total([]) == Decimal("0.00")

    def test_money_rounds_half_up(self):
        assert money("2.345") == Decimal("2.35")
        assert money(None) == Decimal("0.00")


class TestBuildPayroll:

    def test_full_month(self):
        rules = [
            _rule("pt", CalculationMode.fixed, 200),
            _rule("pf", CalculationMode.percent_of_basic, 12),
        ]
        figures = build_payroll(
            30000,
            percents=split_percents(None, DEFAULTS),
            rules=rules,
            working_days=20,
            present_days=18,
            paid_leave_days=1,
            bonus=500,
        )

        assert figures["basic_salary"] == Decimal("15000.00")
        assert figures["hra"] == Decimal("6000.00")
        assert figures["allowances"][0]["amount"] == 9000.0
        assert figures["lop_days"] == Decimal("1")
        assert figures["lop_amount"] == Decimal("1500.00")
        assert [d["code"] for d in figures["deductions"]] == ["pt", "pf", LOP_CODE]
        assert figures["total_earnings"] == Decimal("30500.00")
        assert figures["total_deductions"] == Decimal("3500.00")
        assert figures["net_salary"] == Decimal("27000.00")

    def test_no_lop_line_when_fully_present(self):
        figures = build_payroll(
            30000,
            percents=split_percents(None, DEFAULTS),
            rules=[],
            working_days=20,
            present_days=20,
            paid_leave_days=0,
        )
        assert figures["deductions"] == []
        assert figures["net_salary"] == Decimal("30000.00")

    def test_net_invariant_holds_for_every_combination(self):
        rules = [
            _rule("tax", CalculationMode.tax_slab, 0, tax_slab=SLABS),
            _rule("ins", CalculationMode.percent_of_gross, Decimal("1.75")),
        ]
        for gross in (Decimal("12345.67"), Decimal("45000"), Decimal("99999.99")):
            figures = build_payroll(
                gross,
                percents=split_percents(None, DEFAULTS),
                rules=rules,
                working_days=21,
                present_days=Decimal("17.5"),
                paid_leave_days=2,
            )
            deducted = sum(Decimal(str(d["amount"])) for d in figures["deductions"])
            assert figures["net_salary"] == figures["total_earnings"] - deducted
