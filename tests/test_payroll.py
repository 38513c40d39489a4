"""Payroll and salary-deduction-rule API tests.

February 2026 is used throughout: it starts on a Sunday, so with the default
Saturday/Sunday weekly off it has exactly 20 working days (Feb 2 .. Feb 27).
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from decimal import Decimal

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import Attendance
from hrms.common.constants import AttendanceStatus, HolidayType, LeaveStatus
from hrms.holidays.models import Holiday
from hrms.leave.models import Leave, LeaveType
from hrms.payroll.models import Payroll
from hrms.payroll.service import PayrollService

FEB_WORKING_DAYS = [
    date(2026, 2, 1) + timedelta(days=i)
    for i in range(28)
    if (date(2026, 2, 1) + timedelta(days=i)).weekday() < 5
]


async def _seed_attendance(db: AsyncSession, employee_id: uuid.UUID, *, half_days: int = 0) -> None:
    """Mark every February working day present, the last *half_days* as half days."""
    for index, day in enumerate(FEB_WORKING_DAYS):
        status = (
            AttendanceStatus.half_day
            if index >= len(FEB_WORKING_DAYS) - half_days
            else AttendanceStatus.present
        )
        db.add(Attendance(employee_id=employee_id, date=day, status=status))
    await db.commit()


async def _create_rule(client: AsyncClient, headers: dict, **body) -> dict:
    resp = await client.post("/api/v1/salary-deduction-rules", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ═════════════════════════════════════════════════════════════════════
# Salary deduction rules
# ═════════════════════════════════════════════════════════════════════


class TestDeductionRules:

    async def test_create_lowercases_code_and_defaults_name(self, client, admin_headers):
        rule = await _create_rule(client, admin_headers, code="PT", amount=200)
        assert rule["code"] == "pt"
        assert rule["name"] == "PT"
        assert rule["calculation_mode"] == "fixed"

    async def test_duplicate_code_rejected(self, client, admin_headers):
        await _create_rule(client, admin_headers, code="pf", percent=12)
        resp = await client.post(
            "/api/v1/salary-deduction-rules",
            json={"code": "PF", "amount": 5},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "duplicate"

    async def test_percent_shorthand(self, client, admin_headers):
        rule = await _create_rule(client, admin_headers, code="esi", percent=1.75, base="gross")
        assert rule["calculation_mode"] == "percent_of_gross"
        assert Decimal(str(rule["amount"])) == Decimal("1.75")

    async def test_tax_slab_mode_requires_slabs(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/salary-deduction-rules",
            json={"code": "tds", "calculation_mode": "tax_slab"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_percent_upsert_creates_then_updates(self, client, admin_headers):
        body = {"type": "pf", "percent": 12, "base": "basic"}
        first = await client.post(
            "/api/v1/salary-deduction-rules/percent", json=body, headers=admin_headers,
        )
        assert first.status_code == 201
        assert first.json()["data"]["name"] == "PF (12% of Basic)"

        body["percent"] = 10
        second = await client.post(
            "/api/v1/salary-deduction-rules/percent", json=body, headers=admin_headers,
        )
        assert second.status_code == 200
        assert second.json()["data"]["id"] == first.json()["data"]["id"]
        assert Decimal(str(second.json()["data"]["amount"])) == Decimal("10")

    async def test_patch_percent_refuses_fixed_rule_without_base(self, client, admin_headers):
        rule = await _create_rule(client, admin_headers, code="pt", amount=200)
        resp = await client.patch(
            f"/api/v1/salary-deduction-rules/{rule['id']}/percent",
            json={"percent": 5},
            headers=admin_headers,
        )
        assert resp.status_code == 400

        resp = await client.patch(
            f"/api/v1/salary-deduction-rules/{rule['id']}/percent",
            json={"percent": 5, "base": "gross"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["calculation_mode"] == "percent_of_gross"

    async def test_list_puts_active_first(self, client, admin_headers):
        await _create_rule(client, admin_headers, code="aaa", amount=1, active=False)
        await _create_rule(client, admin_headers, code="zzz", amount=1)
        resp = await client.get("/api/v1/salary-deduction-rules", headers=admin_headers)
        assert [r["code"] for r in resp.json()["data"]] == ["zzz", "aaa"]

    async def test_requires_payroll_permission(self, client, staff_headers):
        resp = await client.get("/api/v1/salary-deduction-rules", headers=staff_headers)
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# Generation
# ═════════════════════════════════════════════════════════════════════


class TestGenerate:

    async def test_generate_applies_rules_and_lop(
        self, client, db, admin_headers, staff_employee, admin_employee,
    ):
        await _seed_attendance(db, staff_employee.id, half_days=1)
        await _seed_attendance(db, admin_employee.id)
        await _create_rule(client, admin_headers, code="pt", amount=200)

        resp = await client.post(
            "/api/v1/payroll/generate",
            json={"month": 2, "year": 2026},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        outcome = resp.json()["data"]
        assert outcome["created"] == 2
        assert outcome["errors"] == []

        payroll = (
            await db.execute(select(Payroll).where(Payroll.employee_id == staff_employee.id))
        ).scalars().one()
        assert payroll.working_days == Decimal("20")
        assert payroll.present_days == Decimal("19.5")
        assert payroll.lop_days == Decimal("0.5")
        assert payroll.lop_amount == Decimal("750.00")
        assert payroll.basic_salary == Decimal("15000.00")
        assert payroll.total_deductions == Decimal("950.00")
        assert payroll.net_salary == Decimal("29050.00")
        assert payroll.net_salary == payroll.total_earnings - payroll.total_deductions

    async def test_existing_rows_skipped_unless_overwrite(
        self, client, admin_headers, staff_employee, admin_employee,
    ):
        body = {"month": 2, "year": 2026}
        await client.post("/api/v1/payroll/generate", json=body, headers=admin_headers)

        again = await client.post("/api/v1/payroll/generate", json=body, headers=admin_headers)
        assert again.json()["data"]["skipped"] == 2

        forced = await client.post(
            "/api/v1/payroll/generate", json={**body, "overwrite": True}, headers=admin_headers,
        )
        assert forced.json()["data"]["updated"] == 2

    async def test_paid_rows_are_never_overwritten(
        self, client, admin_headers, staff_employee, admin_employee,
    ):
        body = {"month": 2, "year": 2026}
        await client.post("/api/v1/payroll/generate", json=body, headers=admin_headers)
        listing = await client.get(
            f"/api/v1/payroll?employee_id={staff_employee.id}", headers=admin_headers,
        )
        payroll_id = listing.json()["data"][0]["id"]
        await client.patch(
            f"/api/v1/payroll/{payroll_id}/status",
            json={"payment_status": "paid"},
            headers=admin_headers,
        )

        forced = await client.post(
            "/api/v1/payroll/generate", json={**body, "overwrite": True}, headers=admin_headers,
        )
        data = forced.json()["data"]
        assert data["updated"] == 1
        assert data["skipped"] == 1

    async def test_employees_without_salary_are_ignored(
        self, client, db, admin_headers, admin_employee, staff_employee,
    ):
        staff_employee.salary_amount = None
        db.add(staff_employee)
        await db.commit()

        resp = await client.post(
            "/api/v1/payroll/generate", json={"month": 2, "year": 2026}, headers=admin_headers,
        )
        assert resp.json()["data"]["created"] == 1


# ═════════════════════════════════════════════════════════════════════
# Loss of pay against leave and holidays
# ═════════════════════════════════════════════════════════════════════


async def _approved_paid_leave(
    db: AsyncSession, employee_id: uuid.UUID, start: date, end: date,
) -> None:
    leave_type = LeaveType(name="Casual", leave_count=20, is_paid=True)
    db.add(leave_type)
    await db.flush()
    days = Decimal((end - start).days + 1)
    db.add(
        Leave(
            employee_id=employee_id,
            leave_type_id=leave_type.id,
            start_date=start,
            end_date=end,
            total_days=days,
            reason="Family visit",
            status=LeaveStatus.approved,
            breakdown={"from_allocation": float(days), "from_normal": 0},
        ),
    )
    await db.commit()


async def _seed_attendance_except(
    db: AsyncSession, employee_id: uuid.UUID, *missing: date,
) -> None:
    for day in FEB_WORKING_DAYS:
        if day not in missing:
            db.add(Attendance(employee_id=employee_id, date=day, status=AttendanceStatus.present))
    await db.commit()


class TestLossOfPayCoverage:

    async def test_weekend_inside_leave_does_not_cover_absences(self, db, staff_employee):
        # Leave Fri 6 .. Mon 9; absent Tue 10 and Wed 11 without leave
        await _approved_paid_leave(db, staff_employee.id, date(2026, 2, 6), date(2026, 2, 9))
        await _seed_attendance_except(
            db, staff_employee.id, date(2026, 2, 6), date(2026, 2, 10), date(2026, 2, 11),
        )
        # Saturday attendance is not a working day
        db.add(
            Attendance(
                employee_id=staff_employee.id,
                date=date(2026, 2, 7),
                status=AttendanceStatus.present,
            ),
        )
        await db.commit()

        values = await PayrollService.compute(db, staff_employee, 2, 2026)
        assert values["working_days"] == Decimal("20")
        assert values["present_days"] == Decimal("17")
        assert values["paid_leave_days"] == Decimal("1")
        assert values["lop_days"] == Decimal("2")
        assert values["lop_amount"] == Decimal("3000.00")

    async def test_generate_charges_unexcused_absences(
        self, client, db, admin_headers, staff_employee,
    ):
        await _approved_paid_leave(db, staff_employee.id, date(2026, 2, 6), date(2026, 2, 9))
        await _seed_attendance_except(
            db, staff_employee.id, date(2026, 2, 6), date(2026, 2, 10), date(2026, 2, 11),
        )
        resp = await client.post(
            "/api/v1/payroll/generate", json={"month": 2, "year": 2026}, headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text

        payroll = (
            await db.execute(select(Payroll).where(Payroll.employee_id == staff_employee.id))
        ).scalars().one()
        assert payroll.lop_days == Decimal("2")
        assert payroll.net_salary == payroll.total_earnings - payroll.total_deductions

    async def test_holiday_is_not_a_working_day(self, db, staff_employee):
        db.add(Holiday(name="Founders Day", date=date(2026, 2, 10), year=2026))
        # Scoped to a department the staff member is not in
        db.add(Holiday(name="Design offsite", date=date(2026, 2, 11), year=2026, applies_to=["design"]))
        await db.commit()
        await _seed_attendance_except(
            db, staff_employee.id, date(2026, 2, 10), date(2026, 2, 11),
        )

        values = await PayrollService.compute(db, staff_employee, 2, 2026)
        assert values["working_days"] == Decimal("19")
        assert values["present_days"] == Decimal("18")
        assert values["lop_days"] == Decimal("1")

    async def test_recurring_holiday_applies_in_later_years(self, db, staff_employee):
        db.add(
            Holiday(
                name="Founders Day",
                date=date(2025, 2, 16),
                year=2025,
                type=HolidayType.company,
                is_recurring=True,
            ),
        )
        await db.commit()
        await _seed_attendance_except(db, staff_employee.id, date(2026, 2, 16))

        values = await PayrollService.compute(db, staff_employee, 2, 2026)
        assert values["working_days"] == Decimal("19")
        assert values["lop_days"] == Decimal("0")


# ═════════════════════════════════════════════════════════════════════
# Manual payroll CRUD
# ═════════════════════════════════════════════════════════════════════


def _manual_body(employee_id: uuid.UUID) -> dict:
    return {
        "employee_id": str(employee_id),
        "month": 3,
        "year": 2026,
        "gross_salary": 10000,
        "basic_salary": 5000,
        "hra": 2000,
        "allowances": [{"code": "allowances", "name": "Allowances", "amount": 3000}],
        "bonus": 500,
        "deductions": [
            {"code": "pt", "name": "PT", "amount": 200},
            {"code": "lop", "name": "Loss of Pay", "amount": 300},
        ],
    }


class TestManualPayroll:

    async def test_create_computes_totals(self, client, admin_headers, staff_employee):
        resp = await client.post(
            "/api/v1/payroll", json=_manual_body(staff_employee.id), headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        assert Decimal(data["total_earnings"]) == Decimal("10500.00")
        assert Decimal(data["total_deductions"]) == Decimal("500.00")
        assert Decimal(data["net_salary"]) == Decimal("10000.00")
        assert Decimal(data["lop_amount"]) == Decimal("300.00")
        assert data["employee"]["employee_code"] == "EMP-STAFF"

    async def test_duplicate_period_rejected(self, client, admin_headers, staff_employee):
        body = _manual_body(staff_employee.id)
        await client.post("/api/v1/payroll", json=body, headers=admin_headers)
        resp = await client.post("/api/v1/payroll", json=body, headers=admin_headers)
        assert resp.status_code == 400
        assert "2026-03" in resp.json()["message"]

    async def test_update_recomputes_net(self, client, admin_headers, staff_employee):
        created = await client.post(
            "/api/v1/payroll", json=_manual_body(staff_employee.id), headers=admin_headers,
        )
        payroll_id = created.json()["data"]["id"]
        resp = await client.put(
            f"/api/v1/payroll/{payroll_id}",
            json={"bonus": 1500, "deductions": []},
            headers=admin_headers,
        )
        data = resp.json()["data"]
        assert Decimal(data["net_salary"]) == Decimal("11500.00")
        assert Decimal(data["lop_amount"]) == Decimal("0.00")

    async def test_paid_status_stamps_payment_date(self, client, admin_headers, staff_employee):
        created = await client.post(
            "/api/v1/payroll", json=_manual_body(staff_employee.id), headers=admin_headers,
        )
        payroll_id = created.json()["data"]["id"]
        resp = await client.patch(
            f"/api/v1/payroll/{payroll_id}/status",
            json={"payment_status": "paid", "transaction_id": "TX-1"},
            headers=admin_headers,
        )
        data = resp.json()["data"]
        assert data["payment_status"] == "paid"
        assert data["payment_date"] == date.today().isoformat()
        assert data["transaction_id"] == "TX-1"

        recalc = await client.post(
            f"/api/v1/payroll/{payroll_id}/recalculate", headers=admin_headers,
        )
        assert recalc.status_code == 400

    async def test_recalculate_keeps_bonus(self, client, db, admin_headers, staff_employee):
        created = await client.post(
            "/api/v1/payroll", json=_manual_body(staff_employee.id), headers=admin_headers,
        )
        payroll_id = created.json()["data"]["id"]
        resp = await client.post(
            f"/api/v1/payroll/{payroll_id}/recalculate", headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert Decimal(data["gross_salary"]) == Decimal("30000.00")
        assert Decimal(data["bonus"]) == Decimal("500.00")

    async def test_my_payrolls_only_show_own(
        self, client, admin_headers, staff_headers, staff_employee, admin_employee,
    ):
        own = await client.post(
            "/api/v1/payroll", json=_manual_body(staff_employee.id), headers=admin_headers,
        )
        other = await client.post(
            "/api/v1/payroll", json=_manual_body(admin_employee.id), headers=admin_headers,
        )

        mine = await client.get("/api/v1/payroll/my", headers=staff_headers)
        assert [p["id"] for p in mine.json()["data"]] == [own.json()["data"]["id"]]

        resp = await client.get(
            f"/api/v1/payroll/my/{other.json()['data']['id']}", headers=staff_headers,
        )
        assert resp.status_code == 404

    async def test_delete(self, client, admin_headers, staff_employee):
        created = await client.post(
            "/api/v1/payroll", json=_manual_body(staff_employee.id), headers=admin_headers,
        )
        payroll_id = created.json()["data"]["id"]
        assert (await client.delete(f"/api/v1/payroll/{payroll_id}", headers=admin_headers)).status_code == 200
        assert (await client.get(f"/api/v1/payroll/{payroll_id}", headers=admin_headers)).status_code == 404
