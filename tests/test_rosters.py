"""Roster tests — time parsing, overnight shifts, weekly plans, copying."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from hrms.common.exceptions import ValidationException
from hrms.rosters.schemas import DayShift, time_to_minutes
from hrms.rosters.service import shift_minutes, total_hours, week_dates, working_days
from tests.conftest import make_employee, make_user

BASE = "/api/v1/rosters"

NINE_TO_SIX = {"start_time": "9am", "end_time": "6pm"}
WEEKDAYS = {day: NINE_TO_SIX for day in ("monday", "tuesday", "wednesday", "thursday", "friday")}


async def _add(client, headers, employee, *, year=2026, week=10, schedule=None, **extra):
    return await client.post(
        BASE,
        json={
            "employee_id": str(employee.id),
            "year": year,
            "week_number": week,
            "schedule": WEEKDAYS if schedule is None else schedule,
            **extra,
        },
        headers=headers,
    )


# ═════════════════════════════════════════════════════════════════════
# Pure helpers
# ═════════════════════════════════════════════════════════════════════


class TestTimeParsing:

    @pytest.mark.parametrize(
        "value, minutes",
        [
            ("09:30", 570),
            ("10am", 600),
            ("10:30pm", 1350),
            ("12am", 0),
            ("12pm", 720),
            ("OFF", None),
            ("off", None),
        ],
    )
    def test_time_to_minutes(self, value, minutes):
        assert time_to_minutes(value) == minutes

    @pytest.mark.parametrize("value", ["25:00", "13pm", "noon", "9:75"])
    def test_bad_times(self, value):
        with pytest.raises(ValueError):
            time_to_minutes(value)

    def test_overnight_shift(self):
        assert shift_minutes("10pm", "6am") == 480
        assert shift_minutes("9am", "OFF") == 0

    def test_shift_must_have_length(self):
        with pytest.raises(ValidationError):
            DayShift(start_time="9am", end_time="09:00")
        assert DayShift(start_time="OFF", end_time="OFF").is_off

    def test_week_totals(self):
        schedule = {**WEEKDAYS, "saturday": {"start_time": "10pm", "end_time": "2am"}}
        assert total_hours(schedule) == Decimal("49.00")
        assert working_days(schedule) == 6

    def test_iso_week_dates(self):
        assert week_dates(2026, 10) == (date(2026, 3, 2), date(2026, 3, 8))
        assert week_dates(2026, 53)[1] == date(2027, 1, 3)

    def test_missing_week_53(self):
        with pytest.raises(ValidationException):
            week_dates(2025, 53)


# ═════════════════════════════════════════════════════════════════════
# API
# ═════════════════════════════════════════════════════════════════════


class TestRosterApi:

    async def test_add_roster(self, client, admin_headers, staff_employee):
        resp = await _add(client, admin_headers, staff_employee)
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        assert data["week_start_date"] == "2026-03-02"
        assert data["week_end_date"] == "2026-03-08"
        assert Decimal(data["total_hours"]) == Decimal("45")
        assert data["schedule"]["sunday"] == {"start_time": "OFF", "end_time": "OFF"}
        assert data["status"] == "draft"
        assert data["employee"]["employee_code"] == "EMP-STAFF"

    async def test_duplicate_week(self, client, admin_headers, staff_employee):
        await _add(client, admin_headers, staff_employee)
        resp = await _add(client, admin_headers, staff_employee)
        assert resp.status_code == 400
        assert resp.json()["error"] == "duplicate"

    async def test_invalid_time_rejected(self, client, admin_headers, staff_employee):
        resp = await _add(
            client, admin_headers, staff_employee,
            schedule={"monday": {"start_time": "9 o'clock", "end_time": "5pm"}},
        )
        assert resp.status_code == 400

    async def test_zero_length_shift_rejected(self, client, admin_headers, staff_employee):
        resp = await _add(
            client, admin_headers, staff_employee,
            schedule={"monday": {"start_time": "9am", "end_time": "9am"}},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    async def test_week_that_does_not_exist(self, client, admin_headers, staff_employee):
        resp = await _add(client, admin_headers, staff_employee, year=2025, week=53)
        assert resp.status_code == 400

    async def test_unknown_employee(self, client, admin_headers):
        resp = await client.post(
            BASE,
            json={"employee_id": "00000000-0000-0000-0000-000000000999", "year": 2026, "week_number": 10},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    async def test_staff_cannot_add(self, client, staff_headers, staff_employee):
        resp = await _add(client, staff_headers, staff_employee)
        assert resp.status_code == 403

    async def test_week_view_and_stats(self, client, admin_headers, admin_employee, staff_employee):
        await _add(client, admin_headers, staff_employee)
        await _add(client, admin_headers, admin_employee, status="published")

        week = (await client.get(f"{BASE}/week/2026/10", headers=admin_headers)).json()
        assert [r["employee"]["employee_code"] for r in week["data"]] == ["EMP-ADMIN", "EMP-STAFF"]
        assert week["week_info"]["week_start_date"] == "2026-03-02"

        stats = (await client.get(f"{BASE}/stats/2026/10", headers=admin_headers)).json()["data"]
        assert stats["total_employees"] == 2
        assert stats["total_working_days"] == 10
        assert stats["total_hours"] == 90.0
        assert stats["average_hours"] == 45.0
        assert stats["by_status"] == {"draft": 1, "published": 1, "approved": 0}

    async def test_employee_weeks_in_range(self, client, admin_headers, staff_employee):
        await _add(client, admin_headers, staff_employee, week=10)
        await _add(client, admin_headers, staff_employee, week=12)
        resp = await client.get(
            f"{BASE}/employee/{staff_employee.id}",
            params={"start_date": "2026-03-09", "end_date": "2026-03-31"},
            headers=admin_headers,
        )
        assert [r["week_number"] for r in resp.json()["data"]] == [12]

    async def test_update_recomputes_hours(self, client, admin_headers, staff_employee):
        roster = (await _add(client, admin_headers, staff_employee)).json()["data"]
        resp = await client.put(
            f"{BASE}/{roster['id']}",
            json={"schedule": {"monday": {"start_time": "10pm", "end_time": "6am"}}, "status": "approved"},
            headers=admin_headers,
        )
        data = resp.json()["data"]
        assert Decimal(data["total_hours"]) == Decimal("8")
        assert data["status"] == "approved"

    async def test_delete(self, client, admin_headers, staff_employee):
        roster = (await _add(client, admin_headers, staff_employee)).json()["data"]
        assert (await client.delete(f"{BASE}/{roster['id']}", headers=admin_headers)).status_code == 200
        assert (await client.delete(f"{BASE}/{roster['id']}", headers=admin_headers)).status_code == 404


class TestBulkAndCopy:

    async def test_bulk_with_individual_schedule(
        self, client, admin_headers, admin_employee, staff_employee,
    ):
        resp = await client.post(
            f"{BASE}/bulk",
            json={
                "employee_ids": [str(admin_employee.id), str(staff_employee.id)],
                "year": 2026,
                "week_number": 10,
                "default_schedule": WEEKDAYS,
                "individual_schedules": {
                    str(staff_employee.id): {"monday": {"start_time": "10am", "end_time": "2pm"}},
                },
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["count"] == 2
        hours = {r["employee"]["employee_code"]: Decimal(r["total_hours"]) for r in body["data"]}
        assert hours == {"EMP-ADMIN": Decimal("45"), "EMP-STAFF": Decimal("4")}

    async def test_bulk_rejects_existing_week(self, client, admin_headers, admin_employee, staff_employee):
        await _add(client, admin_headers, staff_employee)
        resp = await client.post(
            f"{BASE}/bulk",
            json={
                "employee_ids": [str(admin_employee.id), str(staff_employee.id)],
                "year": 2026,
                "week_number": 10,
            },
            headers=admin_headers,
        )
        assert resp.status_code == 400
        week = (await client.get(f"{BASE}/week/2026/10", headers=admin_headers)).json()["data"]
        assert len(week) == 1

    async def test_copy_week_as_drafts(self, client, db, admin_headers, staff_employee):
        other = await make_employee(
            db, await make_user(db, email="olive@example.com", first_name="Olive"),
            employee_code="EMP-OLIVE",
        )
        await _add(client, admin_headers, staff_employee, status="published")
        await _add(client, admin_headers, other)

        resp = await client.post(
            f"{BASE}/copy",
            json={
                "from_year": 2026, "from_week": 10, "to_year": 2026, "to_week": 11,
                "employee_ids": [str(staff_employee.id)],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        copies = resp.json()["data"]
        assert len(copies) == 1
        assert copies[0]["status"] == "draft"
        assert copies[0]["week_start_date"] == "2026-03-09"
        assert copies[0]["schedule"]["monday"] == NINE_TO_SIX

        again = await client.post(
            f"{BASE}/copy",
            json={"from_year": 2026, "from_week": 10, "to_year": 2026, "to_week": 11},
            headers=admin_headers,
        )
        assert again.status_code == 400

    async def test_copy_from_empty_week(self, client, admin_headers):
        resp = await client.post(
            f"{BASE}/copy",
            json={"from_year": 2026, "from_week": 20, "to_year": 2026, "to_week": 21},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    async def test_copy_onto_itself(self, client, admin_headers):
        resp = await client.post(
            f"{BASE}/copy",
            json={"from_year": 2026, "from_week": 10, "to_year": 2026, "to_week": 10},
            headers=admin_headers,
        )
        assert resp.status_code == 400
