"""End-of-day report tests."""

from __future__ import annotations

from tests.conftest import auth_headers_for, make_department, make_employee, make_user

BASE = "/api/v1/eod-reports"

ACTIVITIES = [
    {"activity": "Code review", "start_time": "10am", "end_time": "11:30am", "status": "Completed"},
    {"activity": "Release prep", "start_time": "14:00", "end_time": "17:00", "status": "Ongoing"},
]


async def _submit(client, headers, **extra):
    return await client.post(
        BASE,
        json={"date": "2026-03-02", "activities": ACTIVITIES, **extra},
        headers=headers,
    )


class TestSubmit:

    async def test_defaults_from_employee_profile(self, client, staff_headers, staff_employee):
        resp = await _submit(client, staff_headers, plans="Ship it")
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        assert data["employee_id"] == str(staff_employee.id)
        assert data["employee_name"] == "Sam Staff"
        assert data["activities"][0]["status"] == "Completed"
        assert data["plans"] == "Ship it"

    async def test_department_from_user(self, client, db, admin_headers):
        dept = await make_department(db, name="Platform")
        user = await make_user(db, email="dee@example.com", first_name="Dee", last_name="Vops", department=dept)
        employee = await make_employee(db, user, employee_code="EMP-DEE")
        resp = await _submit(client, admin_headers, employee_id=str(employee.id))
        assert resp.json()["data"]["department"] == "Platform"
        assert resp.json()["data"]["employee_name"] == "Dee Vops"

    async def test_explicit_fields_win(self, client, staff_headers):
        resp = await _submit(client, staff_headers, employee_name="S. Staff", department="Ops")
        data = resp.json()["data"]
        assert data["employee_name"] == "S. Staff"
        assert data["department"] == "Ops"

    async def test_name_required_without_profile(self, client, db, admin_user):
        headers = await auth_headers_for(db, admin_user)
        resp = await _submit(client, headers)
        assert resp.status_code == 400
        assert "employee_name" in resp.json()["errors"]

    async def test_bad_activity_time(self, client, staff_headers):
        resp = await _submit(
            client, staff_headers, activities=[{"activity": "Lunch", "start_time": "lunchtime"}],
        )
        assert resp.status_code == 400


class TestRead:

    async def test_by_employee_name(self, client, staff_headers):
        await _submit(client, staff_headers)
        await _submit(client, staff_headers, date="2026-03-03")

        resp = await client.get(f"{BASE}/employee/sam staff", headers=staff_headers)
        body = resp.json()
        assert body["count"] == 2
        assert [r["date"] for r in body["data"]] == ["2026-03-03", "2026-03-02"]

    async def test_unknown_name_is_404(self, client, staff_headers):
        resp = await client.get(f"{BASE}/employee/Nobody", headers=staff_headers)
        assert resp.status_code == 404

    async def test_list_date_range(self, client, staff_headers, staff_employee):
        await _submit(client, staff_headers)
        await _submit(client, staff_headers, date="2026-03-10")

        resp = await client.get(
            BASE,
            params={"employee_id": str(staff_employee.id), "date_from": "2026-03-05"},
            headers=staff_headers,
        )
        assert [r["date"] for r in resp.json()["data"]] == ["2026-03-10"]


class TestUpdateDelete:

    async def test_update(self, client, staff_headers):
        report = (await _submit(client, staff_headers)).json()["data"]
        resp = await client.put(
            f"{BASE}/{report['id']}",
            json={"issues": "Flaky CI", "date": "2026-03-04", "employee_name": None},
            headers=staff_headers,
        )
        data = resp.json()["data"]
        assert data["issues"] == "Flaky CI"
        assert data["date"] == "2026-03-04"
        assert data["employee_name"] == "Sam Staff"

    async def test_delete(self, client, staff_headers):
        report = (await _submit(client, staff_headers)).json()["data"]
        assert (await client.delete(f"{BASE}/{report['id']}", headers=staff_headers)).status_code == 200
        assert (await client.get(f"{BASE}/{report['id']}", headers=staff_headers)).status_code == 404
