"""Core HR tests — employees, departments, designations."""

from __future__ import annotations

from datetime import date, timedelta

from httpx import AsyncClient

from hrms.core_hr.service import _next_birthday
from tests.conftest import auth_headers_for, make_department, make_employee, make_user

EMPLOYEES = "/api/v1/employees"
DEPARTMENTS = "/api/v1/departments"
DESIGNATIONS = "/api/v1/designations"


def _employee_payload(**overrides) -> dict:
    payload = {
        "email": "Grace.Hopper@example.com",
        "password": "compilers1",
        "first_name": "Grace",
        "last_name": "Hopper",
        "employee_code": "EMP-100",
        "joining_date": "2025-06-01",
        "salary_amount": "45000.00",
    }
    payload.update(overrides)
    return payload


async def _create_employee(client: AsyncClient, headers: dict, **overrides) -> dict:
    resp = await client.post(EMPLOYEES, json=_employee_payload(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ═════════════════════════════════════════════════════════════════════
# Employees
# ═════════════════════════════════════════════════════════════════════


class TestCreateEmployee:

    async def test_creates_account_and_profile(self, client, admin_headers):
        data = await _create_employee(client, admin_headers)
        assert data["employee_code"] == "EMP-100"
        assert data["full_name"] == "Grace Hopper"
        assert data["user"]["email"] == "grace.hopper@example.com"
        assert data["user"]["status"] == "active"
        assert data["payment_frequency"] == "monthly"

        login = await client.post(
            "/api/v1/auth/login",
            json={"email": "grace.hopper@example.com", "password": "compilers1"},
        )
        assert login.status_code == 200

    async def test_duplicate_code_case_insensitive(self, client, admin_headers):
        await _create_employee(client, admin_headers)
        resp = await client.post(
            EMPLOYEES,
            json=_employee_payload(email="other@example.com", employee_code="emp-100"),
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "duplicate"
        assert "employee_code" in resp.json()["errors"]

    async def test_duplicate_email(self, client, admin_headers):
        resp = await client.post(
            EMPLOYEES,
            json=_employee_payload(email="admin@example.com", employee_code="EMP-200"),
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "email" in resp.json()["errors"]

    async def test_unknown_references(self, client, admin_headers):
        resp = await client.post(
            EMPLOYEES,
            json=_employee_payload(
                role_id="00000000-0000-0000-0000-0000000000aa",
                department_id="00000000-0000-0000-0000-0000000000bb",
            ),
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert set(resp.json()["errors"]) == {"role_id", "department_id"}

    async def test_short_password_rejected(self, client, admin_headers):
        resp = await client.post(
            EMPLOYEES, json=_employee_payload(password="short"), headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_staff_cannot_create(self, client, staff_headers):
        resp = await client.post(EMPLOYEES, json=_employee_payload(), headers=staff_headers)
        assert resp.status_code == 403


class TestReadEmployee:

    async def test_list_search_and_meta(self, client, admin_headers, staff_employee):
        resp = await client.get(EMPLOYEES, params={"search": "sam"}, headers=admin_headers)
        body = resp.json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["employee_code"] == "EMP-STAFF"

    async def test_list_by_department(self, client, db, admin_headers):
        dept = await make_department(db, name="Finance")
        await _create_employee(client, admin_headers, department_id=str(dept.id))
        resp = await client.get(EMPLOYEES, params={"department_id": str(dept.id)}, headers=admin_headers)
        assert [e["employee_code"] for e in resp.json()["data"]] == ["EMP-100"]

    async def test_staff_reads_self_but_not_others(
        self, client, staff_headers, staff_employee, admin_employee,
    ):
        own = await client.get(f"{EMPLOYEES}/{staff_employee.id}", headers=staff_headers)
        assert own.status_code == 200
        other = await client.get(f"{EMPLOYEES}/{admin_employee.id}", headers=staff_headers)
        assert other.status_code == 403
        assert (await client.get(EMPLOYEES, headers=staff_headers)).status_code == 403

    async def test_my_profile(self, client, staff_headers):
        resp = await client.get(f"{EMPLOYEES}/me/profile", headers=staff_headers)
        assert resp.json()["data"]["employee_code"] == "EMP-STAFF"

    async def test_profile_missing_for_user_without_employee(self, client, db, admin_user):
        headers = await auth_headers_for(db, admin_user)
        resp = await client.get(f"{EMPLOYEES}/me/profile", headers=headers)
        assert resp.status_code == 404

    async def test_unknown_employee_is_404(self, client, admin_headers):
        resp = await client.get(
            f"{EMPLOYEES}/00000000-0000-0000-0000-000000000123", headers=admin_headers,
        )
        assert resp.status_code == 404


class TestUpdateEmployee:

    async def test_update_writes_through_to_user(self, client, admin_headers):
        created = await _create_employee(client, admin_headers)
        resp = await client.put(
            f"{EMPLOYEES}/{created['id']}",
            json={"first_name": "Amazing", "salary_amount": "50000", "position": "Rear Admiral"},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["full_name"] == "Amazing Hopper"
        assert data["user"]["position"] == "Rear Admiral"
        assert float(data["salary_amount"]) == 50000

    async def test_update_code_clash(self, client, admin_headers, staff_employee):
        created = await _create_employee(client, admin_headers)
        resp = await client.put(
            f"{EMPLOYEES}/{created['id']}", json={"employee_code": "EMP-STAFF"}, headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_delete_removes_account(self, client, admin_headers):
        created = await _create_employee(client, admin_headers)
        resp = await client.delete(f"{EMPLOYEES}/{created['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert (await client.get(f"{EMPLOYEES}/{created['id']}", headers=admin_headers)).status_code == 404
        login = await client.post(
            "/api/v1/auth/login",
            json={"email": "grace.hopper@example.com", "password": "compilers1"},
        )
        assert login.status_code == 404


class TestEmployeeExtras:

    async def test_upcoming_birthdays(self, client, db, admin_headers):
        target = date.today() + timedelta(days=3)
        user = await make_user(db, email="bday@example.com", first_name="Bea", last_name="Day")
        await make_employee(db, user, date_of_birth=target.replace(year=1992))

        resp = await client.get(f"{EMPLOYEES}/birthdays", params={"days": 7}, headers=admin_headers)
        items = resp.json()["data"]
        assert [i["full_name"] for i in items] == ["Bea Day"]
        assert items[0]["days_until"] == 3

    def test_next_birthday_leap_day(self):
        assert _next_birthday(date(1992, 2, 29), date(2027, 1, 1)) == date(2027, 2, 28)
        assert _next_birthday(date(1992, 2, 29), date(2028, 1, 1)) == date(2028, 2, 29)
        assert _next_birthday(date(1990, 1, 1), date(2026, 6, 1)) == date(2027, 1, 1)

    async def test_new_members_for_month(self, client, admin_headers, staff_employee):
        resp = await client.get(f"{EMPLOYEES}/new-members/2024/1", headers=admin_headers)
        codes = sorted(e["employee_code"] for e in resp.json()["data"])
        assert codes == ["EMP-ADMIN", "EMP-STAFF"]

        bad = await client.get(f"{EMPLOYEES}/new-members/2024/13", headers=admin_headers)
        assert bad.status_code == 400

    async def test_profile_picture_upload(self, client, staff_headers, staff_employee):
        resp = await client.post(
            f"{EMPLOYEES}/{staff_employee.id}/profile-picture",
            files={"file": ("me.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
            headers=staff_headers,
        )
        assert resp.status_code == 200, resp.text
        url = resp.json()["data"]["profile_picture"]
        assert url.startswith("/uploads/profile_pictures/") and url.endswith(".png")

    async def test_upload_rejects_wrong_type(self, client, staff_headers, staff_employee):
        resp = await client.post(
            f"{EMPLOYEES}/{staff_employee.id}/profile-picture",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=staff_headers,
        )
        assert resp.status_code == 400

    async def test_document_upload_appends(self, client, admin_headers, staff_employee):
        resp = await client.post(
            f"{EMPLOYEES}/{staff_employee.id}/documents",
            files={"file": ("contract.pdf", b"%PDF-1.4", "application/pdf")},
            data={"name": "Contract"},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["data"]["name"] == "Contract"

        detail = (await client.get(f"{EMPLOYEES}/{staff_employee.id}", headers=admin_headers)).json()["data"]
        assert [d["name"] for d in detail["documents"]] == ["Contract"]


# ═════════════════════════════════════════════════════════════════════
# Departments / designations
# ═════════════════════════════════════════════════════════════════════


class TestDepartments:

    async def test_employee_count(self, client, admin_headers):
        dept = (
            await client.post(DEPARTMENTS, json={"name": "Research"}, headers=admin_headers)
        ).json()["data"]
        assert dept["employee_count"] == 0

        await _create_employee(client, admin_headers, department_id=dept["id"])
        resp = await client.get(f"{DEPARTMENTS}/{dept['id']}", headers=admin_headers)
        assert resp.json()["data"]["employee_count"] == 1

        listed = (await client.get(DEPARTMENTS, headers=admin_headers)).json()["data"]
        assert listed[0]["employee_count"] == 1

    async def test_duplicate_name(self, client, admin_headers):
        await client.post(DEPARTMENTS, json={"name": "Legal"}, headers=admin_headers)
        resp = await client.post(DEPARTMENTS, json={"name": " legal "}, headers=admin_headers)
        assert resp.status_code == 400

    async def test_department_with_members_not_deleted(self, client, admin_headers):
        dept = (
            await client.post(DEPARTMENTS, json={"name": "Research"}, headers=admin_headers)
        ).json()["data"]
        await _create_employee(client, admin_headers, department_id=dept["id"])
        resp = await client.delete(f"{DEPARTMENTS}/{dept['id']}", headers=admin_headers)
        assert resp.status_code == 400

    async def test_staff_cannot_manage(self, client, staff_headers):
        resp = await client.post(DEPARTMENTS, json={"name": "Shadow"}, headers=staff_headers)
        assert resp.status_code == 403


class TestDesignations:

    async def test_create_with_department(self, client, db, admin_headers):
        dept = await make_department(db)
        resp = await client.post(
            DESIGNATIONS,
            json={"title": "Backend Engineer", "department_id": str(dept.id)},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["data"]["department"]["name"] == "Engineering"

    async def test_unknown_department(self, client, admin_headers):
        resp = await client.post(
            DESIGNATIONS,
            json={"title": "Ghost", "department_id": "00000000-0000-0000-0000-0000000000cc"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_duplicate_title(self, client, admin_headers):
        await client.post(DESIGNATIONS, json={"title": "Analyst"}, headers=admin_headers)
        resp = await client.post(DESIGNATIONS, json={"title": "ANALYST"}, headers=admin_headers)
        assert resp.status_code == 400

    async def test_filter_active(self, client, admin_headers):
        await client.post(DESIGNATIONS, json={"title": "Current"}, headers=admin_headers)
        await client.post(DESIGNATIONS, json={"title": "Retired", "is_active": False}, headers=admin_headers)
        resp = await client.get(DESIGNATIONS, params={"is_active": True}, headers=admin_headers)
        assert [d["title"] for d in resp.json()["data"]] == ["Current"]
