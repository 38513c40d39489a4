"""Company settings tests — initialisation, recipients, allocations, payroll components."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from hrms.company.models import Company
from hrms.company.service import profile_completeness

BASE = "/api/v1/company"


async def _initialize(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {
        "name": "Acme Corp",
        "domain": "Acme.example.com",
        "ceo_name": "Wile E. Coyote",
        "address": {"street": "1 Canyon Rd", "city": "Mesa", "country": "US"},
        "contact_info": {"email": "HR@Acme.example.com", "phone": "+1-555-0100"},
        "leave_allocations": {"casual": 12, "medical": 10, "paid": 15},
    }
    payload.update(overrides)
    resp = await client.post(f"{BASE}/initialize", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
async def company(client, admin_headers) -> dict:
    return await _initialize(client, admin_headers)


# ═════════════════════════════════════════════════════════════════════
# Profile
# ═════════════════════════════════════════════════════════════════════


class TestCompanyProfile:

    async def test_exists_is_public(self, client):
        resp = await client.get(f"{BASE}/exists")
        assert resp.json() == {"success": True, "exists": False, "data": None}

    async def test_initialize(self, client, admin_headers):
        data = await _initialize(client, admin_headers)
        assert data["domain"] == "acme.example.com"
        assert data["contact_info"]["email"] == "hr@acme.example.com"
        assert data["ceo_talk"].startswith("Thank you for reaching out.")
        assert data["email_recipients"] == {"to": [], "cc": [], "bcc": []}
        assert data["grace_period"] == 15

        exists = (await client.get(f"{BASE}/exists")).json()
        assert exists["exists"] is True
        assert exists["data"]["name"] == "Acme Corp"

    async def test_initialize_twice_rejected(self, client, admin_headers, company):
        resp = await client.post(
            f"{BASE}/initialize",
            json={"name": "Again", "domain": "again.example.com", "ceo_name": "X"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Company already exists."

    async def test_get_before_initialize_is_404(self, client, admin_headers):
        assert (await client.get(BASE, headers=admin_headers)).status_code == 404

    async def test_update_and_ceo_talk(self, client, admin_headers, company):
        resp = await client.put(
            BASE, json={"industry": "Anvils", "grace_period": 5}, headers=admin_headers,
        )
        assert resp.json()["data"]["industry"] == "Anvils"
        assert resp.json()["data"]["grace_period"] == 5

        talk = await client.put(
            f"{BASE}/ceo-talk", json={"message": "  Beep beep.  "}, headers=admin_headers,
        )
        assert talk.json()["data"] == {"ceo_talk": "Beep beep."}

    async def test_address_and_contact(self, client, admin_headers, company):
        resp = await client.put(
            f"{BASE}/address", json={"street": "2 Mesa Way", "city": "Tucson"}, headers=admin_headers,
        )
        assert resp.json()["data"]["city"] == "Tucson"
        assert resp.json()["data"]["country"] is None

        resp = await client.put(f"{BASE}/contact", json={"email": "OPS@acme.example.com"}, headers=admin_headers)
        assert resp.json()["data"]["email"] == "ops@acme.example.com"

    async def test_sender_defaults_from_user(self, client, admin_headers, admin_user, company):
        resp = await client.put(
            f"{BASE}/sender", json={"user_id": str(admin_user.id)}, headers=admin_headers,
        )
        sender = resp.json()["data"]
        assert sender["name"] == "Ada Admin"
        assert sender["email"] == "admin@example.com"

    async def test_staff_cannot_update(self, client, staff_headers, company):
        resp = await client.put(BASE, json={"industry": "Rockets"}, headers=staff_headers)
        assert resp.status_code == 403

    async def test_stats(self, client, admin_headers, company):
        data = (await client.get(f"{BASE}/stats", headers=admin_headers)).json()["data"]
        assert data["basic"]["domain"] == "acme.example.com"
        assert data["contact"]["has_complete_address"] is True
        assert data["metrics"]["employee_count"] == 1
        assert data["settings"]["recipient_counts"] == {"to": 0, "cc": 0, "bcc": 0}

    def test_profile_completeness(self):
        company = Company(name="Acme", domain="acme.example.com", ceo_name="W")
        assert profile_completeness(company) == 27
        company.address = {"street": "1", "city": "Mesa", "country": "US"}
        assert profile_completeness(company) == 55


# ═════════════════════════════════════════════════════════════════════
# Recipients / leave allocations
# ═════════════════════════════════════════════════════════════════════


class TestRecipients:

    async def test_add_and_remove(self, client, admin_headers, company):
        resp = await client.post(
            f"{BASE}/recipients",
            json={"type": "cc", "email": "Boss@acme.example.com", "name": "Boss"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        cc = resp.json()["data"]["cc"]
        assert cc[0]["email"] == "boss@acme.example.com"

        removed = await client.delete(
            f"{BASE}/recipients/{cc[0]['id']}", params={"type": "cc"}, headers=admin_headers,
        )
        assert removed.json()["data"]["cc"] == []

    async def test_duplicate_recipient_rejected(self, client, admin_headers, company):
        body = {"type": "to", "email": "a@acme.example.com"}
        await client.post(f"{BASE}/recipients", json=body, headers=admin_headers)
        resp = await client.post(
            f"{BASE}/recipients", json={**body, "email": "A@acme.example.com"}, headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_same_email_allowed_in_other_list(self, client, admin_headers, company):
        await client.post(f"{BASE}/recipients", json={"type": "to", "email": "a@x.com"}, headers=admin_headers)
        resp = await client.post(
            f"{BASE}/recipients", json={"type": "bcc", "email": "a@x.com"}, headers=admin_headers,
        )
        assert resp.status_code == 200

    async def test_remove_unknown_recipient(self, client, admin_headers, company):
        resp = await client.delete(f"{BASE}/recipients/nope", params={"type": "to"}, headers=admin_headers)
        assert resp.status_code == 404

    async def test_remove_requires_valid_type(self, client, admin_headers, company):
        resp = await client.delete(f"{BASE}/recipients/nope", params={"type": "fax"}, headers=admin_headers)
        assert resp.status_code == 400


class TestLeaveAllocations:

    async def test_get_and_set(self, client, admin_headers, company):
        resp = await client.get(
            f"{BASE}/leave-allocation", params={"leave_type": "Casual"}, headers=admin_headers,
        )
        assert resp.json()["data"] == {"leave_type": "casual", "allocation": 12}

        updated = await client.put(
            f"{BASE}/leave-allocation",
            json={"leave_type": " Sabbatical ", "allocation": 30},
            headers=admin_headers,
        )
        assert updated.json()["data"]["sabbatical"] == 30

        unknown = await client.get(
            f"{BASE}/leave-allocation", params={"leave_type": "unknown"}, headers=admin_headers,
        )
        assert unknown.json()["data"]["allocation"] == 0


# ═════════════════════════════════════════════════════════════════════
# Payroll components
# ═════════════════════════════════════════════════════════════════════


class TestPayrollComponents:

    async def test_add_patch_delete(self, client, admin_headers, company):
        resp = await client.post(
            f"{BASE}/payroll/components",
            json={"name": "Basic", "code": " BASIC ", "percent": 50},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"] == [
            {"name": "Basic", "code": "basic", "percent": 50.0, "is_active": True},
        ]

        dup = await client.post(
            f"{BASE}/payroll/components",
            json={"name": "Basic again", "code": "basic", "percent": 10},
            headers=admin_headers,
        )
        assert dup.status_code == 400

        patched = await client.patch(
            f"{BASE}/payroll/components/BASIC",
            json={"name": "Base pay", "percent": "50.0"},
            headers=admin_headers,
        )
        assert patched.json()["data"]["name"] == "Base pay"
        assert patched.json()["data"]["percent"] == 50.0

        deleted = await client.delete(f"{BASE}/payroll/components/basic", headers=admin_headers)
        assert deleted.json()["data"] == []

    async def test_patch_without_fields(self, client, admin_headers, company):
        await client.post(
            f"{BASE}/payroll/components",
            json={"name": "HRA", "code": "hra", "percent": 20},
            headers=admin_headers,
        )
        resp = await client.patch(f"{BASE}/payroll/components/hra", json={}, headers=admin_headers)
        assert resp.status_code == 400

    async def test_replace_validates_codes(self, client, admin_headers, company):
        resp = await client.put(
            f"{BASE}/payroll/components",
            json={"components": [{"name": "Bonus", "code": "bonus", "percent": 5}]},
            headers=admin_headers,
        )
        assert resp.status_code == 400

        ok = await client.put(
            f"{BASE}/payroll/components",
            json={
                "components": [
                    {"name": "Basic", "code": "basic", "percent": 50},
                    {"name": "HRA", "code": "hra", "percent": 30},
                    {"name": "Allowances", "code": "allowances", "percent": 20},
                ],
            },
            headers=admin_headers,
        )
        assert [c["code"] for c in ok.json()["data"]] == ["basic", "hra", "allowances"]

    async def test_delete_unknown_component(self, client, admin_headers, company):
        resp = await client.delete(f"{BASE}/payroll/components/ghost", headers=admin_headers)
        assert resp.status_code == 404


SPLIT_40_40_20 = [
    {"name": "Basic", "code": "basic", "percent": 40},
    {"name": "HRA", "code": "hra", "percent": 40},
    {"name": "Allowances", "code": "allowances", "percent": 20},
]


class TestSplitTotal:

    async def _components(self, client, headers) -> list[dict]:
        resp = await client.get(f"{BASE}/payroll/components", headers=headers)
        return resp.json()["data"]

    async def test_add_over_100_rejected(self, client, admin_headers, company):
        # 60 + default hra 20 + default allowances 30
        resp = await client.post(
            f"{BASE}/payroll/components",
            json={"name": "Basic", "code": "basic", "percent": 60},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "payroll_components" in resp.json()["errors"]
        assert await self._components(client, admin_headers) == []

    async def test_replace_must_total_100(self, client, admin_headers, company):
        resp = await client.put(
            f"{BASE}/payroll/components",
            json={
                "components": [
                    {"name": "Basic", "code": "basic", "percent": 60},
                    {"name": "HRA", "code": "hra", "percent": 30},
                    {"name": "Allowances", "code": "allowances", "percent": 30},
                ],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "basic 60%" in resp.json()["message"]

    async def test_changes_that_break_the_total(self, client, admin_headers, company):
        ok = await client.put(
            f"{BASE}/payroll/components",
            json={"components": SPLIT_40_40_20},
            headers=admin_headers,
        )
        assert ok.status_code == 200, ok.text

        raised = await client.patch(
            f"{BASE}/payroll/components/basic", json={"percent": 45}, headers=admin_headers,
        )
        assert raised.status_code == 400

        # An inactive or deleted component falls back to the default basic 50%
        inactive = await client.patch(
            f"{BASE}/payroll/components/basic", json={"is_active": False}, headers=admin_headers,
        )
        assert inactive.status_code == 400
        deleted = await client.delete(f"{BASE}/payroll/components/basic", headers=admin_headers)
        assert deleted.status_code == 400

        current = await self._components(client, admin_headers)
        assert [(c["code"], c["percent"], c["is_active"]) for c in current] == [
            ("basic", 40.0, True),
            ("hra", 40.0, True),
            ("allowances", 20.0, True),
        ]
