"""Supervisor assignment tests — assign, transfer, unassign, history."""

from __future__ import annotations

import pytest

from tests.conftest import make_role, make_user

BASE = "/api/v1/assignments"


@pytest.fixture
async def intern_user(db, staff_role):
    role = await make_role(db, name="intern", parent=staff_role)
    return await make_user(
        db, email="intern@example.com", first_name="Ivy", last_name="Intern", role=role,
    )


async def _assign(client, headers, supervisor, *subs):
    return await client.post(
        BASE,
        json={
            "supervisor_id": str(supervisor.id),
            "subordinate_ids": [str(s.id) for s in subs],
            "reason": "Team setup",
        },
        headers=headers,
    )


# ═════════════════════════════════════════════════════════════════════
# Assign
# ═════════════════════════════════════════════════════════════════════


class TestAssign:

    async def test_assign_subordinates(self, client, admin_headers, admin_user, staff_user, intern_user):
        resp = await _assign(client, admin_headers, admin_user, staff_user, intern_user)
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        assert {a["subordinate"]["email"] for a in data} == {"staff@example.com", "intern@example.com"}
        assert all(a["status"] == "active" for a in data)
        assert data[0]["supervisor"]["full_name"] == "Ada Admin"

    async def test_one_active_supervisor_per_subordinate(self, client, admin_headers, admin_user, staff_user):
        await _assign(client, admin_headers, admin_user, staff_user)
        resp = await _assign(client, admin_headers, admin_user, staff_user)
        assert resp.status_code == 400
        assert "already has an active supervisor" in resp.json()["message"]

    async def test_subordinate_must_be_deeper(self, client, admin_headers, admin_user, staff_user):
        resp = await _assign(client, admin_headers, staff_user, admin_user)
        assert resp.status_code == 400
        assert "is not below" in resp.json()["message"]

    async def test_cannot_supervise_self(self, client, admin_headers, admin_user):
        resp = await _assign(client, admin_headers, admin_user, admin_user)
        assert resp.status_code == 400

    async def test_supervisor_without_role(self, client, db, admin_headers, staff_user):
        loner = await make_user(db, email="loner@example.com")
        resp = await _assign(client, admin_headers, loner, staff_user)
        assert resp.status_code == 400
        assert resp.json()["errors"]["supervisor_id"] == ["Supervisor has no role assigned."]

    async def test_all_or_nothing(self, client, admin_headers, admin_user, staff_user, intern_user):
        await _assign(client, admin_headers, admin_user, intern_user)
        resp = await _assign(client, admin_headers, admin_user, staff_user, intern_user)
        assert resp.status_code == 400

        assigned = await client.get(
            f"{BASE}/supervisors/{admin_user.id}/assigned", headers=admin_headers,
        )
        assert [a["subordinate"]["email"] for a in assigned.json()["data"]] == ["intern@example.com"]

    async def test_requires_permission(self, client, staff_headers, staff_user, intern_user):
        resp = await _assign(client, staff_headers, staff_user, intern_user)
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# Transfer / unassign
# ═════════════════════════════════════════════════════════════════════


class TestTransferAndUnassign:

    async def test_transfer(self, client, admin_headers, admin_user, staff_user, intern_user):
        await _assign(client, admin_headers, admin_user, intern_user)

        resp = await client.post(
            f"{BASE}/transfer",
            json={"subordinate_ids": [str(intern_user.id)], "to_supervisor_id": str(staff_user.id)},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        moved = resp.json()["data"][0]
        assert moved["supervisor"]["email"] == "staff@example.com"

        old = await client.get(f"{BASE}/supervisors/{admin_user.id}/assigned", headers=admin_headers)
        assert old.json()["data"] == []

    async def test_transfer_to_same_supervisor(self, client, admin_headers, admin_user, intern_user):
        await _assign(client, admin_headers, admin_user, intern_user)
        resp = await client.post(
            f"{BASE}/transfer",
            json={"subordinate_ids": [str(intern_user.id)], "to_supervisor_id": str(admin_user.id)},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "already reports" in resp.json()["message"]

    async def test_transfer_requires_active_assignment(self, client, admin_headers, staff_user, intern_user):
        resp = await client.post(
            f"{BASE}/transfer",
            json={"subordinate_ids": [str(intern_user.id)], "to_supervisor_id": str(staff_user.id)},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_unassign(self, client, admin_headers, admin_user, staff_user):
        await _assign(client, admin_headers, admin_user, staff_user)
        payload = {"subordinate_ids": [str(staff_user.id)]}

        resp = await client.post(f"{BASE}/unassign", json=payload, headers=admin_headers)
        assert resp.json()["data"] == {"ended": 1}
        again = await client.post(f"{BASE}/unassign", json=payload, headers=admin_headers)
        assert again.status_code == 400

    async def test_unassign_checks_supervisor(self, client, admin_headers, admin_user, staff_user, intern_user):
        await _assign(client, admin_headers, admin_user, intern_user)
        resp = await client.post(
            f"{BASE}/unassign",
            json={"subordinate_ids": [str(intern_user.id)], "supervisor_id": str(staff_user.id)},
            headers=admin_headers,
        )
        assert resp.status_code == 400


# ═════════════════════════════════════════════════════════════════════
# Reads
# ═════════════════════════════════════════════════════════════════════


class TestReads:

    async def test_available_excludes_assigned(self, client, admin_headers, admin_user, staff_user, intern_user):
        await _assign(client, admin_headers, admin_user, intern_user)
        resp = await client.get(f"{BASE}/available", headers=admin_headers)
        assert [u["email"] for u in resp.json()["data"]] == ["staff@example.com"]

    async def test_my_assigned(self, client, admin_headers, admin_user, staff_user):
        await _assign(client, admin_headers, admin_user, staff_user)
        resp = await client.get(f"{BASE}/assigned", headers=admin_headers)
        assert [a["subordinate"]["email"] for a in resp.json()["data"]] == ["staff@example.com"]

    async def test_history_records_every_change(
        self, client, admin_headers, admin_user, staff_user, intern_user,
    ):
        await _assign(client, admin_headers, admin_user, intern_user)
        await client.post(
            f"{BASE}/transfer",
            json={"subordinate_ids": [str(intern_user.id)], "to_supervisor_id": str(staff_user.id)},
            headers=admin_headers,
        )
        await client.post(
            f"{BASE}/unassign", json={"subordinate_ids": [str(intern_user.id)]}, headers=admin_headers,
        )

        resp = await client.get(
            f"{BASE}/history", params={"subordinate_id": str(intern_user.id)}, headers=admin_headers,
        )
        body = resp.json()
        assert body["meta"]["total"] == 3
        assert sorted(h["action"] for h in body["data"]) == ["created", "ended", "transferred"]

        created = await client.get(f"{BASE}/history", params={"action": "created"}, headers=admin_headers)
        entry = created.json()["data"][0]
        assert entry["reason"] == "Team setup"
        assert entry["performed_by"] == str(admin_user.id)
