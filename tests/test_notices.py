"""Notice board tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

BASE = "/api/v1/notices"


async def _post(client, headers, title, **extra):
    resp = await client.post(
        BASE,
        json={"title": title, "content": f"{title} body", "status": "published", **extra},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestNotices:

    async def test_create_records_author(self, client, admin_headers, admin_user):
        data = await _post(client, admin_headers, "Office closed")
        assert data["author"]["full_name"] == "Ada Admin"
        assert data["author_id"] == str(admin_user.id)
        assert data["category"] == "general"
        assert data["priority"] == "normal"

    async def test_pinned_first(self, client, admin_headers, staff_headers):
        await _post(client, admin_headers, "Old news")
        await _post(client, admin_headers, "Pinned", is_pinned=True)
        await _post(client, admin_headers, "Latest")

        resp = await client.get(BASE, headers=staff_headers)
        assert [n["title"] for n in resp.json()["data"]] == ["Pinned", "Latest", "Old news"]

    async def test_expired_and_drafts_hidden(self, client, admin_headers):
        past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        future = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
        await _post(client, admin_headers, "Expired", expiry_date=past)
        await _post(client, admin_headers, "Still on", expiry_date=future)
        await _post(client, admin_headers, "Draft", status="draft")

        resp = await client.get(BASE, headers=admin_headers)
        assert [n["title"] for n in resp.json()["data"]] == ["Still on"]

        drafts = await client.get(BASE, params={"status": "draft"}, headers=admin_headers)
        assert [n["title"] for n in drafts.json()["data"]] == ["Draft"]

    async def test_filters_and_search(self, client, admin_headers):
        await _post(client, admin_headers, "Payroll delay", category="finance", priority="urgent")
        await _post(client, admin_headers, "Team lunch", category="social")

        finance = await client.get(BASE, params={"category": "finance"}, headers=admin_headers)
        assert [n["title"] for n in finance.json()["data"]] == ["Payroll delay"]
        urgent = await client.get(BASE, params={"priority": "urgent"}, headers=admin_headers)
        assert urgent.json()["meta"]["total"] == 1
        found = await client.get(BASE, params={"search": "LUNCH"}, headers=admin_headers)
        assert [n["title"] for n in found.json()["data"]] == ["Team lunch"]

    async def test_deactivated_notice_hidden(self, client, admin_headers):
        notice = await _post(client, admin_headers, "Gone soon")
        resp = await client.put(
            f"{BASE}/{notice['id']}", json={"is_active": False}, headers=admin_headers,
        )
        assert resp.json()["data"]["is_active"] is False
        assert (await client.get(BASE, headers=admin_headers)).json()["data"] == []

    async def test_update_and_delete(self, client, admin_headers):
        notice = await _post(client, admin_headers, "Typo")
        resp = await client.put(
            f"{BASE}/{notice['id']}", json={"title": "Fixed"}, headers=admin_headers,
        )
        assert resp.json()["data"]["title"] == "Fixed"

        assert (await client.delete(f"{BASE}/{notice['id']}", headers=admin_headers)).status_code == 200
        assert (await client.get(f"{BASE}/{notice['id']}", headers=admin_headers)).status_code == 404

    async def test_staff_cannot_post(self, client, staff_headers):
        resp = await client.post(
            BASE, json={"title": "Hi", "content": "there"}, headers=staff_headers,
        )
        assert resp.status_code == 403

    async def test_requires_login(self, client):
        assert (await client.get(BASE)).status_code == 401
