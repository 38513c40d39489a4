"""Country reference data tests — lookup by code, states, bulk upsert."""

from __future__ import annotations

import pytest

BASE = "/api/v1/countries"

INDIA = {
    "code2": "in",
    "code3": "ind",
    "name": "India",
    "capital": "New Delhi",
    "region": "Asia",
    "states": [
        {"code": "KA", "name": "Karnataka"},
        {"code": "MH", "name": "Maharashtra"},
    ],
}


@pytest.fixture
async def india(client, admin_headers) -> dict:
    resp = await client.post(BASE, json=INDIA, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestCountries:

    async def test_codes_uppercased(self, india):
        assert india["code2"] == "IN"
        assert india["code3"] == "IND"
        assert [s["name"] for s in india["states"]] == ["Karnataka", "Maharashtra"]

    @pytest.mark.parametrize("key", ["IN", "in", "IND", "ind"])
    async def test_lookup_by_code(self, client, admin_headers, india, key):
        resp = await client.get(f"{BASE}/{key}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == india["id"]

    async def test_lookup_by_id(self, client, admin_headers, india):
        resp = await client.get(f"{BASE}/{india['id']}", headers=admin_headers)
        assert resp.json()["data"]["name"] == "India"

    async def test_unknown_code_is_404(self, client, admin_headers):
        assert (await client.get(f"{BASE}/ZZ", headers=admin_headers)).status_code == 404
        assert (await client.get(f"{BASE}/not-a-code", headers=admin_headers)).status_code == 404

    async def test_duplicate_code(self, client, admin_headers, india):
        resp = await client.post(
            BASE, json={**INDIA, "code3": "INX", "name": "Other", "states": []}, headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["errors"] == {"code2": ["'IN' is already in use."]}

    async def test_invalid_code_rejected(self, client, admin_headers):
        resp = await client.post(
            BASE, json={**INDIA, "code2": "I1"}, headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_list_search_and_region(self, client, admin_headers, india):
        await client.post(
            BASE, json={"code2": "FR", "code3": "FRA", "name": "France", "region": "Europe"},
            headers=admin_headers,
        )
        found = (await client.get(BASE, params={"search": "fra"}, headers=admin_headers)).json()
        assert [c["code2"] for c in found["data"]] == ["FR"]
        asia = (await client.get(BASE, params={"region": "asia"}, headers=admin_headers)).json()
        assert [c["code2"] for c in asia["data"]] == ["IN"]

    async def test_update_and_delete(self, client, admin_headers, india):
        resp = await client.patch(f"{BASE}/IN", json={"capital": "Delhi"}, headers=admin_headers)
        assert resp.json()["data"]["capital"] == "Delhi"

        assert (await client.delete(f"{BASE}/IND", headers=admin_headers)).status_code == 200
        assert (await client.get(f"{BASE}/IN", headers=admin_headers)).status_code == 404

    async def test_staff_cannot_create(self, client, staff_headers):
        resp = await client.post(BASE, json=INDIA, headers=staff_headers)
        assert resp.status_code == 403


class TestStates:

    async def test_add_and_update_state(self, client, admin_headers, india):
        resp = await client.post(
            f"{BASE}/IN/states", json={"code": "GA", "name": "Goa"}, headers=admin_headers,
        )
        assert [s["code"] for s in resp.json()["data"]["states"]] == ["GA", "KA", "MH"]

        renamed = await client.post(
            f"{BASE}/IN/states",
            json={"code": "KA", "name": "Karnataka", "subdivision": "state"},
            headers=admin_headers,
        )
        states = {s["code"]: s for s in renamed.json()["data"]["states"]}
        assert len(states) == 3
        assert states["KA"]["subdivision"] == "state"

    async def test_remove_state_by_name(self, client, admin_headers, india):
        resp = await client.delete(f"{BASE}/IN/states/maharashtra", headers=admin_headers)
        assert [s["code"] for s in resp.json()["data"]["states"]] == ["KA"]

    async def test_remove_unknown_state(self, client, admin_headers, india):
        resp = await client.delete(f"{BASE}/IN/states/XX", headers=admin_headers)
        assert resp.status_code == 404


class TestBulkUpsert:

    async def test_creates_and_updates(self, client, admin_headers, india):
        resp = await client.post(
            f"{BASE}/bulk/upsert",
            json=[
                {**INDIA, "capital": "Delhi", "states": [{"code": "GA", "name": "Goa"}]},
                {"code2": "JP", "code3": "JPN", "name": "Japan"},
            ],
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"] == {"created": 1, "updated": 1}

        india_now = (await client.get(f"{BASE}/IN", headers=admin_headers)).json()["data"]
        assert india_now["capital"] == "Delhi"
        assert [s["code"] for s in india_now["states"]] == ["GA"]
        assert (await client.get(f"{BASE}/JPN", headers=admin_headers)).status_code == 200

    async def test_empty_payload_rejected(self, client, admin_headers):
        resp = await client.post(f"{BASE}/bulk/upsert", json=[], headers=admin_headers)
        assert resp.status_code == 400
