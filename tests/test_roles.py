"""Role hierarchy tests — placement rules, re-parenting, tree, context, delete guards."""

from __future__ import annotations

from typing import Optional

from httpx import AsyncClient

BASE = "/api/v1/roles"


async def _create(
    client: AsyncClient,
    headers: dict,
    name: str,
    parent_id: Optional[str] = None,
) -> dict:
    resp = await client.post(
        BASE,
        json={"name": name, "display_name": name.title(), "parent_id": parent_id},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ═════════════════════════════════════════════════════════════════════
# Create
# ═════════════════════════════════════════════════════════════════════


class TestCreateRole:

    async def test_child_gets_level_and_path(self, client, admin_role, admin_headers):
        role = await _create(client, admin_headers, "manager", str(admin_role.id))
        assert role["level"] == 1
        assert role["path"] == f"/{admin_role.id}/{role['id']}"

    async def test_root_role(self, client, admin_headers):
        role = await _create(client, admin_headers, "board")
        assert role["level"] == 0
        assert role["path"] == f"/{role['id']}"

    async def test_duplicate_name_case_insensitive(self, client, admin_headers):
        resp = await client.post(
            BASE, json={"name": "ADMIN", "display_name": "Again"}, headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "duplicate"

    async def test_unknown_parent_rejected(self, client, admin_headers):
        resp = await client.post(
            BASE,
            json={
                "name": "orphan",
                "display_name": "Orphan",
                "parent_id": "00000000-0000-0000-0000-000000000001",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "parent_id" in resp.json()["errors"]

    async def test_depth_limited_to_five_levels(self, client, admin_role, admin_headers):
        parent_id = str(admin_role.id)
        for depth in range(1, 5):
            parent_id = (await _create(client, admin_headers, f"level{depth}", parent_id))["id"]

        resp = await client.post(
            BASE,
            json={"name": "level5", "display_name": "Level 5", "parent_id": parent_id},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Maximum role depth (5 levels) exceeded."

    async def test_requires_roles_manage(self, client, staff_headers):
        resp = await client.post(
            BASE, json={"name": "x", "display_name": "X"}, headers=staff_headers,
        )
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# Re-parenting
# ═════════════════════════════════════════════════════════════════════


class TestMoveRole:

    async def test_self_parent_rejected(self, client, admin_role, admin_headers):
        resp = await client.put(
            f"{BASE}/{admin_role.id}",
            json={"parent_id": str(admin_role.id)},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "own parent" in resp.json()["message"]

    async def test_cycle_rejected(self, client, admin_role, admin_headers):
        lead = await _create(client, admin_headers, "lead", str(admin_role.id))
        engineer = await _create(client, admin_headers, "engineer", lead["id"])

        resp = await client.put(
            f"{BASE}/{admin_role.id}",
            json={"parent_id": engineer["id"]},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "Circular reference" in resp.json()["message"]

    async def test_move_recomputes_descendants(self, client, admin_role, admin_headers):
        lead = await _create(client, admin_headers, "lead", str(admin_role.id))
        engineer = await _create(client, admin_headers, "engineer", lead["id"])
        region = await _create(client, admin_headers, "region")
        ops = await _create(client, admin_headers, "ops", region["id"])

        resp = await client.put(
            f"{BASE}/{lead['id']}", json={"parent_id": ops["id"]}, headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        moved = resp.json()["data"]
        assert moved["level"] == 2
        assert moved["path"] == f"/{region['id']}/{ops['id']}/{lead['id']}"

        child = (await client.get(f"{BASE}/{engineer['id']}", headers=admin_headers)).json()["data"]
        assert child["level"] == 3
        assert child["path"] == f"{moved['path']}/{engineer['id']}"

    async def test_move_counts_subtree_height(self, client, admin_role, admin_headers):
        parent_id = str(admin_role.id)
        for depth in range(1, 4):
            parent_id = (await _create(client, admin_headers, f"deep{depth}", parent_id))["id"]
        lead = await _create(client, admin_headers, "lead", str(admin_role.id))
        await _create(client, admin_headers, "engineer", lead["id"])

        # lead would land on level 4 with its child on level 5
        resp = await client.put(
            f"{BASE}/{lead['id']}", json={"parent_id": parent_id}, headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_move_to_root(self, client, admin_role, admin_headers):
        lead = await _create(client, admin_headers, "lead", str(admin_role.id))
        resp = await client.put(
            f"{BASE}/{lead['id']}", json={"parent_id": None}, headers=admin_headers,
        )
        data = resp.json()["data"]
        assert data["level"] == 0
        assert data["path"] == f"/{lead['id']}"


# ═════════════════════════════════════════════════════════════════════
# Tree / context
# ═════════════════════════════════════════════════════════════════════


class TestTreeAndContext:

    async def test_tree_nests_children(self, client, admin_role, staff_role, admin_headers):
        await _create(client, admin_headers, "intern", str(staff_role.id))

        resp = await client.get(f"{BASE}/tree", headers=admin_headers)
        roots = resp.json()["data"]
        assert [r["name"] for r in roots] == ["admin"]
        admin = roots[0]
        assert admin["children_count"] == 1
        assert admin["total_descendants"] == 2
        assert admin["children"][0]["children"][0]["name"] == "intern"

    async def test_context_breadcrumb(self, client, admin_role, staff_role, admin_headers):
        intern = await _create(client, admin_headers, "intern", str(staff_role.id))

        resp = await client.get(f"{BASE}/{staff_role.id}/context", headers=admin_headers)
        data = resp.json()["data"]
        assert data["breadcrumb"] == "Admin > Staff"
        assert [a["name"] for a in data["ancestors"]] == ["admin"]
        assert [c["id"] for c in data["children"]] == [intern["id"]]
        assert data["descendants_count"] == 1

    async def test_list_filters_by_level(self, client, admin_role, staff_role, admin_headers):
        resp = await client.get(BASE, params={"level": 1}, headers=admin_headers)
        body = resp.json()
        assert [r["name"] for r in body["data"]] == ["staff"]
        assert body["meta"]["total"] == 1


# ═════════════════════════════════════════════════════════════════════
# Delete / menus
# ═════════════════════════════════════════════════════════════════════


class TestDeleteRole:

    async def test_role_with_children_not_deleted(self, client, admin_role, staff_role, admin_headers):
        resp = await client.delete(f"{BASE}/{admin_role.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert "child role" in resp.json()["message"]

    async def test_role_with_users_not_deleted(self, client, staff_user, staff_role, admin_headers):
        resp = await client.delete(f"{BASE}/{staff_role.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert "assigned to 1 user" in resp.json()["message"]

    async def test_leaf_role_deleted(self, client, admin_role, admin_headers):
        leaf = await _create(client, admin_headers, "temp", str(admin_role.id))
        assert (await client.delete(f"{BASE}/{leaf['id']}", headers=admin_headers)).status_code == 200
        assert (await client.get(f"{BASE}/{leaf['id']}", headers=admin_headers)).status_code == 404

    async def test_assign_unknown_menu_rejected(self, client, admin_role, admin_headers):
        resp = await client.put(
            f"{BASE}/{admin_role.id}/menus",
            json={"menu_ids": ["00000000-0000-0000-0000-000000000002"]},
            headers=admin_headers,
        )
        assert resp.status_code == 400
