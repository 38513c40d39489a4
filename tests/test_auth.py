"""Auth test suite — login, refresh rotation, logout, /me, registration, guards."""

from __future__ import annotations

from httpx import AsyncClient

from hrms.common.constants import MenuStatus, UserStatus
from hrms.menus.models import Menu
from tests.conftest import auth_headers_for, make_role, make_user


async def _login(client: AsyncClient, email: str, password: str = "Passw0rd!"):
    return await client.post(
        "/api/v1/auth/login", json={"email": email, "password": password},
    )


# ═════════════════════════════════════════════════════════════════════
# Login
# ═════════════════════════════════════════════════════════════════════


class TestLogin:

    async def test_login_issues_token_pair(self, client, admin_user):
        resp = await _login(client, "admin@example.com")
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["access_token"] and data["refresh_token"]
        assert data["user"]["email"] == "admin@example.com"
        assert data["user"]["role"]["name"] == "admin"
        assert data["user"]["last_login"] is not None

    async def test_login_is_case_insensitive_on_email(self, client, admin_user):
        resp = await _login(client, "ADMIN@example.com")
        assert resp.status_code == 200

    async def test_unknown_email_is_404(self, client):
        resp = await _login(client, "nobody@example.com")
        assert resp.status_code == 404
        assert resp.json()["success"] is False

    async def test_wrong_password_is_400(self, client, admin_user):
        resp = await _login(client, "admin@example.com", "wrong-password")
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    async def test_suspended_user_is_403(self, client, db):
        user = await make_user(db, email="gone@example.com")
        user.status = UserStatus.suspended
        await db.commit()
        resp = await _login(client, "gone@example.com")
        assert resp.status_code == 403

    async def test_login_rate_limited(self, client, admin_user):
        for _ in range(10):
            await _login(client, "admin@example.com", "wrong-password")
        resp = await _login(client, "admin@example.com", "wrong-password")
        assert resp.status_code == 429


# ═════════════════════════════════════════════════════════════════════
# Tokens
# ═════════════════════════════════════════════════════════════════════


class TestTokens:

    async def test_missing_token_is_401(self, client):
        resp = await client.get("/api/v1/auth/me")
        assert resp.status_code == 401

    async def test_garbage_token_is_401(self, client):
        resp = await client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert resp.status_code == 401

    async def test_refresh_rotates_and_detects_reuse(self, client, admin_user):
        login = (await _login(client, "admin@example.com")).json()["data"]

        rotated = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": login["refresh_token"]},
        )
        assert rotated.status_code == 200
        fresh = rotated.json()["data"]
        assert fresh["refresh_token"] != login["refresh_token"]

        me = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {fresh['access_token']}"},
        )
        assert me.status_code == 200

        replay = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": login["refresh_token"]},
        )
        assert replay.status_code == 401

        # Reuse revoked every session of the user
        me = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {fresh['access_token']}"},
        )
        assert me.status_code == 401

    async def test_access_token_cannot_refresh(self, client, admin_user):
        login = (await _login(client, "admin@example.com")).json()["data"]
        resp = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": login["access_token"]},
        )
        assert resp.status_code == 401

    async def test_logout_revokes_session(self, client, admin_headers):
        assert (await client.post("/api/v1/auth/logout", headers=admin_headers)).status_code == 200
        resp = await client.get("/api/v1/auth/me", headers=admin_headers)
        assert resp.status_code == 401


# ═════════════════════════════════════════════════════════════════════
# /me and registration
# ═════════════════════════════════════════════════════════════════════


class TestMe:

    async def test_me_lists_permissions_and_active_menus(self, client, db, admin_role, admin_headers):
        visible = Menu(name="Payroll", slug="payroll", level=0)
        hidden = Menu(name="Legacy", slug="legacy", level=0, status=MenuStatus.inactive)
        db.add_all([visible, hidden])
        await db.flush()
        await db.refresh(admin_role, ["menus"])
        admin_role.menus = [visible, hidden]
        await db.commit()

        resp = await client.get("/api/v1/auth/me", headers=admin_headers)
        data = resp.json()["data"]
        assert "payroll:manage" in data["permissions"]
        assert [m["slug"] for m in data["menus"]] == ["payroll"]
        assert data["employee_id"] is not None

    async def test_staff_without_grants_has_no_permissions(self, client, staff_headers):
        resp = await client.get("/api/v1/auth/me", headers=staff_headers)
        assert resp.json()["data"]["permissions"] == []


class TestRegister:

    async def test_admin_registers_user(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "New.Hire@example.com",
                "password": "longenough",
                "first_name": "New",
                "last_name": "Hire",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["data"]["email"] == "new.hire@example.com"

        login = await _login(client, "new.hire@example.com", "longenough")
        assert login.status_code == 200

    async def test_duplicate_email_rejected(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "admin@example.com",
                "password": "longenough",
                "first_name": "Again",
                "last_name": "Admin",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 400

    async def test_register_requires_permission(self, client, staff_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "x@example.com",
                "password": "longenough",
                "first_name": "X",
                "last_name": "Y",
            },
            headers=staff_headers,
        )
        assert resp.status_code == 403

    async def test_explicit_user_grant_is_enough(self, client, db):
        role = await make_role(db, name="clerk")
        clerk = await make_user(db, role=role, permissions=["users:manage"])
        headers = await auth_headers_for(db, clerk)
        resp = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "via.grant@example.com",
                "password": "longenough",
                "first_name": "Via",
                "last_name": "Grant",
            },
            headers=headers,
        )
        assert resp.status_code == 201
