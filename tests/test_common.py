"""Shared utilities — pagination, filters, envelopes, error handlers."""

from __future__ import annotations

from sqlalchemy import select

from hrms.common.filters import apply_filters, apply_search, apply_sorting
from hrms.common.pagination import PaginationParams, paginate
from hrms.common.responses import success
from hrms.core_hr.models import Department
from tests.conftest import make_department


def _sql(query) -> str:
    return " ".join(str(query).split())


# ═════════════════════════════════════════════════════════════════════
# Filters / sorting
# ═════════════════════════════════════════════════════════════════════


class TestSorting:

    def test_descending_prefix(self):
        query = apply_sorting(select(Department), Department, "-name")
        assert _sql(query).endswith("ORDER BY departments.name DESC")

    def test_replaces_default_order(self):
        base = select(Department).order_by(Department.created_at)
        sql = _sql(apply_sorting(base, Department, "name"))
        assert "created_at ASC" not in sql
        assert sql.endswith("ORDER BY departments.name ASC")

    def test_unknown_column_keeps_query(self):
        base = select(Department).order_by(Department.created_at)
        assert apply_sorting(base, Department, "-password") is base
        assert apply_sorting(base, Department, None) is base


class TestFilters:

    def test_operators(self):
        query = apply_filters(
            select(Department),
            Department,
            {
                "name": "Legal",
                "description__ilike": "contracts",
                "created_at__from": "2026-01-01",
                "missing_column": "ignored",
                "updated_at__to": None,
            },
        )
        sql = _sql(query)
        assert "departments.name =" in sql
        assert "lower(departments.description) LIKE lower(" in sql
        assert "departments.created_at >=" in sql
        assert "updated_at" not in sql.split("WHERE", 1)[1]

    def test_in_operator(self):
        sql = _sql(apply_filters(select(Department), Department, {"name__in": ["A", "B"]}))
        assert "departments.name IN" in sql

    def test_blank_search_is_noop(self):
        base = select(Department)
        assert apply_search(base, Department, "   ", ["name"]) is base
        assert apply_search(base, Department, "x", ["nope"]) is base


# ═════════════════════════════════════════════════════════════════════
# Pagination
# ═════════════════════════════════════════════════════════════════════


class TestPaginate:

    async def test_meta_and_page_slice(self, db):
        for name in ("Alpha", "Bravo", "Charlie", "Delta", "Echo"):
            await make_department(db, name=name)

        params = PaginationParams(page=2, page_size=2, sort=None)
        result = await paginate(db, select(Department).order_by(Department.name), params)
        assert [d.name for d in result.data] == ["Charlie", "Delta"]
        assert result.meta.model_dump() == {
            "page": 2,
            "page_size": 2,
            "total": 5,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }

    async def test_sort_param_overrides_order(self, db):
        for name in ("Alpha", "Bravo", "Charlie"):
            await make_department(db, name=name)

        params = PaginationParams(page=1, page_size=10, sort="-name")
        result = await paginate(db, select(Department).order_by(Department.name), params, model=Department)
        assert [d.name for d in result.data] == ["Charlie", "Bravo", "Alpha"]

    async def test_empty(self, db):
        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await paginate(db, select(Department), params)
        envelope = result.to_envelope(lambda d: d.name)
        assert envelope == {
            "success": True,
            "data": [],
            "meta": {
                "page": 1,
                "page_size": 10,
                "total": 0,
                "total_pages": 0,
                "has_next": False,
                "has_prev": False,
            },
        }


# ═════════════════════════════════════════════════════════════════════
# Envelopes
# ═════════════════════════════════════════════════════════════════════


class TestEnvelopes:

    def test_success_omits_empty_parts(self):
        assert success() == {"success": True}
        assert success([], message="ok", count=0) == {
            "success": True, "message": "ok", "data": [], "count": 0,
        }

    async def test_health(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.json()["status"] == "healthy"

    async def test_not_found_envelope(self, client, admin_headers):
        resp = await client.get(
            "/api/v1/departments/00000000-0000-0000-0000-000000000404", headers=admin_headers,
        )
        body = resp.json()
        assert resp.status_code == 404
        assert body["success"] is False
        assert body["error"] == "not_found"
        assert "errors" not in body

    async def test_request_validation_is_400(self, client, admin_headers):
        resp = await client.get(
            "/api/v1/employees", params={"page_size": 1000}, headers=admin_headers,
        )
        body = resp.json()
        assert resp.status_code == 400
        assert body["error"] == "validation_error"
        assert "page_size" in body["errors"]
