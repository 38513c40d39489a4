"""Roles router — hierarchical role CRUD, tree and menu grants.

Routes:
    /roles                — List, create roles
    /roles/tree           — Nested role hierarchy
    /roles/{id}           — Get, update, delete role
    /roles/{id}/context   — Ancestors, children and breadcrumb
    /roles/{id}/menus     — Replace the menus granted to a role
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.auth.models import User
from hrms.auth.schemas import MenuBrief
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.database import get_db
from hrms.roles.schemas import RoleCreate, RoleMenusUpdate, RoleOut, RoleUpdate
from hrms.roles.service import RoleService

router = APIRouter(prefix="", tags=["roles"])


def _role_detail(role) -> dict:
    body = RoleOut.model_validate(role).model_dump(mode="json")
    body["menus"] = [
        MenuBrief.model_validate(m).model_dump(mode="json")
        for m in sorted(role.menus, key=lambda m: (m.level, m.order, m.name))
    ]
    return body


# ── GET /roles — List roles ─────────────────────────────────────────

@router.get("")
async def list_roles(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search name, display name, description"),
    is_active: Optional[bool] = Query(None),
    parent_id: Optional[uuid.UUID] = Query(None),
    level: Optional[int] = Query(None, ge=0),
):
    result = await RoleService.list_roles(
        db,
        pagination,
        search=search,
        is_active=is_active,
        parent_id=parent_id,
        level=level,
    )
    return result.to_envelope(lambda r: RoleOut.model_validate(r).model_dump(mode="json"))


# ── GET /roles/tree — Role hierarchy ────────────────────────────────

@router.get("/tree")
async def role_tree(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(await RoleService.build_tree(db))


# ── GET /roles/{id} — Role detail ───────────────────────────────────

@router.get("/{role_id}")
async def get_role(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    role = await RoleService.get_role(db, role_id)
    return success(_role_detail(role))


# ── GET /roles/{id}/context — Breadcrumb and neighbours ─────────────

@router.get("/{role_id}/context")
async def role_context(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(await RoleService.get_context(db, role_id))


# ── POST /roles — Create role ───────────────────────────────────────

@router.post("", status_code=201)
async def create_role(
    body: RoleCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("roles:manage")),
):
    role = await RoleService.create_role(db, body, actor_id=actor.id)
    return success(RoleOut.model_validate(role), message="Role created")


# ── PUT /roles/{id} — Update role ───────────────────────────────────

@router.put("/{role_id}")
async def update_role(
    role_id: uuid.UUID,
    body: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("roles:manage")),
):
    role = await RoleService.update_role(db, role_id, body, actor_id=actor.id)
    return success(RoleOut.model_validate(role), message="Role updated")


# ── DELETE /roles/{id} — Delete role ────────────────────────────────

@router.delete("/{role_id}")
async def delete_role(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("roles:manage")),
):
    await RoleService.delete_role(db, role_id, actor_id=actor.id)
    return success(message="Role deleted")


# ── PUT /roles/{id}/menus — Replace menu grants ─────────────────────

@router.put("/{role_id}/menus")
async def assign_menus(
    role_id: uuid.UUID,
    body: RoleMenusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("roles:manage")),
):
    role = await RoleService.assign_menus(db, role_id, body.menu_ids, actor_id=actor.id)
    return success(_role_detail(role), message="Menus assigned")
