"""Menus router — navigation tree with multi-parent placement.

Routes:
    /menus                   — List, create menus
    /menus/tree              — Active menu tree
    /menus/stats             — Totals by status and level
    /menus/{id}              — Get, update, delete menu
    /menus/{id}/breadcrumb   — Every path from a root to the menu
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.auth.models import User
from hrms.common.constants import MenuStatus
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.database import get_db
from hrms.menus.schemas import MenuBreadcrumb, MenuCreate, MenuOut, MenuUpdate
from hrms.menus.service import MenuService

router = APIRouter(prefix="", tags=["menus"])


# ── GET /menus — List menus ─────────────────────────────────────────

@router.get("")
async def list_menus(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Search name or slug"),
    status: Optional[MenuStatus] = Query(None),
    level: Optional[int] = Query(None, ge=0),
    parent_id: Optional[uuid.UUID] = Query(None, description="Only direct children of this menu"),
):
    result = await MenuService.list_menus(
        db, pagination, search=search, status=status, level=level, parent_id=parent_id,
    )
    return result.to_envelope(lambda m: MenuOut.model_validate(m).model_dump(mode="json"))


# ── GET /menus/tree ─────────────────────────────────────────────────

@router.get("/tree")
async def menu_tree(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(await MenuService.build_tree(db))


# ── GET /menus/stats ────────────────────────────────────────────────

@router.get("/stats")
async def menu_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_permission("menus:manage")),
):
    return success(await MenuService.stats(db))


# ── GET /menus/{id} ─────────────────────────────────────────────────

@router.get("/{menu_id}")
async def get_menu(
    menu_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(MenuOut.model_validate(await MenuService.get_menu(db, menu_id)))


# ── GET /menus/{id}/breadcrumb ──────────────────────────────────────

@router.get("/{menu_id}/breadcrumb")
async def menu_breadcrumb(
    menu_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    paths = await MenuService.breadcrumbs(db, menu_id)
    return success(MenuBreadcrumb(menu_id=menu_id, paths=paths))


# ── POST /menus — Create menu ───────────────────────────────────────

@router.post("", status_code=201)
async def create_menu(
    body: MenuCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("menus:manage")),
):
    menu = await MenuService.create_menu(db, body, actor_id=actor.id)
    return success(MenuOut.model_validate(menu), message="Menu created")


# ── PUT /menus/{id} — Update menu ───────────────────────────────────

@router.put("/{menu_id}")
async def update_menu(
    menu_id: uuid.UUID,
    body: MenuUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("menus:manage")),
):
    menu = await MenuService.update_menu(db, menu_id, body, actor_id=actor.id)
    return success(MenuOut.model_validate(menu), message="Menu updated")


# ── DELETE /menus/{id} — Delete menu and orphaned children ──────────

@router.delete("/{menu_id}")
async def delete_menu(
    menu_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(require_permission("menus:manage")),
):
    deleted = await MenuService.delete_menu(db, menu_id, actor_id=actor.id)
    return success(
        {"deleted_ids": [str(i) for i in deleted]},
        message=f"Deleted {len(deleted)} menu(s)",
    )
