"""Menu service — multi-parent menu tree.

A menu may appear under up to ten parents. Its ``level`` is one more than
the deepest parent, and no menu may sit deeper than level 4.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter, deque
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from hrms.common.audit import create_audit_entry
from hrms.common.constants import MAX_HIERARCHY_LEVEL, MenuStatus
from hrms.common.exceptions import DuplicateException, NotFoundException, ValidationException
from hrms.common.filters import apply_filters, apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.menus.models import Menu, menu_parents
from hrms.menus.schemas import MenuCreate, MenuStats, MenuTreeNode, MenuUpdate, slugify
from hrms.roles.models import role_menus

logger = logging.getLogger(__name__)

_DEPTH_ERROR = f"Maximum menu depth ({MAX_HIERARCHY_LEVEL + 1} levels) exceeded."


class MenuService:

    # ── Graph helpers ───────────────────────────────────────────────

    @staticmethod
    async def _load_graph(db: AsyncSession) -> dict[uuid.UUID, Menu]:
        result = await db.execute(select(Menu).options(selectinload(Menu.parents)))
        return {m.id: m for m in result.scalars().all()}

    @staticmethod
    def _children_of(menus: dict[uuid.UUID, Menu], menu_id: uuid.UUID) -> list[Menu]:
        return [m for m in menus.values() if any(p.id == menu_id for p in m.parents)]

    @staticmethod
    def _check_parents(
        menus: dict[uuid.UUID, Menu],
        parent_ids: list[uuid.UUID],
        menu_id: Optional[uuid.UUID] = None,
    ) -> list[Menu]:
        """Resolve *parent_ids*, rejecting unknown ids, self-parenting and cycles."""
        unique_ids = list(dict.fromkeys(parent_ids))
        missing = [str(pid) for pid in unique_ids if pid not in menus]
        if missing:
            raise ValidationException(
                {"parent_ids": [f"Parent menu(s) not found: {', '.join(missing)}"]},
            )
        if menu_id is not None:
            if menu_id in unique_ids:
                raise ValidationException({"parent_ids": ["A menu cannot be its own parent."]})

            # Walk every parent chain upwards; reaching menu_id means a cycle
            seen: set[uuid.UUID] = set()
            stack = list(unique_ids)
            while stack:
                current = stack.pop()
                if current == menu_id:
                    raise ValidationException(
                        {"parent_ids": ["Circular reference: a parent is a descendant of this menu."]},
                    )
                if current in seen:
                    continue
                seen.add(current)
                stack.extend(p.id for p in menus[current].parents)

        return [menus[pid] for pid in unique_ids]

    @staticmethod
    def _level_for(parents: list[Menu]) -> int:
        level = max((p.level for p in parents), default=-1) + 1
        if level > MAX_HIERARCHY_LEVEL:
            raise ValidationException({"parent_ids": [_DEPTH_ERROR]})
        return level

    @staticmethod
    def _cascade_levels(menus: dict[uuid.UUID, Menu], root: Menu) -> None:
        """Recompute levels below *root* after its own level changed."""
        queue = deque([root])
        while queue:
            node = queue.popleft()
            for child in MenuService._children_of(menus, node.id):
                new_level = max(p.level for p in child.parents) + 1
                if new_level > MAX_HIERARCHY_LEVEL:
                    raise ValidationException({"parent_ids": [_DEPTH_ERROR]})
                if new_level != child.level:
                    child.level = new_level
                    queue.append(child)

    @staticmethod
    async def _ensure_unique_slug(
        db: AsyncSession,
        slug: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Menu.id).where(Menu.slug == slug)
        if exclude_id is not None:
            query = query.where(Menu.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise DuplicateException("slug", slug)

    # ── List / get ──────────────────────────────────────────────────

    @staticmethod
    async def list_menus(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        status: Optional[MenuStatus] = None,
        level: Optional[int] = None,
        parent_id: Optional[uuid.UUID] = None,
    ) -> PaginatedResponse:
        query = (
            select(Menu)
            .options(selectinload(Menu.parents))
            .order_by(Menu.level, Menu.order, Menu.name)
        )
        query = apply_filters(query, Menu, {"status": status, "level": level})
        query = apply_search(query, Menu, search, ["name", "slug"])
        if parent_id is not None:
            query = query.where(
                Menu.id.in_(
                    select(menu_parents.c.menu_id).where(menu_parents.c.parent_id == parent_id),
                ),
            )
        return await paginate(db, query, pagination, model=Menu)

    @staticmethod
    async def get_menu(db: AsyncSession, menu_id: uuid.UUID) -> Menu:
        result = await db.execute(
            select(Menu).where(Menu.id == menu_id).options(selectinload(Menu.parents)),
        )
        menu = result.scalars().first()
        if menu is None:
            raise NotFoundException("Menu", str(menu_id))
        return menu

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_menu(
        db: AsyncSession,
        data: MenuCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Menu:
        await MenuService._ensure_unique_slug(db, data.slug)

        menus = await MenuService._load_graph(db)
        parents = MenuService._check_parents(menus, data.parent_ids)

        menu = Menu(
            **data.model_dump(exclude={"parent_ids"}),
            level=MenuService._level_for(parents),
            created_by=actor_id,
        )
        menu.parents = parents
        db.add(menu)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="menu",
            entity_id=menu.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Created menu %s (level %d, %d parents)", menu.slug, menu.level, len(parents))
        return menu

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_menu(
        db: AsyncSession,
        menu_id: uuid.UUID,
        data: MenuUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Menu:
        menus = await MenuService._load_graph(db)
        menu = menus.get(menu_id)
        if menu is None:
            raise NotFoundException("Menu", str(menu_id))

        changes = data.model_dump(exclude_unset=True)
        if changes.get("slug"):
            changes["slug"] = slugify(changes["slug"])
            await MenuService._ensure_unique_slug(db, changes["slug"], exclude_id=menu.id)

        parent_ids = changes.pop("parent_ids", None)
        if parent_ids is not None:
            parents = MenuService._check_parents(menus, parent_ids, menu.id)
            menu.parents = parents
            menu.level = MenuService._level_for(parents)
            MenuService._cascade_levels(menus, menu)

        for field, value in changes.items():
            if value is not None:
                setattr(menu, field, value)

        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="menu",
            entity_id=menu.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return menu

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete_menu(
        db: AsyncSession,
        menu_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[uuid.UUID]:
        """Delete a menu and every child that hangs only from the deleted set.

        Children that keep another parent are detached and re-levelled.
        Returns the ids of all deleted menus.
        """
        menus = await MenuService._load_graph(db)
        menu = menus.get(menu_id)
        if menu is None:
            raise NotFoundException("Menu", str(menu_id))

        doomed: set[uuid.UUID] = set()
        stack = [menu]
        while stack:
            node = stack.pop()
            doomed.add(node.id)
            for child in MenuService._children_of(menus, node.id):
                if child.id in doomed:
                    continue
                if all(p.id in doomed for p in child.parents):
                    stack.append(child)

        survivors = [
            m for m in menus.values()
            if m.id not in doomed and any(p.id in doomed for p in m.parents)
        ]

        ids = list(doomed)
        await db.execute(
            sa.delete(menu_parents).where(
                sa.or_(menu_parents.c.menu_id.in_(ids), menu_parents.c.parent_id.in_(ids)),
            ),
        )
        await db.execute(sa.delete(role_menus).where(role_menus.c.menu_id.in_(ids)))
        await db.execute(sa.delete(Menu).where(Menu.id.in_(ids)))
        for doomed_id in ids:
            menus.pop(doomed_id)

        for child in survivors:
            remaining = [p for p in child.parents if p.id not in doomed]
            # Association rows are already gone; keep the ORM view in step
            set_committed_value(child, "parents", remaining)
            child.level = max((p.level for p in remaining), default=-1) + 1
            MenuService._cascade_levels(menus, child)

        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="menu",
            entity_id=menu_id,
            actor_id=actor_id,
            old_values={"slug": menu.slug, "deleted_ids": [str(i) for i in ids]},
        )
        logger.info("Deleted menu %s with %d descendants", menu.slug, len(ids) - 1)
        return ids

    # ── Tree / breadcrumb / stats ───────────────────────────────────

    @staticmethod
    async def build_tree(db: AsyncSession) -> list[MenuTreeNode]:
        """Active menus nested under each of their active parents."""
        menus = {
            mid: m for mid, m in (await MenuService._load_graph(db)).items()
            if m.status == MenuStatus.active
        }
        children: dict[uuid.UUID, list[Menu]] = {}
        roots: list[Menu] = []
        for m in menus.values():
            active_parents = [p for p in m.parents if p.id in menus]
            if not active_parents:
                roots.append(m)
            for p in active_parents:
                children.setdefault(p.id, []).append(m)

        def _sort_key(m: Menu) -> tuple:
            return (m.order, m.name)

        def _node(m: Menu) -> MenuTreeNode:
            return MenuTreeNode(
                id=m.id,
                name=m.name,
                slug=m.slug,
                icon=m.icon,
                level=m.level,
                order=m.order,
                children=[_node(c) for c in sorted(children.get(m.id, []), key=_sort_key)],
            )

        return [_node(r) for r in sorted(roots, key=_sort_key)]

    @staticmethod
    async def breadcrumbs(db: AsyncSession, menu_id: uuid.UUID) -> list[str]:
        """Every root-to-menu path, one per parent chain, as ``"A > B > C"``."""
        menus = await MenuService._load_graph(db)
        if menu_id not in menus:
            raise NotFoundException("Menu", str(menu_id))

        def _paths(m: Menu) -> list[list[str]]:
            if not m.parents:
                return [[m.name]]
            return [
                chain + [m.name]
                for p in sorted(m.parents, key=lambda p: p.name)
                for chain in _paths(menus[p.id])
            ]

        return [" > ".join(chain) for chain in _paths(menus[menu_id])]

    @staticmethod
    async def stats(db: AsyncSession) -> MenuStats:
        rows = (await db.execute(select(Menu.status, Menu.level))).all()
        by_status = Counter(status.value for status, _ in rows)
        by_level = Counter(str(level) for _, level in rows)
        return MenuStats(
            total=len(rows),
            by_status={s.value: by_status.get(s.value, 0) for s in MenuStatus},
            by_level=dict(sorted(by_level.items())),
        )
