"""Role hierarchy service — CRUD, placement validation and tree queries.

Invariants kept here:
  - a role is never its own ancestor (no cycles)
  - ``level`` is the depth from the root and never exceeds MAX_HIERARCHY_LEVEL
  - ``path`` is ``/<root id>/.../<own id>`` and is rewritten for the whole
    subtree whenever a role moves
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.models import User
from hrms.common.audit import create_audit_entry
from hrms.common.constants import MAX_HIERARCHY_LEVEL
from hrms.common.exceptions import DuplicateException, NotFoundException, ValidationException
from hrms.common.filters import apply_filters, apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.menus.models import Menu
from hrms.roles.models import Role
from hrms.roles.schemas import (
    RoleBrief,
    RoleContext,
    RoleCreate,
    RoleOut,
    RoleTreeNode,
    RoleUpdate,
)

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# RoleService
# ═════════════════════════════════════════════════════════════════════


class RoleService:
    """Async operations over the role tree."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _get(db: AsyncSession, role_id: uuid.UUID) -> Role:
        role = await db.get(Role, role_id)
        if role is None:
            raise NotFoundException("Role", str(role_id))
        return role

    @staticmethod
    async def _load_all(db: AsyncSession) -> dict[uuid.UUID, Role]:
        result = await db.execute(select(Role))
        return {r.id: r for r in result.scalars().all()}

    @staticmethod
    def _ancestors(
        role_map: dict[uuid.UUID, Role],
        start_id: Optional[uuid.UUID],
    ) -> list[Role]:
        """Walk parent pointers from *start_id* upwards (nearest first)."""
        chain: list[Role] = []
        seen: set[uuid.UUID] = set()
        current_id = start_id
        while current_id is not None and current_id not in seen:
            seen.add(current_id)
            role = role_map.get(current_id)
            if role is None:
                break
            chain.append(role)
            current_id = role.parent_id
        return chain

    @staticmethod
    def _subtree_height(
        children_map: dict[Optional[uuid.UUID], list[Role]],
        role_id: uuid.UUID,
    ) -> int:
        """Number of levels below *role_id* (0 for a leaf)."""
        height = 0
        frontier = [role_id]
        while True:
            frontier = [c.id for rid in frontier for c in children_map.get(rid, [])]
            if not frontier:
                return height
            height += 1

    @staticmethod
    def _validate_parent(
        role_map: dict[uuid.UUID, Role],
        parent_id: Optional[uuid.UUID],
        role_id: Optional[uuid.UUID] = None,
        subtree_height: int = 0,
    ) -> int:
        """Check a proposed parent and return the resulting level."""
        if parent_id is None:
            level = 0
        else:
            if role_id is not None and parent_id == role_id:
                raise ValidationException({"parent_id": ["A role cannot be its own parent."]})
            parent = role_map.get(parent_id)
            if parent is None:
                raise ValidationException(
                    {"parent_id": [f"Parent role '{parent_id}' does not exist."]},
                )
            if role_id is not None and any(
                a.id == role_id for a in RoleService._ancestors(role_map, parent_id)
            ):
                raise ValidationException(
                    {"parent_id": ["Circular reference: the parent is a descendant of this role."]},
                )
            level = parent.level + 1

        if level + subtree_height > MAX_HIERARCHY_LEVEL:
            raise ValidationException(
                {"parent_id": [
                    f"Maximum role depth ({MAX_HIERARCHY_LEVEL + 1} levels) exceeded.",
                ]},
            )
        return level

    @staticmethod
    def _relocate(
        role_map: dict[uuid.UUID, Role],
        children_map: dict[Optional[uuid.UUID], list[Role]],
        role: Role,
    ) -> int:
        """Recompute level/path of *role*'s descendants. Returns rows touched."""
        touched = 0
        stack = [role]
        while stack:
            node = stack.pop()
            for child in children_map.get(node.id, []):
                child.level = node.level + 1
                child.path = f"{node.path}/{child.id}"
                touched += 1
                stack.append(child)
        return touched

    @staticmethod
    def _children_map(role_map: dict[uuid.UUID, Role]) -> dict[Optional[uuid.UUID], list[Role]]:
        children: dict[Optional[uuid.UUID], list[Role]] = {}
        for r in role_map.values():
            children.setdefault(r.parent_id, []).append(r)
        for group in children.values():
            group.sort(key=lambda r: r.name)
        return children

    # ── List ────────────────────────────────────────────────────────

    @staticmethod
    async def list_roles(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        parent_id: Optional[uuid.UUID] = None,
        level: Optional[int] = None,
    ) -> PaginatedResponse:
        query = select(Role).order_by(Role.level, Role.name)
        query = apply_filters(
            query,
            Role,
            {"is_active": is_active, "parent_id": parent_id, "level": level},
        )
        query = apply_search(query, Role, search, ["name", "display_name", "description"])
        return await paginate(db, query, pagination, model=Role)

    # ── Get ─────────────────────────────────────────────────────────

    @staticmethod
    async def get_role(db: AsyncSession, role_id: uuid.UUID) -> Role:
        result = await db.execute(
            select(Role).where(Role.id == role_id).options(selectinload(Role.menus)),
        )
        role = result.scalars().first()
        if role is None:
            raise NotFoundException("Role", str(role_id))
        return role

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_role(
        db: AsyncSession,
        data: RoleCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Role:
        role_map = await RoleService._load_all(db)
        if any(r.name.lower() == data.name.lower() for r in role_map.values()):
            raise DuplicateException("name", data.name)

        level = RoleService._validate_parent(role_map, data.parent_id)
        role_id = uuid.uuid4()
        parent_path = role_map[data.parent_id].path if data.parent_id else ""

        role = Role(
            id=role_id,
            **data.model_dump(),
            level=level,
            path=f"{parent_path}/{role_id}",
        )
        db.add(role)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise DuplicateException("name", data.name)

        await create_audit_entry(
            db,
            action="create",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Created role %s at level %d", role.name, role.level)
        return role

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_role(
        db: AsyncSession,
        role_id: uuid.UUID,
        data: RoleUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Role:
        role_map = await RoleService._load_all(db)
        role = role_map.get(role_id)
        if role is None:
            raise NotFoundException("Role", str(role_id))

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return role

        if "name" in changes and changes["name"] is not None:
            clash = any(
                r.id != role.id and r.name.lower() == changes["name"].lower()
                for r in role_map.values()
            )
            if clash:
                raise DuplicateException("name", changes["name"])

        old_values: dict[str, Any] = {
            k: str(v) if isinstance(v, uuid.UUID) else v
            for k, v in ((k, getattr(role, k)) for k in changes)
        }

        moved = "parent_id" in changes and changes["parent_id"] != role.parent_id
        if moved:
            children_map = RoleService._children_map(role_map)
            new_parent_id = changes["parent_id"]
            role.level = RoleService._validate_parent(
                role_map,
                new_parent_id,
                role.id,
                RoleService._subtree_height(children_map, role.id),
            )
            parent_path = role_map[new_parent_id].path if new_parent_id else ""
            role.path = f"{parent_path}/{role.id}"
            role.parent_id = new_parent_id
            children_map = RoleService._children_map(role_map)
            touched = RoleService._relocate(role_map, children_map, role)
            logger.info("Moved role %s; %d descendants relocated", role.name, touched)

        for field, value in changes.items():
            if field != "parent_id":
                setattr(role, field, value)

        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise DuplicateException("name", changes.get("name", ""))

        await create_audit_entry(
            db,
            action="update",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return role

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete_role(
        db: AsyncSession,
        role_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        role = await RoleService._get(db, role_id)

        child_count = (
            await db.execute(select(func.count()).select_from(Role).where(Role.parent_id == role.id))
        ).scalar() or 0
        if child_count:
            raise ValidationException(
                {"role": [f"Role has {child_count} child role(s); move or delete them first."]},
            )

        user_count = (
            await db.execute(select(func.count()).select_from(User).where(User.role_id == role.id))
        ).scalar() or 0
        if user_count:
            raise ValidationException(
                {"role": [f"Role is assigned to {user_count} user(s)."]},
            )

        await db.delete(role)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="role",
            entity_id=role_id,
            actor_id=actor_id,
            old_values={"name": role.name, "level": role.level},
        )

    # ── Tree ────────────────────────────────────────────────────────

    @staticmethod
    async def build_tree(db: AsyncSession) -> list[RoleTreeNode]:
        """Nested tree of active roles, roots first."""
        result = await db.execute(select(Role).where(Role.is_active.is_(True)))
        role_map = {r.id: r for r in result.scalars().all()}
        children_map = RoleService._children_map(role_map)

        def _build_node(role: Role) -> RoleTreeNode:
            node = RoleTreeNode(
                id=role.id,
                name=role.name,
                display_name=role.display_name,
                level=role.level,
            )
            for child in children_map.get(role.id, []):
                child_node = _build_node(child)
                node.children.append(child_node)
                node.total_descendants += 1 + child_node.total_descendants
            node.children_count = len(node.children)
            return node

        # Roots: no parent, or parent inactive/missing from the active set
        roots = [r for r in role_map.values() if r.parent_id not in role_map]
        roots.sort(key=lambda r: (r.level, r.name))
        return [_build_node(r) for r in roots]

    # ── Context (ancestors / children / breadcrumb) ─────────────────

    @staticmethod
    async def get_context(db: AsyncSession, role_id: uuid.UUID) -> RoleContext:
        role_map = await RoleService._load_all(db)
        role = role_map.get(role_id)
        if role is None:
            raise NotFoundException("Role", str(role_id))

        ancestors = list(reversed(RoleService._ancestors(role_map, role.parent_id)))
        children = sorted(
            (r for r in role_map.values() if r.parent_id == role.id and r.is_active),
            key=lambda r: r.name,
        )
        descendants = sum(
            1 for r in role_map.values() if r.path.startswith(f"{role.path}/")
        )
        breadcrumb = " > ".join(r.display_name for r in [*ancestors, role])

        return RoleContext(
            role=RoleOut.model_validate(role),
            ancestors=[RoleBrief.model_validate(a) for a in ancestors],
            children=[RoleBrief.model_validate(c) for c in children],
            descendants_count=descendants,
            breadcrumb=breadcrumb,
        )

    # ── Menu assignment ─────────────────────────────────────────────

    @staticmethod
    async def assign_menus(
        db: AsyncSession,
        role_id: uuid.UUID,
        menu_ids: list[uuid.UUID],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Role:
        role = await RoleService.get_role(db, role_id)

        unique_ids = list(dict.fromkeys(menu_ids))
        menus: list[Menu] = []
        if unique_ids:
            result = await db.execute(select(Menu).where(Menu.id.in_(unique_ids)))
            menus = list(result.scalars().all())
        missing = set(unique_ids) - {m.id for m in menus}
        if missing:
            raise ValidationException(
                {"menu_ids": [f"Unknown menu id(s): {sorted(str(m) for m in missing)}"]},
            )

        old = [str(m.id) for m in role.menus]
        role.menus = menus
        await db.flush()
        await create_audit_entry(
            db,
            action="assign_menus",
            entity_type="role",
            entity_id=role.id,
            actor_id=actor_id,
            old_values={"menu_ids": old},
            new_values={"menu_ids": [str(m) for m in unique_ids]},
        )
        return role
