"""Company service layer: the single organisation row and its settings.

Every JSONB settings column is rebuilt as a new object before assignment so
that the ORM notices the change.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import User
from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import (
    DuplicateException,
    NotFoundException,
    ValidationException,
)
from hrms.company.models import Company
from hrms.company.schemas import (
    DEFAULT_CEO_TALK,
    CompanyInitialize,
    CompanyUpdate,
    LeaveAllocationUpdate,
    PayrollComponent,
    PayrollComponentPatch,
    RecipientCreate,
    SenderUpdate,
)
from hrms.config import settings
from hrms.core_hr.models import Department, Designation, Employee
from hrms.payroll import calculator

logger = logging.getLogger(__name__)

RECIPIENT_TYPES = ("to", "cc", "bcc")


def _component(comp: PayrollComponent) -> dict[str, Any]:
    return {
        "name": comp.name.strip(),
        "code": comp.code,
        "percent": float(comp.percent),
        "is_active": comp.is_active,
    }


def check_split(components: list[dict]) -> None:
    """Reject components whose effective basic + HRA + allowances is not 100%.

    Codes without an active component fall back to the configured defaults,
    as they do when payroll is computed.
    """
    percents = calculator.split_percents(components, settings.payroll_split_defaults)
    total = sum(percents.values())
    if total != calculator.HUNDRED:
        split = ", ".join(f"{code} {float(p):g}%" for code, p in percents.items())
        raise ValidationException(
            {"payroll_components": [f"Basic, HRA and allowances must add up to 100% (got {split})."]},
        )


def profile_completeness(company: Company) -> int:
    """Percentage of optional profile fields that are filled in."""
    address = company.address or {}
    contact = company.contact_info or {}
    fields = [
        company.name,
        company.domain,
        company.logo,
        company.website,
        address.get("street"),
        address.get("city"),
        address.get("country"),
        contact.get("phone"),
        contact.get("email"),
        company.ceo_name,
        company.ceo_talk,
    ]
    filled = sum(1 for f in fields if f)
    return round(filled * 100 / len(fields))


class CompanyService:

    @staticmethod
    async def find(db: AsyncSession) -> Optional[Company]:
        result = await db.execute(select(Company).order_by(Company.created_at).limit(1))
        return result.scalars().first()

    @staticmethod
    async def get(db: AsyncSession) -> Company:
        company = await CompanyService.find(db)
        if company is None:
            raise NotFoundException("Company", "default")
        return company

    @staticmethod
    async def _audit(
        db: AsyncSession,
        company: Company,
        actor_id: Optional[uuid.UUID],
        *,
        action: str = "update",
        old: Optional[dict] = None,
        new: Optional[dict] = None,
    ) -> None:
        await create_audit_entry(
            db,
            action=action,
            entity_type="company",
            entity_id=company.id,
            actor_id=actor_id,
            old_values=jsonable_encoder(old) if old is not None else None,
            new_values=jsonable_encoder(new) if new is not None else None,
        )

    # ── Profile ─────────────────────────────────────────────────────

    @staticmethod
    async def initialize(
        db: AsyncSession,
        data: CompanyInitialize,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Company:
        if await CompanyService.find(db) is not None:
            raise ValidationException({"company": ["Company already exists."]})

        company = Company(
            name=data.name,
            domain=data.domain,
            logo=data.logo,
            description=data.description,
            industry=data.industry,
            website=data.website,
            address=data.address.model_dump(),
            contact_info=data.contact_info.model_dump(mode="json"),
            ceo_name=data.ceo_name,
            ceo_talk=data.ceo_talk or DEFAULT_CEO_TALK,
            email_sender={},
            email_recipients={kind: [] for kind in RECIPIENT_TYPES},
            grace_period=data.grace_period,
            leave_allocations=dict(data.leave_allocations),
            payroll_components=[],
        )
        db.add(company)
        await db.flush()
        await CompanyService._audit(
            db, company, actor_id, action="create", new=data.model_dump(mode="json"),
        )
        logger.info("Company %r initialised (domain=%s)", company.name, company.domain)
        return company

    @staticmethod
    async def update(
        db: AsyncSession,
        data: CompanyUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Company:
        company = await CompanyService.get(db)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("domain") and updates["domain"] != company.domain:
            clash = await db.execute(
                select(Company.id).where(Company.domain == updates["domain"], Company.id != company.id),
            )
            if clash.scalar() is not None:
                raise DuplicateException("domain", updates["domain"])

        old = {k: getattr(company, k) for k in updates}
        for field, value in updates.items():
            setattr(company, field, value)
        await db.flush()
        await CompanyService._audit(db, company, actor_id, old=old, new=updates)
        return company

    @staticmethod
    async def set_ceo_talk(
        db: AsyncSession,
        message: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Company:
        company = await CompanyService.get(db)
        old = company.ceo_talk
        company.ceo_talk = message.strip()
        await db.flush()
        await CompanyService._audit(
            db, company, actor_id, old={"ceo_talk": old}, new={"ceo_talk": company.ceo_talk},
        )
        return company

    @staticmethod
    async def set_json(
        db: AsyncSession,
        column: str,
        value: dict[str, Any],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Company:
        """Replace the ``address`` or ``contact_info`` block."""
        company = await CompanyService.get(db)
        old = getattr(company, column)
        setattr(company, column, dict(value))
        await db.flush()
        await CompanyService._audit(db, company, actor_id, old={column: old}, new={column: value})
        return company

    @staticmethod
    async def set_sender(
        db: AsyncSession,
        data: SenderUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Company:
        company = await CompanyService.get(db)
        sender = data.model_dump(mode="json")
        if data.user_id is not None:
            user = await db.get(User, data.user_id)
            if user is None:
                raise ValidationException({"user_id": ["Sender user not found."]})
            sender["name"] = sender.get("name") or user.full_name
            sender["email"] = sender.get("email") or user.email
        if sender.get("email"):
            sender["email"] = sender["email"].lower()

        old = company.email_sender
        company.email_sender = sender
        await db.flush()
        await CompanyService._audit(db, company, actor_id, old={"sender": old}, new={"sender": sender})
        return company

    # ── Recipients ──────────────────────────────────────────────────

    @staticmethod
    async def add_recipient(
        db: AsyncSession,
        data: RecipientCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict[str, list]:
        company = await CompanyService.get(db)
        recipients = {
            kind: list((company.email_recipients or {}).get(kind, []))
            for kind in RECIPIENT_TYPES
        }
        email = data.email.lower()
        if any(r.get("email", "").lower() == email for r in recipients[data.type]):
            raise ValidationException(
                {"email": [f"Recipient already exists in {data.type} list."]},
            )
        recipients[data.type].append(
            {"id": str(uuid.uuid4()), "email": email, "name": data.name},
        )
        company.email_recipients = recipients
        await db.flush()
        await CompanyService._audit(
            db, company, actor_id, action="add_recipient", new=data.model_dump(mode="json"),
        )
        return recipients

    @staticmethod
    async def remove_recipient(
        db: AsyncSession,
        recipient_id: str,
        kind: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict[str, list]:
        if kind not in RECIPIENT_TYPES:
            raise ValidationException(
                {"type": ['Invalid recipient type. Must be "to", "cc", or "bcc".']},
            )
        company = await CompanyService.get(db)
        recipients = {
            k: list((company.email_recipients or {}).get(k, []))
            for k in RECIPIENT_TYPES
        }
        remaining = [r for r in recipients[kind] if r.get("id") != recipient_id]
        if len(remaining) == len(recipients[kind]):
            raise NotFoundException("Recipient", recipient_id)
        recipients[kind] = remaining
        company.email_recipients = recipients
        await db.flush()
        await CompanyService._audit(
            db, company, actor_id, action="remove_recipient",
            old={"type": kind, "id": recipient_id},
        )
        return recipients

    # ── Leave allocations ───────────────────────────────────────────

    @staticmethod
    async def leave_allocation(db: AsyncSession, leave_type: str) -> int:
        company = await CompanyService.get(db)
        return int((company.leave_allocations or {}).get(leave_type.lower(), 0))

    @staticmethod
    async def set_leave_allocation(
        db: AsyncSession,
        data: LeaveAllocationUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict[str, int]:
        company = await CompanyService.get(db)
        allocations = dict(company.leave_allocations or {})
        key = data.leave_type.strip().lower()
        old = allocations.get(key)
        allocations[key] = data.allocation
        company.leave_allocations = allocations
        await db.flush()
        await CompanyService._audit(
            db, company, actor_id, old={key: old}, new={key: data.allocation},
        )
        return allocations

    # ── Stats ───────────────────────────────────────────────────────

    @staticmethod
    async def stats(db: AsyncSession) -> dict[str, Any]:
        company = await CompanyService.get(db)
        employees = (await db.execute(
            select(func.count(Employee.id)).where(Employee.is_active.is_(True)),
        )).scalar_one()
        departments = (await db.execute(select(func.count(Department.id)))).scalar_one()
        designations = (await db.execute(
            select(func.count(Designation.id)).where(Designation.is_active.is_(True)),
        )).scalar_one()

        address = company.address or {}
        contact = company.contact_info or {}
        recipients = company.email_recipients or {}
        return {
            "basic": {
                "name": company.name,
                "domain": company.domain,
                "created_at": company.created_at,
                "last_updated": company.updated_at,
            },
            "contact": {
                "has_phone": bool(contact.get("phone")),
                "has_email": bool(contact.get("email")),
                "has_website": bool(company.website),
                "has_complete_address": bool(
                    address.get("street") and address.get("city") and address.get("country"),
                ),
            },
            "settings": {
                "has_ceo_talk": bool(company.ceo_talk),
                "recipient_counts": {k: len(recipients.get(k, [])) for k in RECIPIENT_TYPES},
                "has_sender": bool((company.email_sender or {}).get("email")),
                "grace_period": company.grace_period,
            },
            "metrics": {
                "employee_count": employees,
                "department_count": departments,
                "designation_count": designations,
                "profile_completeness": profile_completeness(company),
            },
            "leave_allocations": dict(company.leave_allocations or {}),
        }

    # ── Payroll components ──────────────────────────────────────────

    @staticmethod
    async def components(db: AsyncSession) -> list[dict]:
        company = await CompanyService.get(db)
        return list(company.payroll_components or [])

    @staticmethod
    async def add_component(
        db: AsyncSession,
        data: PayrollComponent,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[dict]:
        company = await CompanyService.get(db)
        current = list(company.payroll_components or [])
        if any(c.get("code") == data.code for c in current):
            raise ValidationException(
                {"code": [f'Component with code "{data.code}" already exists.']},
            )
        current.append(_component(data))
        check_split(current)
        company.payroll_components = current
        await db.flush()
        await CompanyService._audit(
            db, company, actor_id, action="add_component", new=_component(data),
        )
        return current

    @staticmethod
    async def replace_components(
        db: AsyncSession,
        components: list[PayrollComponent],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[dict]:
        company = await CompanyService.get(db)
        replacement = [_component(c) for c in components]
        check_split(replacement)
        old = company.payroll_components
        company.payroll_components = replacement
        await db.flush()
        await CompanyService._audit(
            db, company, actor_id,
            old={"payroll_components": old},
            new={"payroll_components": company.payroll_components},
        )
        logger.info("Payroll components replaced: %s", [c["code"] for c in company.payroll_components])
        return list(company.payroll_components)

    @staticmethod
    async def patch_component(
        db: AsyncSession,
        code: str,
        data: PayrollComponentPatch,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> dict:
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if not updates:
            raise ValidationException({"body": ["No valid fields to update."]})
        company = await CompanyService.get(db)
        code = code.lower()
        current = [dict(c) for c in company.payroll_components or []]
        target = next((c for c in current if c.get("code") == code), None)
        if target is None:
            raise NotFoundException("PayrollComponent", code)
        if "percent" in updates:
            updates["percent"] = float(updates["percent"])
        old = dict(target)
        target.update(updates)
        check_split(current)
        company.payroll_components = current
        await db.flush()
        await CompanyService._audit(db, company, actor_id, old=old, new=target)
        return target

    @staticmethod
    async def delete_component(
        db: AsyncSession,
        code: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[dict]:
        company = await CompanyService.get(db)
        code = code.lower()
        current = list(company.payroll_components or [])
        remaining = [c for c in current if c.get("code") != code]
        if len(remaining) == len(current):
            raise NotFoundException("PayrollComponent", code)
        check_split(remaining)
        company.payroll_components = remaining
        await db.flush()
        await CompanyService._audit(
            db, company, actor_id, action="delete_component", old={"code": code},
        )
        return remaining
