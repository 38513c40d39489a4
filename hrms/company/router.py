"""Company router: profile, mail settings, leave allocations and payroll components.

Routes:
    /company                              — Get, update
    /company/initialize                   — Create the company (once)
    /company/exists                       — Public existence check
    /company/ceo-talk | address | contact | sender
    /company/recipients                   — Add mail recipient
    /company/recipients/{id}?type=        — Remove mail recipient
    /company/leave-allocation(s)          — Read / update allocations
    /company/stats                        — Profile and headcount summary
    /company/payroll/components           — List, create, replace
    /company/payroll/components/{code}    — Patch, delete
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.auth.models import User
from hrms.common.responses import success
from hrms.company.schemas import (
    AddressSchema,
    CeoTalkUpdate,
    CompanyInitialize,
    CompanyOut,
    CompanyUpdate,
    ContactSchema,
    LeaveAllocationUpdate,
    PayrollComponent,
    PayrollComponentPatch,
    PayrollComponentsReplace,
    RecipientCreate,
    RecipientKind,
    SenderUpdate,
)
from hrms.company.service import CompanyService
from hrms.database import get_db

router = APIRouter(prefix="", tags=["company"])

_manage = require_permission("company:manage")


def _out(company) -> dict:
    return CompanyOut.model_validate(company).model_dump(mode="json")


# ═════════════════════════════════════════════════════════════════════
# Profile
# ═════════════════════════════════════════════════════════════════════


@router.get("")
async def get_company(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(_out(await CompanyService.get(db)))


@router.post("/initialize", status_code=201)
async def initialize_company(
    body: CompanyInitialize,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    company = await CompanyService.initialize(db, body, actor_id=actor.id)
    return success(_out(company), message="Company initialized successfully")


@router.put("")
async def update_company(
    body: CompanyUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    company = await CompanyService.update(db, body, actor_id=actor.id)
    return success(_out(company), message="Company information updated successfully")


# ── GET /company/exists (no auth) ───────────────────────────────────

@router.get("/exists")
async def company_exists(db: AsyncSession = Depends(get_db)):
    company = await CompanyService.find(db)
    return {
        "success": True,
        "exists": company is not None,
        "data": {"name": company.name, "domain": company.domain} if company else None,
    }


@router.put("/ceo-talk")
async def update_ceo_talk(
    body: CeoTalkUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    company = await CompanyService.set_ceo_talk(db, body.message, actor_id=actor.id)
    return success({"ceo_talk": company.ceo_talk}, message="CEO Talk message updated successfully")


@router.put("/address")
async def update_address(
    body: AddressSchema,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    company = await CompanyService.set_json(db, "address", body.model_dump(), actor_id=actor.id)
    return success(company.address, message="Company address updated successfully")


@router.put("/contact")
async def update_contact(
    body: ContactSchema,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    company = await CompanyService.set_json(
        db, "contact_info", body.model_dump(mode="json"), actor_id=actor.id,
    )
    return success(company.contact_info, message="Contact information updated successfully")


@router.put("/sender")
async def update_sender(
    body: SenderUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    company = await CompanyService.set_sender(db, body, actor_id=actor.id)
    return success(company.email_sender, message="Sender information updated successfully")


# ═════════════════════════════════════════════════════════════════════
# Recipients
# ═════════════════════════════════════════════════════════════════════


@router.post("/recipients")
async def add_recipient(
    body: RecipientCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    recipients = await CompanyService.add_recipient(db, body, actor_id=actor.id)
    return success(recipients, message=f"Recipient added to {body.type} list successfully")


@router.delete("/recipients/{recipient_id}")
async def remove_recipient(
    recipient_id: str,
    type: RecipientKind = Query(...),
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    recipients = await CompanyService.remove_recipient(db, recipient_id, type, actor_id=actor.id)
    return success(recipients, message=f"Recipient removed from {type} list successfully")


# ═════════════════════════════════════════════════════════════════════
# Leave allocations
# ═════════════════════════════════════════════════════════════════════


@router.get("/leave-allocation")
async def get_leave_allocation(
    leave_type: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    allocation = await CompanyService.leave_allocation(db, leave_type)
    return success({"leave_type": leave_type.lower(), "allocation": allocation})


@router.get("/leave-allocations")
async def get_leave_allocations(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    company = await CompanyService.get(db)
    return success(dict(company.leave_allocations or {}))


@router.put("/leave-allocation")
async def update_leave_allocation(
    body: LeaveAllocationUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    allocations = await CompanyService.set_leave_allocation(db, body, actor_id=actor.id)
    return success(allocations, message="Leave allocation updated successfully")


# ── GET /company/stats ──────────────────────────────────────────────

@router.get("/stats")
async def company_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(await CompanyService.stats(db))


# ═════════════════════════════════════════════════════════════════════
# Payroll components
# ═════════════════════════════════════════════════════════════════════


@router.get("/payroll/components")
async def list_components(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(await CompanyService.components(db))


@router.post("/payroll/components", status_code=201)
async def create_component(
    body: PayrollComponent,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    components = await CompanyService.add_component(db, body, actor_id=actor.id)
    return success(components, message="Component created")


@router.put("/payroll/components")
async def replace_components(
    body: PayrollComponentsReplace,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    components = await CompanyService.replace_components(db, body.components, actor_id=actor.id)
    return success(components, message="Components updated")


@router.patch("/payroll/components/{code}")
async def patch_component(
    code: str,
    body: PayrollComponentPatch,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    component = await CompanyService.patch_component(db, code, body, actor_id=actor.id)
    return success(component, message="Component updated")


@router.delete("/payroll/components/{code}")
async def delete_component(
    code: str,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    components = await CompanyService.delete_component(db, code, actor_id=actor.id)
    return success(components, message="Component deleted")
