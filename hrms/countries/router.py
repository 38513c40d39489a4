"""Countries router — country and state reference data.

Routes:
    /countries                              — List, create
    /countries/bulk/upsert                  — Create or update many by code2
    /countries/{id|code2|code3}             — Get, update, delete
    /countries/{id|code}/states             — Add or update a state
    /countries/{id|code}/states/{state_key} — Remove a state by code or name
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.auth.models import User
from hrms.common.pagination import PaginationParams
from hrms.common.responses import success
from hrms.countries.schemas import CountryCreate, CountryOut, CountryUpdate, StateIn
from hrms.countries.service import CountryService
from hrms.database import get_db

router = APIRouter(prefix="", tags=["countries"])

_manage = require_permission("countries:manage")


def _out(country) -> dict:
    return CountryOut.model_validate(country).model_dump(mode="json")


@router.get("")
async def list_countries(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None),
    region: Optional[str] = Query(None),
):
    result = await CountryService.list_countries(db, pagination, search=search, region=region)
    return result.to_envelope(_out)


@router.post("", status_code=201)
async def create_country(
    body: CountryCreate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    country = await CountryService.create_country(db, body, actor_id=actor.id)
    return success(_out(country), message="Country created")


@router.post("/bulk/upsert")
async def bulk_upsert(
    body: list[CountryCreate] = Body(...),
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    outcome = await CountryService.bulk_upsert(db, body, actor_id=actor.id)
    return success(outcome, message="Countries upserted")


@router.get("/{id_or_code}")
async def get_country(
    id_or_code: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return success(_out(await CountryService.get_country(db, id_or_code)))


@router.patch("/{id_or_code}")
async def update_country(
    id_or_code: str,
    body: CountryUpdate,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    country = await CountryService.update_country(db, id_or_code, body, actor_id=actor.id)
    return success(_out(country), message="Country updated")


@router.delete("/{id_or_code}")
async def delete_country(
    id_or_code: str,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    await CountryService.delete_country(db, id_or_code, actor_id=actor.id)
    return success(message="Country deleted")


# ── States ──────────────────────────────────────────────────────────

@router.post("/{id_or_code}/states")
async def upsert_state(
    id_or_code: str,
    body: StateIn,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    country = await CountryService.upsert_state(db, id_or_code, body, actor_id=actor.id)
    return success(_out(country), message="State saved")


@router.delete("/{id_or_code}/states/{state_key}")
async def remove_state(
    id_or_code: str,
    state_key: str,
    db: AsyncSession = Depends(get_db),
    actor: User = Depends(_manage),
):
    country = await CountryService.remove_state(db, id_or_code, state_key, actor_id=actor.id)
    return success(_out(country), message="State removed")
