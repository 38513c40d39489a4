"""Country service layer: CRUD addressed by id, ISO alpha-2 or alpha-3 code."""

from __future__ import annotations

import logging
import re
import uuid
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import DuplicateException, NotFoundException, ValidationException
from hrms.common.filters import apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.countries.models import Country, State
from hrms.countries.schemas import (
    BulkUpsertResult,
    CountryCreate,
    CountryUpdate,
    StateIn,
)

logger = logging.getLogger(__name__)

_ALPHA2 = re.compile(r"^[A-Za-z]{2}$")
_ALPHA3 = re.compile(r"^[A-Za-z]{3}$")


def _merge_states(country: Country, states: Iterable[StateIn], *, replace: bool = False) -> None:
    """Update states matched by code (or name), append new ones.

    With *replace*, states absent from *states* are removed.
    """
    incoming = list(states)
    kept: list[State] = []
    for item in incoming:
        match = next(
            (
                s for s in country.states
                if s.code == item.code or s.name.lower() == item.name.lower()
            ),
            None,
        )
        if match is None:
            match = State(code=item.code, name=item.name, subdivision=item.subdivision)
            country.states.append(match)
        else:
            match.code = item.code
            match.name = item.name
            if item.subdivision is not None:
                match.subdivision = item.subdivision
        kept.append(match)
    if replace:
        for state in list(country.states):
            if state not in kept:
                country.states.remove(state)


class CountryService:

    @staticmethod
    def _lookup(id_or_code: str):
        try:
            return Country.id == uuid.UUID(id_or_code)
        except ValueError:
            pass
        if _ALPHA2.match(id_or_code):
            return Country.code2 == id_or_code.upper()
        if _ALPHA3.match(id_or_code):
            return Country.code3 == id_or_code.upper()
        return None

    @staticmethod
    async def get_country(db: AsyncSession, id_or_code: str) -> Country:
        condition = CountryService._lookup(id_or_code)
        country = None
        if condition is not None:
            result = await db.execute(
                select(Country)
                .where(condition)
                .options(selectinload(Country.states))
                .execution_options(populate_existing=True),
            )
            country = result.scalars().first()
        if country is None:
            raise NotFoundException("Country", id_or_code)
        return country

    @staticmethod
    async def _ensure_unique(
        db: AsyncSession,
        *,
        code2: Optional[str] = None,
        code3: Optional[str] = None,
        name: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        checks = (
            ("code2", Country.code2 == code2 if code2 else None, code2),
            ("code3", Country.code3 == code3 if code3 else None, code3),
            ("name", func.lower(Country.name) == name.lower() if name else None, name),
        )
        for field, condition, value in checks:
            if condition is None:
                continue
            query = select(Country.id).where(condition)
            if exclude_id is not None:
                query = query.where(Country.id != exclude_id)
            if (await db.execute(query)).scalar() is not None:
                raise DuplicateException(field, value)

    @staticmethod
    async def list_countries(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        search: Optional[str] = None,
        region: Optional[str] = None,
    ) -> PaginatedResponse:
        query = select(Country).options(selectinload(Country.states)).order_by(Country.name)
        if region:
            query = query.where(func.lower(Country.region) == region.lower())
        query = apply_search(query, Country, search, ["name", "code2", "code3", "capital"])
        return await paginate(db, query, pagination, model=Country)

    @staticmethod
    async def create_country(
        db: AsyncSession,
        data: CountryCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Country:
        await CountryService._ensure_unique(db, code2=data.code2, code3=data.code3, name=data.name)
        country = Country(
            code2=data.code2,
            code3=data.code3,
            name=data.name,
            capital=data.capital,
            region=data.region,
            subregion=data.subregion,
            states=[],
        )
        _merge_states(country, data.states)
        db.add(country)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="country",
            entity_id=country.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await CountryService.get_country(db, str(country.id))

    @staticmethod
    async def update_country(
        db: AsyncSession,
        id_or_code: str,
        data: CountryUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Country:
        country = await CountryService.get_country(db, id_or_code)
        updates = data.model_dump(exclude_unset=True)
        await CountryService._ensure_unique(
            db,
            code2=updates.get("code2"),
            code3=updates.get("code3"),
            name=updates.get("name"),
            exclude_id=country.id,
        )
        old = {k: getattr(country, k) for k in updates}
        for field, value in updates.items():
            setattr(country, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="country",
            entity_id=country.id,
            actor_id=actor_id,
            old_values=old,
            new_values=updates,
        )
        return await CountryService.get_country(db, str(country.id))

    @staticmethod
    async def delete_country(
        db: AsyncSession,
        id_or_code: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        country = await CountryService.get_country(db, id_or_code)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="country",
            entity_id=country.id,
            actor_id=actor_id,
            old_values={"code2": country.code2, "name": country.name},
        )
        await db.delete(country)
        await db.flush()

    # ── States ──────────────────────────────────────────────────────

    @staticmethod
    async def upsert_state(
        db: AsyncSession,
        id_or_code: str,
        data: StateIn,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Country:
        country = await CountryService.get_country(db, id_or_code)
        _merge_states(country, [data])
        await db.flush()
        await create_audit_entry(
            db,
            action="upsert_state",
            entity_type="country",
            entity_id=country.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return await CountryService.get_country(db, str(country.id))

    @staticmethod
    async def remove_state(
        db: AsyncSession,
        id_or_code: str,
        state_key: str,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Country:
        """Remove a state by code or (case-insensitive) name."""
        country = await CountryService.get_country(db, id_or_code)
        target = next(
            (
                s for s in country.states
                if s.code == state_key or s.name.lower() == state_key.lower()
            ),
            None,
        )
        if target is None:
            raise NotFoundException("State", state_key)
        country.states.remove(target)
        await db.flush()
        await create_audit_entry(
            db,
            action="remove_state",
            entity_type="country",
            entity_id=country.id,
            actor_id=actor_id,
            old_values={"code": target.code, "name": target.name},
        )
        return await CountryService.get_country(db, str(country.id))

    # ── Bulk ────────────────────────────────────────────────────────

    @staticmethod
    async def bulk_upsert(
        db: AsyncSession,
        items: list[CountryCreate],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> BulkUpsertResult:
        """Create or update countries keyed by ``code2``; states are replaced."""
        if not items:
            raise ValidationException({"body": ["Array payload required."]})

        outcome = BulkUpsertResult()
        for item in items:
            result = await db.execute(
                select(Country)
                .where(Country.code2 == item.code2)
                .options(selectinload(Country.states)),
            )
            country = result.scalars().first()
            if country is None:
                await CountryService._ensure_unique(db, code3=item.code3, name=item.name)
                country = Country(
                    code2=item.code2,
                    code3=item.code3,
                    name=item.name,
                    capital=item.capital,
                    region=item.region,
                    subregion=item.subregion,
                    states=[],
                )
                db.add(country)
                outcome.created += 1
            else:
                await CountryService._ensure_unique(
                    db, code3=item.code3, name=item.name, exclude_id=country.id,
                )
                for field in ("code3", "name", "capital", "region", "subregion"):
                    setattr(country, field, getattr(item, field))
                outcome.updated += 1
            _merge_states(country, item.states, replace=True)
            await db.flush()

        logger.info(
            "Countries bulk upsert by %s: created=%d updated=%d",
            actor_id, outcome.created, outcome.updated,
        )
        return outcome
