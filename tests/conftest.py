"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, roles, payroll, rosters, etc.).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("UPLOAD_DIR", "/tmp/hrms-test-uploads")

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import hrms.models  # noqa: F401  (registers every table on Base.metadata)
from hrms.auth.models import User
from hrms.auth.service import create_session, hash_password, load_user
from hrms.common.rate_limit import limiter
from hrms.core_hr.models import Department, Employee
from hrms.database import Base, get_db
from hrms.main import create_app
from hrms.roles.models import Role

# ── SQLite compat: compile PG-specific types to TEXT/BLOB ───────────

from sqlalchemy.dialects.postgresql import INET, JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() as a SQLite custom function."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

async def make_role(
    db: AsyncSession,
    *,
    name: str = "admin",
    permissions: Optional[list[str]] = None,
    parent: Optional[Role] = None,
) -> Role:
    """Insert a role under *parent* with level/path filled in."""
    role_id = uuid.uuid4()
    role = Role(
        id=role_id,
        name=name,
        display_name=name.replace("_", " ").title(),
        parent_id=parent.id if parent else None,
        level=parent.level + 1 if parent else 0,
        path=f"{parent.path if parent else ''}/{role_id}",
        permissions=permissions if permissions is not None else [],
        is_active=True,
    )
    db.add(role)
    await db.commit()
    return role


async def make_department(db: AsyncSession, *, name: str = "Engineering") -> Department:
    department = Department(id=uuid.uuid4(), name=name)
    db.add(department)
    await db.commit()
    return department


async def make_user(
    db: AsyncSession,
    *,
    email: Optional[str] = None,
    first_name: str = "Test",
    last_name: str = "User",
    password: str = "Passw0rd!",
    role: Optional[Role] = None,
    department: Optional[Department] = None,
    permissions: Optional[list[str]] = None,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email or f"user.{uuid.uuid4().hex[:8]}@example.com",
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role_id=role.id if role else None,
        department_id=department.id if department else None,
        permissions=permissions or [],
    )
    db.add(user)
    await db.commit()
    return user


async def make_employee(
    db: AsyncSession,
    user: User,
    *,
    employee_code: Optional[str] = None,
    salary_amount: Optional[Decimal] = Decimal("30000"),
    joining_date: date = date(2024, 1, 15),
    date_of_birth: Optional[date] = None,
) -> Employee:
    employee = Employee(
        id=uuid.uuid4(),
        user_id=user.id,
        employee_code=employee_code or f"EMP-{uuid.uuid4().hex[:6].upper()}",
        joining_date=joining_date,
        date_of_birth=date_of_birth,
        salary_amount=salary_amount,
        is_active=True,
    )
    db.add(employee)
    await db.commit()
    return employee


# ── Auth helpers ────────────────────────────────────────────────────

async def auth_headers_for(db: AsyncSession, user: User) -> dict[str, str]:
    """Issue a real session for *user* and return Bearer headers."""
    loaded = await load_user(db, user.id)
    access_token, _, _ = await create_session(db, loaded)
    await db.commit()
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
async def admin_role(db) -> Role:
    return await make_role(db, name="admin", permissions=["*"])


@pytest.fixture
async def admin_user(db, admin_role) -> User:
    return await make_user(
        db, email="admin@example.com", first_name="Ada", last_name="Admin", role=admin_role,
    )


@pytest.fixture
async def admin_employee(db, admin_user) -> Employee:
    return await make_employee(db, admin_user, employee_code="EMP-ADMIN")


@pytest.fixture
async def admin_headers(db, admin_user, admin_employee) -> dict[str, str]:
    return await auth_headers_for(db, admin_user)


@pytest.fixture
async def staff_role(db, admin_role) -> Role:
    return await make_role(db, name="staff", parent=admin_role)


@pytest.fixture
async def staff_user(db, staff_role) -> User:
    return await make_user(
        db, email="staff@example.com", first_name="Sam", last_name="Staff", role=staff_role,
    )


@pytest.fixture
async def staff_employee(db, staff_user) -> Employee:
    return await make_employee(db, staff_user, employee_code="EMP-STAFF")


@pytest.fixture
async def staff_headers(db, staff_user, staff_employee) -> dict[str, str]:
    return await auth_headers_for(db, staff_user)
