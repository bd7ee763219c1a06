"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrms.common.constants import UserRole, UserStatus
from hrms.database import Base, get_db
from hrms.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import hrms.attendance.models  # noqa: F401
import hrms.auth.models  # noqa: F401
import hrms.branches.models  # noqa: F401
import hrms.common.audit  # noqa: F401
import hrms.documents.models  # noqa: F401
import hrms.holidays.models  # noqa: F401
import hrms.leave.models  # noqa: F401
import hrms.navigation.models  # noqa: F401
import hrms.notes.models  # noqa: F401
import hrms.notifications.models  # noqa: F401
import hrms.teams.models  # noqa: F401
import hrms.users.models  # noqa: F401
import hrms.work_updates.models  # noqa: F401

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
    from hrms.common.rate_limit import limiter
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

DEFAULT_PASSWORD = "Sup3r-secret-pw"


def _make_user(
    *,
    email: Optional[str] = None,
    full_name: str = "Test User",
    role: UserRole = UserRole.employee,
    status: UserStatus = UserStatus.active,
    password: str = DEFAULT_PASSWORD,
) -> dict:
    from hrms.auth.security import hash_password

    return dict(
        id=uuid.uuid4(),
        email=email or f"{role.value}.{uuid.uuid4().hex[:8]}@example.com",
        full_name=full_name,
        password_hash=hash_password(password),
        role=role,
        status=status,
        approved_at=datetime.now(timezone.utc) if status == UserStatus.active else None,
    )


@pytest.fixture
def make_user(db):
    """Factory: ``await make_user(role=UserRole.manager)`` → committed ``User``."""
    from hrms.users.models import User

    async def _create(**kwargs):
        user = User(**_make_user(**kwargs))
        db.add(user)
        await db.commit()
        return user

    return _create


@pytest.fixture
async def employee(make_user):
    return await make_user(full_name="Eve Employee", role=UserRole.employee)


@pytest.fixture
async def manager(make_user):
    return await make_user(full_name="Max Manager", role=UserRole.manager)


@pytest.fixture
async def hr_user(make_user):
    return await make_user(full_name="Hana HR", role=UserRole.hr)


@pytest.fixture
async def admin(make_user):
    return await make_user(full_name="Ada Admin", role=UserRole.admin)


# ── Auth helpers ────────────────────────────────────────────────────

@pytest.fixture
def auth_headers_for(db):
    """Factory: persist a session for *user* and return Bearer headers."""
    from hrms.auth import service as auth_service

    async def _headers(user) -> dict[str, str]:
        access_token, _refresh = await auth_service.create_session(db, user, None, "pytest")
        await db.commit()
        return {"Authorization": f"Bearer {access_token}"}

    return _headers


@pytest.fixture
async def employee_headers(employee, auth_headers_for) -> dict[str, str]:
    return await auth_headers_for(employee)


@pytest.fixture
async def manager_headers(manager, auth_headers_for) -> dict[str, str]:
    return await auth_headers_for(manager)


@pytest.fixture
async def hr_headers(hr_user, auth_headers_for) -> dict[str, str]:
    return await auth_headers_for(hr_user)


@pytest.fixture
async def admin_headers(admin, auth_headers_for) -> dict[str, str]:
    return await auth_headers_for(admin)
