"""Pytest configuration and fixtures for ParcelOps access-control tests.

Each test gets a fresh in-memory SQLite database with the full schema, so
no external Postgres is needed. The app's `get_db` dependency is overridden
to share the test session.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.auth.jwt import create_access_token
from app.database import Base, get_db
from app.main import app
from app.models.organization import Organization
from app.models.user import User
from app.models.warehouse import Warehouse


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the database dependency pointed at the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Data Fixtures ───────────────────────────────────────────

@pytest_asyncio.fixture
async def test_organization(db_session: AsyncSession) -> Organization:
    organization = Organization(name="Acme Logistics", slug="acme-logistics")
    db_session.add(organization)
    await db_session.flush()
    return organization


@pytest_asyncio.fixture
async def other_organization(db_session: AsyncSession) -> Organization:
    organization = Organization(name="Globex Freight", slug="globex-freight")
    db_session.add(organization)
    await db_session.flush()
    return organization


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """The acting user (fills created_by / updated_by)."""
    user = User(email="admin@example.com", full_name="Admin User")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest_asyncio.fixture
async def member_user(db_session: AsyncSession) -> User:
    """The user whose access is being granted and resolved."""
    user = User(email="agent@example.com", full_name="Field Agent")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest_asyncio.fixture
async def warehouses(db_session: AsyncSession, test_organization: Organization) -> list[Warehouse]:
    rows = [
        Warehouse(organization_id=test_organization.id, name="North Hub", code="NH"),
        Warehouse(organization_id=test_organization.id, name="South Depot", code="SD"),
        Warehouse(organization_id=test_organization.id, name="Airport Lockers", code="AL"),
    ]
    db_session.add_all(rows)
    await db_session.flush()
    return rows


@pytest.fixture
def auth_headers(admin_user: User) -> dict:
    token = create_access_token(user_id=admin_user.id)
    return {"Authorization": f"Bearer {token}"}


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "rbac: Access-control service tests")
    config.addinivalue_line("markers", "api: HTTP endpoint tests")
