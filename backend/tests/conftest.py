"""
Test Configuration — Fixtures for async DB, tenant-bound stores, and seeded data.

Each test gets a fresh in-memory SQLite database with foreign keys
enforced, so RESTRICT / CASCADE rules behave as in production.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  (register mappers)
from core.tenancy import clear_active_tenant, tenant_scope
from db.session import Base, configure_sqlite_engine
from db.store import TenantScopedStore
from services import Services
from tests.factories import TENANT_A, TENANT_B, seed_network

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def _reset_tenant_context():
    clear_active_tenant()
    yield
    clear_active_tenant()


@pytest.fixture
async def test_engine():
    """Create a test database engine and build all tables."""
    engine = configure_sqlite_engine(
        create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(test_db):
    """Store that follows the active tenant context."""
    return TenantScopedStore(test_db)


@pytest.fixture
def services(store):
    return Services.from_store(store)


@pytest.fixture
def store_a(test_db):
    return TenantScopedStore(test_db, TENANT_A)


@pytest.fixture
def store_b(test_db):
    return TenantScopedStore(test_db, TENANT_B)


@pytest.fixture
def services_a(store_a):
    return Services.from_store(store_a)


@pytest.fixture
def services_b(store_b):
    return Services.from_store(store_b)


@pytest.fixture
async def seeded(services):
    """Seed one network per tenant, returning both."""
    with tenant_scope(TENANT_A):
        network_a = await seed_network(services, "A")
    with tenant_scope(TENANT_B):
        network_b = await seed_network(services, "B")
    return {TENANT_A: network_a, TENANT_B: network_b}
