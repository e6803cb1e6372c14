"""
Supply Chain Database Session Management

Async SQLAlchemy engine and session factory.
"""

from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""
    pass


def configure_sqlite_engine(engine: AsyncEngine) -> AsyncEngine:
    """
    Make SQLite behave like the production database for our purposes.

    Enables foreign key enforcement (RESTRICT / CASCADE rules) and takes
    over BEGIN from the driver so SAVEPOINT rollbacks work.
    """
    if engine.dialect.name != "sqlite":
        return engine

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    kwargs = {"echo": settings.database_echo, "pool_pre_ping": True}
    if not settings.is_sqlite:
        kwargs.update(pool_size=settings.database_pool_size, max_overflow=settings.database_max_overflow)
    return configure_sqlite_engine(create_async_engine(settings.database_url, **kwargs))


@lru_cache
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def dispose_engine() -> None:
    """Close pooled connections and forget the cached engine and session factory."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
    get_sessionmaker.cache_clear()
    get_engine.cache_clear()


@asynccontextmanager
async def tenant_session(tenant_id: str, session_factory: async_sessionmaker[AsyncSession] | None = None):
    """
    Open a unit of work bound to tenant_id.

    Yields a TenantScopedStore; commits when the block exits cleanly and
    rolls back otherwise.
    """
    from core.tenancy import tenant_scope
    from db.store import TenantScopedStore

    factory = session_factory or get_sessionmaker()
    async with factory() as session:
        with tenant_scope(tenant_id):
            store = TenantScopedStore(session)
            try:
                yield store
                await session.commit()
            except BaseException:
                await session.rollback()
                raise


async def create_schema(engine: AsyncEngine | None = None) -> None:
    """Create all tables. Intended for tests and local bootstrap, not migrations."""
    import db.models  # noqa: F401  (register mappers)

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
