"""
Database session configuration.

The deployment tables and the vehicle registry collection live behind one
async SQLAlchemy engine: PostgreSQL (asyncpg) in production, SQLite
(aiosqlite) for local runs and tests.
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from backend.app.core.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """Build engine keyword arguments; SQLite has no connection pool sizing."""
    options: Dict[str, Any] = {"echo": settings.db_echo, "future": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_pre_ping"] = True
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def create_all_tables() -> None:
    """Create deployment, event and registry tables if they do not exist."""
    # Models must be imported so they register on Base.metadata
    from backend.app.models import deployment, deployment_event, registry_document  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
