import os
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import get_settings
from app.db.base import Base

settings = get_settings()

# Detect if we're running under pytest
IS_TEST = settings.APP_ENV == "test" or "PYTEST_CURRENT_TEST" in os.environ
IS_SQLITE = settings.DB_URL.startswith("sqlite")

# ---------------------------------------------------------------------------
# Application engine + session
# ---------------------------------------------------------------------------
engine = create_async_engine(
    settings.DB_URL,
    echo=False,
    future=True,
    # Tests drive the app from several event loops (TestClient portal thread,
    # one loop per pytest-asyncio test), so connections must not be reused.
    poolclass=NullPool if IS_TEST else None,
)


if IS_SQLITE:

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
        # SQLite ships with FK enforcement off; ON DELETE rules depend on it.
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async SQLAlchemy session.

    The session is closed when the request is completed.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def init_db_for_startup() -> None:
    """
    Create any missing tables for events, exceptions and users.

    Existing tables and rows are left untouched, so this is safe to run on
    every startup and before each service-level test.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
