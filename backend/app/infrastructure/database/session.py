"""Async engine and session factory shared by the API and the pipeline scheduler."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings

_ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
}


def _get_async_url(url: str) -> str:
    """Swap a plain ``sqlite://`` / ``postgresql://`` URL to its async driver."""
    scheme, sep, rest = url.partition("://")
    if sep and scheme in _ASYNC_DRIVERS:
        return f"{_ASYNC_DRIVERS[scheme]}://{rest}"
    return url


def _engine_options(async_url: str) -> dict[str, Any]:
    if async_url.startswith("sqlite"):
        # The scheduler loops and API requests write concurrently.
        return {"connect_args": {"timeout": 30}}
    return {"pool_pre_ping": True}


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest on SQLite.

    The sqlite3 driver defers BEGIN until the first DML statement, which
    turns a leading SAVEPOINT into the outer transaction.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


settings = get_settings()
_async_url = _get_async_url(settings.database_url)

engine = create_async_engine(
    _async_url,
    echo=settings.database_echo,
    **_engine_options(_async_url),
)
if _async_url.startswith("sqlite"):
    enable_sqlite_savepoints(engine)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed on success."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
