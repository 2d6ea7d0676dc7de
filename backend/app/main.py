"""FastAPI application factory for the source pipeline API."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.infrastructure.database import Base, engine
from app.infrastructure.logging.log_config import setup_logging
from app.infrastructure.pipeline_factory import build_scheduler
from app.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


async def _ensure_database_exists() -> None:
    """Issue ``CREATE DATABASE`` on PostgreSQL when the target database is missing.

    SQLite files are created on first connect, so other backends are skipped.
    """
    import asyncpg
    from sqlalchemy.engine import make_url

    url = make_url(get_settings().database_url)
    if not url.drivername.startswith("postgresql") or not url.database:
        return

    # asyncpg wants a plain DSN pointing at the maintenance database
    maintenance_dsn = url.set(drivername="postgresql", database="postgres").render_as_string(
        hide_password=False
    )
    try:
        conn = await asyncpg.connect(maintenance_dsn)
    except (OSError, asyncpg.PostgresError) as exc:
        logger.warning("Could not reach PostgreSQL to check '%s': %s", url.database, exc)
        return

    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", url.database):
            return
        # CREATE DATABASE cannot run inside a transaction block
        await conn.execute(f'CREATE DATABASE "{url.database}"')
        logger.info("Created database '%s'", url.database)
    finally:
        await conn.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Validate config, create tables, then run the pipeline scheduler for the app lifetime."""
    settings = get_settings()
    setup_logging()

    # Fail fast on missing credentials for enabled features
    settings.validate_required()

    await _ensure_database_exists()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = build_scheduler()
        await scheduler.start()
    else:
        logger.info("Pipeline scheduler disabled (SCHEDULER_ENABLED=false)")

    yield

    # Shutdown
    if scheduler is not None:
        await scheduler.stop()
    await engine.dispose()


def create_app() -> FastAPI:
    """Build the API app; the pipeline scheduler starts from its lifespan."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
