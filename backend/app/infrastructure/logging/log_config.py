"""Logging setup for the pipeline service.

Per-category levels come from Settings, so chatty libraries (SQL echo,
httpx request lines) and the pipelines themselves can be tuned separately.

Usage:
    from app.infrastructure.logging.log_config import setup_logging
    setup_logging()   # once, from the FastAPI lifespan
"""

import logging
import sys

from app.config import get_settings

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"

# ── Settings field → logger names ───────────────────────────────────

_CATEGORY_MAP: dict[str, list[str]] = {
    "log_level_sql": [
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "aiosqlite",
    ],
    "log_level_http": [
        "httpx",
        "httpcore",
    ],
    "log_level_uvicorn": [
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
    ],
    "log_level_pipeline": [
        # PipelineLogger component names
        "DiscoveryOrchestrator",
        "IngestionCoordinator",
        "IngestionWorker",
        "app.application.services",
    ],
    "log_level_openrouter": [
        "app.infrastructure.openrouter",
        "app.infrastructure.tavily",
    ],
}


def setup_logging() -> None:
    """Apply root and per-category log levels from settings."""
    settings = get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))

    # uvicorn installs its own handlers; scripts and the scheduler-only
    # process do not.
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)

    for settings_field, logger_names in _CATEGORY_MAP.items():
        level = _parse_level(getattr(settings, settings_field, "INFO"))
        for name in logger_names:
            logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).debug(
        "Logging configured — root=%s sql=%s http=%s pipeline=%s providers=%s",
        settings.log_level,
        settings.log_level_sql,
        settings.log_level_http,
        settings.log_level_pipeline,
        settings.log_level_openrouter,
    )


def _parse_level(raw: str) -> int:
    """Level name → logging constant; unknown names fall back to INFO."""
    numeric = getattr(logging, raw.upper(), None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO
