"""Health check endpoint — no database access, always available."""

from fastapi import APIRouter

from app.config import get_settings
from app.infrastructure.pipeline_factory import get_tavily_circuit_breaker

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict:
    """Returns the application health status and the discovery API breaker state."""
    settings = get_settings()
    breaker = get_tavily_circuit_breaker().get_metrics()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "catalog_backend": settings.catalog_backend,
        "scheduler_enabled": settings.scheduler_enabled,
        "circuit_breakers": {
            breaker.name: {
                "state": breaker.state.value,
                "consecutive_failures": breaker.consecutive_failures,
                "total_rejections": breaker.total_rejections,
            },
        },
    }
