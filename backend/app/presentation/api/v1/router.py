"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from app.presentation.api.v1.endpoints.health import router as health_router
from app.presentation.api.v1.discoveries_controller import router as discoveries_router
from app.presentation.api.v1.sources_controller import router as sources_router
from app.presentation.api.v1.usage_controller import router as usage_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(discoveries_router)
router.include_router(sources_router)
router.include_router(usage_router)
