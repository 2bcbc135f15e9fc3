"""Liveness endpoint."""

from fastapi import APIRouter, Depends

from pack_manager.core.config import Settings, get_settings
from pack_manager.schemas.common import HealthResponse

health_router = APIRouter(tags=["health"])


@health_router.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(status="ok", environment=settings.environment)
