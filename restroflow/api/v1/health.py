"""Health endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter

from restroflow.core.config import get_config
from restroflow.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    cfg = get_config()
    return HealthResponse(service=cfg.APP_NAME, version=cfg.APP_VERSION)
