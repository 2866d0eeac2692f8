"""Root API router for v1 endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from restroflow.api.v1 import health, invoices, subscriptions
from restroflow.core.config import get_config

api_router = APIRouter(prefix=get_config().API_PREFIX)
api_router.include_router(health.router)
api_router.include_router(invoices.router)
api_router.include_router(subscriptions.router)


def get_api_router() -> APIRouter:
    return api_router
