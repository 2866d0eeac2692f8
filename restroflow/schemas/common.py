"""Common schema module."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str
    version: str


class ErrorEnvelope(BaseModel):
    status: str = "error"
    error_code: str
    detail: str
