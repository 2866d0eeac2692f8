"""Structured logging helpers for billing tasks and services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LogContext:
    """Normalized context fields expected in structured logs."""

    restaurant_id: int | None = None
    invoice_id: int | None = None
    task_name: str | None = None
    run_id: str | None = None
    trace_id: str | None = None


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Build a normalized structured log payload."""
    payload: dict[str, Any] = {
        "logged_at": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "restaurant_id": context.restaurant_id,
        "invoice_id": context.invoice_id,
        "task_name": context.task_name,
        "run_id": context.run_id,
        "trace_id": context.trace_id,
    }
    payload.update(fields)
    return payload
