"""Billing event names and publishers.

Services publish after their transaction commits; publishers must not raise
into the billing flow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class BillingEvents:
    """Billing event type constants."""

    INVOICE_CREATED = "invoice.created"
    INVOICE_PAID = "invoice.paid"
    INVOICE_FAILED = "invoice.failed"
    INVOICE_CANCELLED = "invoice.cancelled"
    INVOICE_ORDER_CREATED = "invoice.order_created"

    SUBSCRIPTION_ACTIVATED = "subscription.activated"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELLED = "subscription.cancelled"


class EventPublisher(Protocol):
    def publish(self, event_name: str, payload: dict[str, Any]) -> None: ...


class LoggingEventPublisher:
    """Default publisher: events become structured log lines."""

    def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        logger.info(event_name, extra={"event": event_name, "payload": payload})


@dataclass
class PublishedEvent:
    name: str
    payload: dict[str, Any]
    published_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class InMemoryEventPublisher:
    """Collects events; used by tests and by in-process listeners."""

    def __init__(self) -> None:
        self.events: list[PublishedEvent] = []

    def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        self.events.append(PublishedEvent(name=event_name, payload=dict(payload)))

    def names(self) -> list[str]:
        return [item.name for item in self.events]


def safe_publish(publisher: EventPublisher, event_name: str, payload: dict[str, Any]) -> None:
    """Publish without letting a transport failure undo committed billing work."""
    try:
        publisher.publish(event_name, payload)
    except Exception:
        logger.exception(
            "billing.event.publish_failed",
            extra={"event": "billing.event.publish_failed", "event_name": event_name},
        )
