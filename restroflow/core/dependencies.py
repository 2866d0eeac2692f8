"""Dependency providers for API handlers and background workers."""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy.orm import Session

from restroflow.billing.events import EventPublisher, LoggingEventPublisher
from restroflow.core.config import Config, get_config
from restroflow.database.db import get_db
from restroflow.services.notification_service import EmailNotificationService, Notifier
from restroflow.services.payment_gateway import PaymentGateway, RazorpayGateway

_publisher = LoggingEventPublisher()


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_db_session() -> Generator[Session, None, None]:
    """Yield SQLAlchemy session for dependency injection."""
    yield from get_db()


def get_payment_gateway() -> PaymentGateway:
    return RazorpayGateway(settings=get_settings())


def get_notifier() -> Notifier:
    return EmailNotificationService(settings=get_settings())


def get_event_publisher() -> EventPublisher:
    return _publisher
