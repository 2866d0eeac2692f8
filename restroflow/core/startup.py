"""Startup validation and bootstrap helpers."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from restroflow.billing.pricing import PricingConfig, calculate_price
from restroflow.core.config import Config, get_config
from restroflow.core.exceptions import ConfigurationError
from restroflow.core.logging_config import configure_logging
from restroflow.database.db import get_active_database_url, verify_database_connection

logger = logging.getLogger(__name__)


def validate_billing_config(config: Config) -> None:
    """Checks the billing engine needs before it issues a single invoice."""
    pricing = PricingConfig.from_settings(config)
    smallest = calculate_price(pricing.min_tables, pricing)
    if smallest is None or smallest.monthly_price < 1:
        raise ConfigurationError(
            f"A {pricing.min_tables}-table subscription must cost at least 1 {config.CURRENCY} per month."
        )

    if config.RAZORPAY_KEY_ID and config.RAZORPAY_KEY_SECRET.startswith("change_me"):
        raise ConfigurationError("RAZORPAY_KEY_ID is set but RAZORPAY_KEY_SECRET is still the placeholder.")
    if not config.RAZORPAY_KEY_ID:
        logger.warning(
            "startup.gateway.key_id_missing",
            extra={"event": "startup.gateway.key_id_missing"},
        )

    # Payment links are built from this base.
    frontend = urlparse(config.FRONTEND_URL)
    if frontend.scheme not in {"http", "https"} or not frontend.netloc:
        raise ConfigurationError("FRONTEND_URL must be an absolute http(s) URL.")
    if config.is_production and frontend.scheme != "https":
        logger.warning(
            "startup.frontend.insecure_payment_links",
            extra={"event": "startup.frontend.insecure_payment_links"},
        )


def validate_startup_config() -> None:
    """Fail-fast config and connectivity checks."""
    config = get_config()
    validate_billing_config(config)

    database_ok = verify_database_connection()
    active_database_url = get_active_database_url()
    if not database_ok and config.DB_CONNECTIVITY_REQUIRED:
        raise RuntimeError("Database connectivity check failed.")
    if not database_ok:
        logger.warning(
            "startup.database.connectivity_optional_failed",
            extra={"event": "startup.database.connectivity_optional_failed"},
        )

    if config.is_production and active_database_url.startswith("sqlite"):
        logger.warning(
            "startup.production.sqlite_detected",
            extra={"event": "startup.production.sqlite_detected"},
        )

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "database_url_scheme": active_database_url.split("://", 1)[0],
            "db_connectivity_required": config.DB_CONNECTIVITY_REQUIRED,
            "currency": config.CURRENCY,
            "gateway_configured": bool(config.RAZORPAY_KEY_ID),
        },
    )


def bootstrap() -> None:
    """Initialize logging and validate runtime configuration."""
    configure_logging()
    validate_startup_config()
