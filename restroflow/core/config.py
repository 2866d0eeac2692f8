"""Configuration module for the RestroFlow billing service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from restroflow.core.exceptions import ConfigurationError

load_dotenv()

SUPPORTED_CURRENCIES = {"INR"}


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ConfigurationError(f"{name} must be a decimal number.") from exc


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    DB_CONNECTIVITY_REQUIRED: bool
    API_HOST: str
    API_PORT: int
    API_PREFIX: str
    ADMIN_API_TOKEN: str
    FRONTEND_URL: str
    CURRENCY: str
    PRICE_PER_TABLE: Decimal
    MIN_TABLES: int
    MAX_TABLES: int
    ANNUAL_DISCOUNT: Decimal
    BASIC_MAX_TABLES: int
    PRO_MAX_TABLES: int
    INVOICE_DUE_DAYS: int
    RENEWAL_LOOKAHEAD_DAYS: int
    RAZORPAY_KEY_ID: str | None
    RAZORPAY_KEY_SECRET: str
    RAZORPAY_API_BASE: str
    GATEWAY_TIMEOUT_SECONDS: int
    GATEWAY_MAX_RETRIES: int
    SMTP_SERVER: str | None
    SMTP_PORT: int
    SMTP_USERNAME: str | None
    SMTP_PASSWORD: str | None
    SMTP_FROM_EMAIL: str
    NOTIFICATIONS_SANDBOX: bool
    CELERY_BROKER_URL: str
    CELERY_RESULT_BACKEND: str
    REMINDER_CRON_HOUR: int
    EXPIRATION_CRON_HOUR: int
    LOG_LEVEL: str
    LOG_FILE: str

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=(resolved_env != "production"))
    redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    config = Config(
        APP_NAME="RestroFlow Billing",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./restroflow.db"),
        DB_CONNECTIVITY_REQUIRED=_as_bool(
            os.getenv("DB_CONNECTIVITY_REQUIRED"), default=(resolved_env == "production")
        ),
        API_HOST=os.getenv("API_HOST", "0.0.0.0"),
        API_PORT=int(os.getenv("API_PORT", "8000")),
        API_PREFIX=os.getenv("API_PREFIX", "/api/v1"),
        ADMIN_API_TOKEN=os.getenv("ADMIN_API_TOKEN", "change_me_admin_token"),
        FRONTEND_URL=os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/"),
        CURRENCY=os.getenv("CURRENCY", "INR").upper(),
        PRICE_PER_TABLE=_as_decimal("PRICE_PER_TABLE", "50"),
        MIN_TABLES=int(os.getenv("MIN_TABLES", "1")),
        MAX_TABLES=int(os.getenv("MAX_TABLES", "1000")),
        ANNUAL_DISCOUNT=_as_decimal("ANNUAL_DISCOUNT", "0.9"),
        BASIC_MAX_TABLES=int(os.getenv("BASIC_MAX_TABLES", "10")),
        PRO_MAX_TABLES=int(os.getenv("PRO_MAX_TABLES", "50")),
        INVOICE_DUE_DAYS=int(os.getenv("INVOICE_DUE_DAYS", "7")),
        RENEWAL_LOOKAHEAD_DAYS=int(os.getenv("RENEWAL_LOOKAHEAD_DAYS", "5")),
        RAZORPAY_KEY_ID=os.getenv("RAZORPAY_KEY_ID"),
        RAZORPAY_KEY_SECRET=os.getenv("RAZORPAY_KEY_SECRET", "change_me_razorpay_secret"),
        RAZORPAY_API_BASE=os.getenv("RAZORPAY_API_BASE", "https://api.razorpay.com/v1").rstrip("/"),
        GATEWAY_TIMEOUT_SECONDS=int(os.getenv("GATEWAY_TIMEOUT_SECONDS", "15")),
        GATEWAY_MAX_RETRIES=int(os.getenv("GATEWAY_MAX_RETRIES", "2")),
        SMTP_SERVER=os.getenv("SMTP_SERVER"),
        SMTP_PORT=int(os.getenv("SMTP_PORT", "587")),
        SMTP_USERNAME=os.getenv("SMTP_USERNAME"),
        SMTP_PASSWORD=os.getenv("SMTP_PASSWORD"),
        SMTP_FROM_EMAIL=os.getenv("SMTP_FROM_EMAIL", os.getenv("SMTP_USERNAME") or "billing@restroflow.app"),
        NOTIFICATIONS_SANDBOX=_as_bool(os.getenv("NOTIFICATIONS_SANDBOX"), default=True),
        CELERY_BROKER_URL=os.getenv("CELERY_BROKER_URL", redis_url),
        CELERY_RESULT_BACKEND=os.getenv("CELERY_RESULT_BACKEND", redis_url),
        REMINDER_CRON_HOUR=int(os.getenv("REMINDER_CRON_HOUR", "9")),
        EXPIRATION_CRON_HOUR=int(os.getenv("EXPIRATION_CRON_HOUR", "0")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2"}:
        raise ConfigurationError(
            "DATABASE_URL must use sqlite:// or postgresql:// style URL."
        )
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def _validate_pricing(config: Config) -> None:
    if config.PRICE_PER_TABLE <= 0:
        raise ConfigurationError("PRICE_PER_TABLE must be > 0.")
    if config.MIN_TABLES < 1:
        raise ConfigurationError("MIN_TABLES must be >= 1.")
    if config.MAX_TABLES < config.MIN_TABLES:
        raise ConfigurationError("MAX_TABLES must be >= MIN_TABLES.")
    if not (0 < config.ANNUAL_DISCOUNT <= 1):
        raise ConfigurationError("ANNUAL_DISCOUNT must be within (0, 1].")
    if not (config.MIN_TABLES <= config.BASIC_MAX_TABLES < config.PRO_MAX_TABLES):
        raise ConfigurationError("Plan thresholds must satisfy MIN_TABLES <= BASIC_MAX_TABLES < PRO_MAX_TABLES.")


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)
    _validate_pricing(config)

    if config.CURRENCY not in SUPPORTED_CURRENCIES:
        raise ConfigurationError(f"CURRENCY must be one of {sorted(SUPPORTED_CURRENCIES)}.")
    if config.INVOICE_DUE_DAYS < 1:
        raise ConfigurationError("INVOICE_DUE_DAYS must be >= 1.")
    if config.RENEWAL_LOOKAHEAD_DAYS < 1:
        raise ConfigurationError("RENEWAL_LOOKAHEAD_DAYS must be >= 1.")
    if config.GATEWAY_TIMEOUT_SECONDS < 1:
        raise ConfigurationError("GATEWAY_TIMEOUT_SECONDS must be >= 1.")
    if config.GATEWAY_MAX_RETRIES < 0:
        raise ConfigurationError("GATEWAY_MAX_RETRIES must be >= 0.")
    for name in ("REMINDER_CRON_HOUR", "EXPIRATION_CRON_HOUR"):
        if not 0 <= getattr(config, name) <= 23:
            raise ConfigurationError(f"{name} must be within 0..23.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production:
        if "change_me" in config.DATABASE_URL.lower():
            raise ConfigurationError("Production DATABASE_URL uses placeholder credentials.")
        if config.RAZORPAY_KEY_SECRET.startswith("change_me"):
            raise ConfigurationError("Production RAZORPAY_KEY_SECRET is not configured.")
        if config.ADMIN_API_TOKEN.startswith("change_me"):
            raise ConfigurationError("Production ADMIN_API_TOKEN is not configured.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
