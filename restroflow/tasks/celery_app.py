"""Celery application bootstrap and the billing beat schedule."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab

from restroflow.core.config import get_config

settings = get_config()

celery_app = Celery(
    "restroflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["restroflow.tasks.billing_tasks"],
)
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    beat_schedule={
        "billing-renewal-reminders": {
            "task": "billing.renewal_reminders",
            "schedule": crontab(hour=settings.REMINDER_CRON_HOUR, minute=0),
        },
        "billing-expiration-notices": {
            "task": "billing.expiration_notices",
            "schedule": crontab(hour=settings.EXPIRATION_CRON_HOUR, minute=0),
        },
    },
)

# Local/dev convenience: run tasks synchronously when requested.
if os.getenv("CELERY_TASK_ALWAYS_EAGER", "false").lower() in {"1", "true", "yes", "on"}:
    celery_app.conf.task_always_eager = True
