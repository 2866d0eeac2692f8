from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from restroflow.services.renewal_scheduler import EXPIRATION_PASS, REMINDER_PASS, RenewalScheduler
from restroflow.tasks.celery_app import celery_app
from restroflow.tasks.hooks import after_task, before_task
from restroflow.utils.ids import new_run_id

logger = logging.getLogger(__name__)

PASS_TASK_KEYS = {
    REMINDER_PASS: "billing.renewal_reminders",
    EXPIRATION_PASS: "billing.expiration_notices",
}


def run_scheduler_pass(
    pass_name: str,
    now: datetime | None = None,
    scheduler: RenewalScheduler | None = None,
) -> dict[str, Any]:
    """Run one scheduler pass with task start/finish logging."""
    task_key = PASS_TASK_KEYS.get(pass_name)
    if task_key is None:
        raise KeyError(f"unknown scheduler pass {pass_name}")

    context = {"run_id": new_run_id(), "trace_id": uuid.uuid4().hex}
    logger.info("task.start", extra=before_task(task_key=task_key, context=context))

    scheduler = scheduler or RenewalScheduler()
    try:
        if pass_name == REMINDER_PASS:
            result = scheduler.run_reminder_pass(now)
        else:
            result = scheduler.run_expiration_pass(now)
    except Exception:
        logger.exception("task.failed", extra=after_task(task_key=task_key, context=context, status="failed"))
        raise

    status = "partial" if result.failures else "succeeded"
    logger.info(
        "task.finish",
        extra=after_task(
            task_key=task_key,
            context=context,
            status=status,
            candidates=result.candidates,
            failure_count=len(result.failures),
        ),
    )
    return result.as_dict()


@celery_app.task(name="billing.renewal_reminders")
def renewal_reminders_task() -> dict[str, Any]:
    return run_scheduler_pass(REMINDER_PASS)


@celery_app.task(name="billing.expiration_notices")
def expiration_notices_task() -> dict[str, Any]:
    return run_scheduler_pass(EXPIRATION_PASS)
