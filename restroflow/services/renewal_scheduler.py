"""Daily renewal reminder and expiration passes.

Each restaurant is handled in its own session so one bad row can neither
roll back nor stop the rest of the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from restroflow.billing.events import EventPublisher, LoggingEventPublisher
from restroflow.billing.pricing import PricingConfig
from restroflow.core.config import Config, get_config
from restroflow.core.enums import InvoiceType
from restroflow.database import db as db_module
from restroflow.database.models import Restaurant
from restroflow.services.invoice_factory import InvoiceFactory
from restroflow.services.invoice_service import InvoiceService
from restroflow.services.notification_service import EmailNotificationService, Notifier, notify_safely
from restroflow.utils.dates import day_bounds, utcnow_naive
from restroflow.utils.ids import new_run_id

logger = logging.getLogger(__name__)

REMINDER_PASS = "renewal_reminders"
EXPIRATION_PASS = "expiration_notices"


@dataclass
class BatchFailure:
    restaurant_id: int
    error: str


@dataclass
class BatchResult:
    pass_name: str
    run_id: str
    candidates: int = 0
    created: int = 0
    resent: int = 0
    skipped: int = 0
    notified: int = 0
    failures: list[BatchFailure] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class RenewalScheduler:
    """Finds subscriptions near their end date and issues renewal invoices."""

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        notifier: Notifier | None = None,
        publisher: EventPublisher | None = None,
        settings: Config | None = None,
        pricing: PricingConfig | None = None,
    ) -> None:
        self.settings = settings or get_config()
        self.session_factory = session_factory or db_module.get_session_factory()
        self.notifier = notifier or EmailNotificationService(settings=self.settings)
        self.publisher = publisher or LoggingEventPublisher()
        self.pricing = pricing or PricingConfig.from_settings(self.settings)

    def run_reminder_pass(self, now: datetime | None = None) -> BatchResult:
        """Remind subscriptions ending in the next few days."""
        now = now or utcnow_naive()
        window_end = now + timedelta(days=self.settings.RENEWAL_LOOKAHEAD_DAYS)
        return self._run(REMINDER_PASS, now, now, window_end)

    def run_expiration_pass(self, now: datetime | None = None) -> BatchResult:
        """Notify subscriptions ending on ``now``'s calendar day."""
        now = now or utcnow_naive()
        start, end = day_bounds(now)
        return self._run(EXPIRATION_PASS, now, start, end)

    def _candidate_ids(self, start: datetime, end: datetime) -> list[int]:
        session = self.session_factory()
        try:
            rows = (
                session.query(Restaurant.id)
                .filter(Restaurant.subscription_is_active.is_(True))
                .filter(Restaurant.subscription_end_date >= start)
                .filter(Restaurant.subscription_end_date <= end)
                .order_by(Restaurant.id.asc())
                .all()
            )
            return [row[0] for row in rows]
        finally:
            session.close()

    def _run(self, pass_name: str, now: datetime, start: datetime, end: datetime) -> BatchResult:
        result = BatchResult(pass_name=pass_name, run_id=new_run_id())
        restaurant_ids = self._candidate_ids(start, end)
        result.candidates = len(restaurant_ids)
        logger.info(
            "renewal.pass.start",
            extra={
                "event": "renewal.pass.start",
                "pass_name": pass_name,
                "run_id": result.run_id,
                "candidates": result.candidates,
            },
        )

        for restaurant_id in restaurant_ids:
            try:
                self._process_restaurant(restaurant_id, now, result)
            except Exception as exc:
                result.failures.append(BatchFailure(restaurant_id=restaurant_id, error=str(exc)))
                logger.exception(
                    "renewal.restaurant.failed",
                    extra={
                        "event": "renewal.restaurant.failed",
                        "pass_name": pass_name,
                        "run_id": result.run_id,
                        "restaurant_id": restaurant_id,
                    },
                )

        logger.info(
            "renewal.pass.finish",
            extra={
                "event": "renewal.pass.finish",
                "pass_name": pass_name,
                "run_id": result.run_id,
                "candidates": result.candidates,
                "invoices_created": result.created,
                "invoices_resent": result.resent,
                "skipped": result.skipped,
                "failure_count": len(result.failures),
            },
        )
        return result

    def _process_restaurant(self, restaurant_id: int, now: datetime, result: BatchResult) -> None:
        session = self.session_factory()
        try:
            restaurant = session.get(Restaurant, restaurant_id)
            if restaurant is None:
                result.skipped += 1
                return

            total_tables = restaurant.total_tables
            if total_tables == 0:
                result.skipped += 1
                logger.info(
                    "renewal.restaurant.skipped",
                    extra={"event": "renewal.restaurant.skipped", "restaurant_id": restaurant_id, "reason": "no_tables"},
                )
                return

            existing = InvoiceService(db=session, settings=self.settings).find_pending(
                restaurant_id, InvoiceType.RENEWAL
            )
            if existing is not None:
                invoice = existing
                result.resent += 1
            else:
                factory = InvoiceFactory(
                    db=session,
                    settings=self.settings,
                    pricing=self.pricing,
                    publisher=self.publisher,
                )
                invoice = factory.create_renewal_invoice(restaurant, total_tables, months=1, now=now)
                result.created += 1

            sent = notify_safely(
                self.notifier.send_renewal_reminder,
                email=restaurant.email,
                restaurant_name=restaurant.restaurant_name,
                end_date=restaurant.subscription_end_date,
                payment_link=invoice.payment_link,
                amount=invoice.amount,
                description=invoice.description,
                due_date=invoice.due_date,
            )
            if sent:
                result.notified += 1
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
