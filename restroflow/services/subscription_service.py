"""Restaurant-level subscription operations used by the admin API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from restroflow.billing.events import BillingEvents, EventPublisher, LoggingEventPublisher, safe_publish
from restroflow.billing.pricing import PricingCalculator, PricingConfig
from restroflow.billing.terms import derive_subscription_status
from restroflow.core.config import Config
from restroflow.core.enums import RestaurantStatus, SubscriptionStatus
from restroflow.core.exceptions import NotFoundError, RestaurantNotFoundError, ValidationError
from restroflow.database.models import Invoice, Location, Restaurant
from restroflow.services.base_service import BaseService
from restroflow.services.invoice_factory import InvoiceFactory
from restroflow.services.notification_service import EmailNotificationService, Notifier, notify_safely
from restroflow.utils.dates import add_months, utcnow_naive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriptionSummary:
    restaurant_id: int
    restaurant_name: str
    email: str
    plan: str
    price_per_month: Decimal | None
    price_per_table: Decimal
    total_tables: int
    locations: int
    status: SubscriptionStatus
    start_date: datetime | None
    end_date: datetime | None
    is_active: bool


@dataclass(frozen=True)
class InvoiceRequestResult:
    invoice: Invoice
    notified: bool


class SubscriptionService(BaseService):
    """Approval, summaries and admin-initiated billing requests."""

    def __init__(
        self,
        db: Session | None = None,
        settings: Config | None = None,
        pricing: PricingConfig | None = None,
        notifier: Notifier | None = None,
        publisher: EventPublisher | None = None,
        factory: InvoiceFactory | None = None,
    ) -> None:
        super().__init__(db=db, settings=settings)
        self.pricing = pricing or PricingConfig.from_settings(self.settings)
        self.calculator = PricingCalculator(self.pricing)
        self.notifier = notifier or EmailNotificationService(settings=self.settings)
        self.publisher = publisher or LoggingEventPublisher()
        self.factory = factory or InvoiceFactory(
            db=self.db,
            settings=self.settings,
            pricing=self.pricing,
            publisher=self.publisher,
        )

    def get_restaurant(self, restaurant_id: int) -> Restaurant:
        restaurant = self.db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()
        if restaurant is None:
            raise RestaurantNotFoundError("Restaurant not found.")
        return restaurant

    def approve_restaurant(self, restaurant_id: int, now: datetime | None = None) -> Restaurant:
        """Approve a restaurant and open its first one-month subscription."""
        now = now or utcnow_naive()
        restaurant = self.get_restaurant(restaurant_id)
        if restaurant.status == RestaurantStatus.APPROVED.value:
            raise ValidationError("Restaurant is already approved.", kind="already_approved")

        quote = self.calculator.quote(restaurant.total_tables)
        restaurant.status = RestaurantStatus.APPROVED.value
        restaurant.approved_at = now
        restaurant.price_per_month = quote.monthly_price if quote else None
        restaurant.subscription_start_date = now
        restaurant.subscription_end_date = add_months(now, 1)
        restaurant.subscription_is_active = True
        self.commit()

        logger.info(
            "restaurant.approved",
            extra={"event": "restaurant.approved", "restaurant_id": restaurant.id, "total_tables": restaurant.total_tables},
        )
        safe_publish(
            self.publisher,
            BillingEvents.SUBSCRIPTION_ACTIVATED,
            {
                "restaurant_id": restaurant.id,
                "price_per_month": str(restaurant.price_per_month) if restaurant.price_per_month is not None else None,
                "subscription_end_date": restaurant.subscription_end_date.isoformat(),
            },
        )
        return restaurant

    def get_subscription_summary(self, restaurant_id: int, now: datetime | None = None) -> SubscriptionSummary:
        now = now or utcnow_naive()
        restaurant = self.get_restaurant(restaurant_id)
        if restaurant.price_per_month is None and restaurant.subscription_end_date is None:
            raise NotFoundError("Subscription not found.", kind="subscription_not_found")

        total_tables = restaurant.total_tables
        subscription = restaurant.subscription
        return SubscriptionSummary(
            restaurant_id=restaurant.id,
            restaurant_name=restaurant.restaurant_name,
            email=restaurant.email,
            plan=self.calculator.plan_for(total_tables).value,
            price_per_month=subscription.price_per_month,
            price_per_table=self.pricing.price_per_table,
            total_tables=total_tables,
            locations=len(restaurant.locations),
            status=derive_subscription_status(subscription.is_active, subscription.end_date, now),
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            is_active=subscription.is_active,
        )

    def _require_active(self, restaurant: Restaurant, now: datetime) -> datetime:
        end_date = restaurant.subscription_end_date
        if not restaurant.subscription_is_active or end_date is None or end_date < now:
            raise ValidationError("Restaurant has no active subscription.", kind="no_active_subscription")
        return end_date

    def request_extra_tables(
        self,
        restaurant_id: int,
        location_deltas: dict[int, int],
        now: datetime | None = None,
    ) -> InvoiceRequestResult:
        """Add tables to locations and bill the rest of the current period.

        The table changes and the invoice are committed together; the price
        moves only when the invoice is paid.
        """
        now = now or utcnow_naive()
        if not location_deltas:
            raise ValidationError("At least one location change is required.", kind="missing_location_deltas")

        restaurant = self.get_restaurant(restaurant_id)
        period_end = self._require_active(restaurant, now)

        locations: dict[int, Location] = {location.id: location for location in restaurant.locations}
        extra_tables = 0
        for location_id, delta in location_deltas.items():
            location = locations.get(int(location_id))
            if location is None:
                raise ValidationError(f"Unknown location: {location_id}", kind="unknown_location")
            if int(delta) < 1:
                raise ValidationError("Table additions must be positive.", kind="invalid_extra_tables")
            extra_tables += int(delta)

        try:
            for location_id, delta in location_deltas.items():
                location = locations[int(location_id)]
                location.total_tables = int(location.total_tables or 0) + int(delta)
            invoice = self.factory.create_extra_table_invoice(
                restaurant,
                extra_tables=extra_tables,
                period_end=period_end,
                basis_table_count=restaurant.total_tables,
                location_deltas={str(key): int(value) for key, value in location_deltas.items()},
                now=now,
            )
        except Exception:
            self.rollback()
            raise

        notified = self._send_payment_link(restaurant, invoice)
        return InvoiceRequestResult(invoice=invoice, notified=notified)

    def request_extension(self, restaurant_id: int, months: int, now: datetime | None = None) -> InvoiceRequestResult:
        now = now or utcnow_naive()
        restaurant = self.get_restaurant(restaurant_id)
        invoice = self.factory.create_extension_invoice(restaurant, restaurant.total_tables, months, now=now)
        notified = self._send_payment_link(restaurant, invoice)
        return InvoiceRequestResult(invoice=invoice, notified=notified)

    def cancel_subscription(self, restaurant_id: int, now: datetime | None = None) -> Restaurant:
        restaurant = self.get_restaurant(restaurant_id)
        restaurant.subscription_is_active = False
        restaurant.updated_at = now or utcnow_naive()
        self.commit()

        logger.info("subscription.cancelled", extra={"event": "subscription.cancelled", "restaurant_id": restaurant.id})
        safe_publish(self.publisher, BillingEvents.SUBSCRIPTION_CANCELLED, {"restaurant_id": restaurant.id})
        return restaurant

    def _send_payment_link(self, restaurant: Restaurant, invoice: Invoice) -> bool:
        return notify_safely(
            self.notifier.send_payment_link,
            email=restaurant.email,
            restaurant_name=restaurant.restaurant_name,
            payment_link=invoice.payment_link,
            amount=invoice.amount,
            description=invoice.description,
            due_date=invoice.due_date,
        )
