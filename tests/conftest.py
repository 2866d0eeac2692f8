from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from restroflow.billing.events import InMemoryEventPublisher
from restroflow.core.config import get_config
from restroflow.core.enums import RestaurantStatus
from restroflow.database.models import Base, Location, Restaurant
from restroflow.utils.dates import utcnow_naive

TEST_SECRET = "test_razorpay_secret"


class RecordingNotifier:
    """Notifier double that remembers every call."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.payment_links: list[dict] = []
        self.reminders: list[dict] = []
        self._fail_for = fail_for or set()

    def send_payment_link(self, email, restaurant_name, payment_link, amount, description, due_date) -> bool:
        if email in self._fail_for:
            raise RuntimeError("smtp down")
        self.payment_links.append(
            {
                "email": email,
                "restaurant_name": restaurant_name,
                "payment_link": payment_link,
                "amount": amount,
                "description": description,
                "due_date": due_date,
            }
        )
        return True

    def send_renewal_reminder(
        self, email, restaurant_name, end_date, payment_link, amount, description, due_date
    ) -> bool:
        if email in self._fail_for:
            raise RuntimeError("smtp down")
        self.reminders.append(
            {
                "email": email,
                "restaurant_name": restaurant_name,
                "end_date": end_date,
                "payment_link": payment_link,
                "amount": amount,
                "description": description,
                "due_date": due_date,
            }
        )
        return True


@pytest.fixture
def settings():
    return replace(
        get_config(),
        RAZORPAY_KEY_ID="rzp_test_key",
        RAZORPAY_KEY_SECRET=TEST_SECRET,
        FRONTEND_URL="https://app.restroflow.test",
        NOTIFICATIONS_SANDBOX=True,
        GATEWAY_MAX_RETRIES=1,
    )


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'billing_test.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def session_scope(session_factory):
    @contextmanager
    def _scope():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return _scope


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_restaurant(session):
    """Create an approved restaurant; ``tables`` is one entry per location."""

    def _make(
        tables=(10,),
        ends_in_days: float | None = 20,
        is_active: bool = True,
        price_per_month: Decimal | None = None,
        email: str | None = None,
    ) -> Restaurant:
        now = utcnow_naive()
        restaurant = Restaurant(
            restaurant_name="Spice Route",
            owner_name="Asha Rao",
            email=email or f"owner-{uuid.uuid4().hex[:8]}@example.com",
            status=RestaurantStatus.APPROVED.value,
            approved_at=now - timedelta(days=10),
            price_per_month=price_per_month if price_per_month is not None else Decimal(sum(tables) * 50),
            subscription_start_date=now - timedelta(days=10),
            subscription_end_date=None if ends_in_days is None else now + timedelta(days=ends_in_days),
            subscription_is_active=is_active,
        )
        for index, count in enumerate(tables):
            restaurant.locations.append(
                Location(location_name=f"Branch {index + 1}", city="Pune", total_tables=count, is_active=True)
            )
        session.add(restaurant)
        session.commit()
        session.refresh(restaurant)
        return restaurant

    return _make


@pytest.fixture
def make_notifier():
    def _make(fail_for: set[str] | None = None) -> RecordingNotifier:
        return RecordingNotifier(fail_for=fail_for)

    return _make
