from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship

from restroflow.core.enums import InvoiceStatus, RestaurantStatus
from restroflow.utils.dates import utcnow_naive

from .db import Base


@dataclass(frozen=True)
class Subscription:
    """Read-only view of the subscription columns a restaurant owns."""

    price_per_month: Decimal | None
    start_date: datetime | None
    end_date: datetime | None
    is_active: bool


class Restaurant(Base):
    __tablename__ = "restaurants"
    __table_args__ = (
        Index("idx_restaurants_status", "status"),
        Index("idx_restaurants_subscription_window", "subscription_is_active", "subscription_end_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    restaurant_name = Column(String(200), nullable=False)
    owner_name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False, unique=True)
    phone = Column(String(40))
    status = Column(String(20), nullable=False, default=RestaurantStatus.PENDING.value)
    approved_at = Column(DateTime)
    price_per_month = Column(Numeric(12, 2))
    subscription_start_date = Column(DateTime)
    subscription_end_date = Column(DateTime)
    subscription_is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow_naive, nullable=False)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    locations = relationship(
        "Location",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        order_by="Location.id",
    )
    invoices = relationship("Invoice", back_populates="restaurant")

    @property
    def total_tables(self) -> int:
        return sum(int(location.total_tables or 0) for location in self.locations)

    @property
    def subscription(self) -> Subscription:
        return Subscription(
            price_per_month=self.price_per_month,
            start_date=self.subscription_start_date,
            end_date=self.subscription_end_date,
            is_active=bool(self.subscription_is_active),
        )


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        CheckConstraint("total_tables >= 0", name="ck_locations_total_tables_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    location_name = Column(String(200), nullable=False)
    city = Column(String(120))
    total_tables = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow_naive, nullable=False)

    restaurant = relationship("Restaurant", back_populates="locations")


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        Index("idx_invoices_restaurant_status", "restaurant_id", "status"),
        Index("idx_invoices_status", "status"),
        CheckConstraint("amount >= 1", name="ck_invoices_amount_minimum"),
        UniqueConstraint("razorpay_payment_id", name="uq_invoices_razorpay_payment_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="RESTRICT"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    tables_added = Column(Integer, nullable=False, default=0)
    months_added = Column(Integer, nullable=False, default=0)
    prorated_days = Column(Integer, nullable=False, default=0)
    description = Column(Text)
    status = Column(String(20), nullable=False, default=InvoiceStatus.PENDING.value)
    payment_link_token = Column(String(128), nullable=False, unique=True, index=True)
    payment_link = Column(String(512), nullable=False, unique=True)
    razorpay_order_id = Column(String(64))
    razorpay_payment_id = Column(String(64))
    due_date = Column(DateTime, nullable=False)
    paid_at = Column(DateTime)
    failed_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    failure_reason = Column(Text)
    invoice_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow_naive, nullable=False)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)

    restaurant = relationship("Restaurant", back_populates="invoices")


class NotificationLog(Base):
    __tablename__ = "notification_logs"
    __table_args__ = (
        Index("idx_notification_logs_recipient", "recipient_email"),
        Index("idx_notification_logs_status", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    recipient_email = Column(String(320), nullable=False)
    subject = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)
    notification_type = Column(String(40), nullable=False, default="payment_link")
    status = Column(String(20), nullable=False)
    error_message = Column(Text)
    created_at = Column(DateTime, default=utcnow_naive, nullable=False)


@event.listens_for(Restaurant, "before_insert")
@event.listens_for(Restaurant, "before_update")
def _deactivate_lapsed_subscription(mapper, connection, target: Restaurant) -> None:
    """Subscriptions lapse lazily: any save after the end date turns them off."""
    end_date = target.subscription_end_date
    if end_date is not None and end_date < utcnow_naive():
        target.subscription_is_active = False
