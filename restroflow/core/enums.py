"""Enums for the RestroFlow billing domain.

Values are upper case to match what the payment UI and stored rows use.
"""

from enum import Enum


class RestaurantStatus(Enum):
    """Onboarding status of a restaurant."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class InvoiceType(Enum):
    """Kinds of invoices the billing engine issues."""

    EXTRA_TABLE = "EXTRA_TABLE"
    RENEWAL = "RENEWAL"
    EXTENSION = "EXTENSION"
    MONTHLY = "MONTHLY"


class InvoiceStatus(Enum):
    """
    Status of invoices.

    PENDING is the only non-terminal status.
    """

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class PlanName(Enum):
    """Plan tiers derived from total table count."""

    BASIC = "BASIC"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(Enum):
    """Derived, display-only subscription status."""

    ACTIVE = "active"
    EXPIRING = "expiring"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class SettlementOutcome(Enum):
    """Result of attempting a PENDING -> PAID transition."""

    PAID = "paid"
    ALREADY_PROCESSED = "already_processed"


class NotificationStatus(Enum):
    SENT = "sent"
    SANDBOX_SENT = "sandbox_sent"
    FAILED = "failed"


# Convenience accessors for common status values
INVOICE_PENDING = InvoiceStatus.PENDING.value
INVOICE_PAID = InvoiceStatus.PAID.value
INVOICE_FAILED = InvoiceStatus.FAILED.value
INVOICE_CANCELLED = InvoiceStatus.CANCELLED.value

TERMINAL_INVOICE_STATUSES = frozenset({INVOICE_PAID, INVOICE_FAILED, INVOICE_CANCELLED})
