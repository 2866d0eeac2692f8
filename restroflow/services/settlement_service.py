"""Invoice settlement: the only code that moves invoices out of PENDING.

Every exit from PENDING is a compare-and-set UPDATE guarded on the current
status. The subscription effect of a payment is written in the same
transaction and only when that UPDATE matched a row, so a retried or
concurrent confirmation can never apply it twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restroflow.billing.events import BillingEvents, EventPublisher, LoggingEventPublisher, safe_publish
from restroflow.billing.metadata import ExtraTableMetadata, TermMetadata, parse_invoice_metadata
from restroflow.billing.payment_verifier import PaymentVerifier
from restroflow.billing.pricing import PricingConfig, calculate_price
from restroflow.billing.state_machine import INVOICE_LIFECYCLE
from restroflow.billing.terms import extension_end_date, renewal_end_date
from restroflow.core.config import Config
from restroflow.core.enums import InvoiceStatus, InvoiceType, SettlementOutcome
from restroflow.core.exceptions import (
    InvalidPaymentSignatureError,
    InvoiceAlreadyProcessedError,
    InvoiceNotFoundError,
    PaymentAlreadyUsedError,
    PaymentOrderMismatchError,
    ValidationError,
)
from restroflow.database.models import Invoice, Restaurant
from restroflow.services.base_service import BaseService
from restroflow.utils.dates import utcnow_naive
from restroflow.utils.validators import require_text

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    outcome: SettlementOutcome
    invoice: Invoice
    restaurant: Restaurant | None = None
    changes: dict[str, Any] = field(default_factory=dict)


class SubscriptionStateMachine(BaseService):
    """Drives invoice terminal transitions and their subscription effects."""

    def __init__(
        self,
        db: Session | None = None,
        settings: Config | None = None,
        pricing: PricingConfig | None = None,
        verifier: PaymentVerifier | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        super().__init__(db=db, settings=settings)
        self.pricing = pricing or PricingConfig.from_settings(self.settings)
        self.verifier = verifier or PaymentVerifier(self.settings.RAZORPAY_KEY_SECRET)
        self.publisher = publisher or LoggingEventPublisher()

    def _load_invoice(self, invoice_id: int) -> Invoice:
        invoice = (
            self.db.query(Invoice)
            .populate_existing()
            .filter(Invoice.id == invoice_id)
            .first()
        )
        if invoice is None:
            raise InvoiceNotFoundError("Invoice not found.")
        return invoice

    def _ensure_payment_unused(self, invoice_id: int, payment_id: str) -> None:
        """One gateway payment settles at most one invoice."""
        other = (
            self.db.query(Invoice.id)
            .filter(Invoice.razorpay_payment_id == payment_id)
            .filter(Invoice.id != invoice_id)
            .first()
        )
        if other is not None:
            logger.warning(
                "settlement.payment_reused",
                extra={"event": "settlement.payment_reused", "invoice_id": invoice_id, "settled_invoice_id": other[0]},
            )
            raise PaymentAlreadyUsedError("Payment has already settled another invoice.")

    def _compare_and_set(self, invoice_id: int, target: InvoiceStatus, values: dict[str, Any]) -> bool:
        """UPDATE ... WHERE status = 'PENDING'; True when this call won."""
        INVOICE_LIFECYCLE.assert_transition(InvoiceStatus.PENDING.value, target.value)
        result = self.db.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .where(Invoice.status == InvoiceStatus.PENDING.value)
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def verify_and_settle(
        self,
        token: str | None,
        order_id: str | None,
        payment_id: str | None,
        signature: str | None,
        now: datetime | None = None,
    ) -> SettlementResult:
        """Handle a payment callback for the invoice behind ``token``.

        Terminal invoices are rejected before the signature is looked at, so a
        replayed (even valid) callback never reaches the subscription.
        """
        token = require_text(token, "token")
        order_id = require_text(order_id, "razorpay_order_id")
        payment_id = require_text(payment_id, "razorpay_payment_id")
        signature = require_text(signature, "razorpay_signature")
        now = now or utcnow_naive()

        invoice = self.db.query(Invoice).filter(Invoice.payment_link_token == token).first()
        if invoice is None:
            raise InvoiceNotFoundError("Invoice not found.")
        if INVOICE_LIFECYCLE.is_terminal(invoice.status):
            raise InvoiceAlreadyProcessedError(f"Invoice already {invoice.status.lower()}.")
        if not invoice.razorpay_order_id:
            raise PaymentOrderMismatchError(
                "Checkout has not been started for this invoice.", kind="order_not_created"
            )
        if invoice.razorpay_order_id != order_id:
            raise PaymentOrderMismatchError("Payment does not belong to this invoice's order.")

        if not self.verifier.verify(order_id, payment_id, signature):
            self.mark_failed(invoice.id, reason="invalid payment signature", now=now)
            raise InvalidPaymentSignatureError("Invalid payment signature.")

        result = self.settle_paid(invoice.id, payment_id=payment_id, order_id=order_id, now=now)
        if result.outcome is SettlementOutcome.ALREADY_PROCESSED:
            raise InvoiceAlreadyProcessedError("Invoice already processed.")
        return result

    def settle_paid(
        self,
        invoice_id: int,
        payment_id: str,
        order_id: str | None = None,
        now: datetime | None = None,
    ) -> SettlementResult:
        """Move a verified invoice to PAID and apply its subscription effect once."""
        now = now or utcnow_naive()
        values: dict[str, Any] = {"razorpay_payment_id": payment_id, "paid_at": now, "updated_at": now}
        if order_id:
            values["razorpay_order_id"] = order_id
        self._ensure_payment_unused(invoice_id, payment_id)

        try:
            won = self._compare_and_set(invoice_id, InvoiceStatus.PAID, values)
            if not won:
                self.rollback()
                invoice = self._load_invoice(invoice_id)
                logger.info(
                    "settlement.already_processed",
                    extra={
                        "event": "settlement.already_processed",
                        "invoice_id": invoice_id,
                        "status": invoice.status,
                    },
                )
                return SettlementResult(outcome=SettlementOutcome.ALREADY_PROCESSED, invoice=invoice)

            invoice = self._load_invoice(invoice_id)
            restaurant = (
                self.db.query(Restaurant)
                .populate_existing()
                .with_for_update()
                .filter(Restaurant.id == invoice.restaurant_id)
                .one()
            )
            changes = self._apply_effect(invoice, restaurant, now)
            self.commit()
        except IntegrityError as exc:
            # A concurrent settlement stored the same payment id on another invoice first.
            self.rollback()
            logger.warning(
                "settlement.payment_reused",
                extra={"event": "settlement.payment_reused", "invoice_id": invoice_id, "payment_id": payment_id},
            )
            raise PaymentAlreadyUsedError("Payment has already settled another invoice.") from exc
        except Exception:
            self.rollback()
            logger.exception(
                "settlement.failed",
                extra={"event": "settlement.failed", "invoice_id": invoice_id},
            )
            raise

        self.db.refresh(invoice)
        logger.info(
            "settlement.paid",
            extra={
                "event": "settlement.paid",
                "invoice_id": invoice.id,
                "restaurant_id": restaurant.id,
                "invoice_type": invoice.type,
            },
        )
        safe_publish(
            self.publisher,
            BillingEvents.INVOICE_PAID,
            {"invoice_id": invoice.id, "restaurant_id": restaurant.id, "type": invoice.type, "amount": str(invoice.amount)},
        )
        safe_publish(
            self.publisher,
            BillingEvents.SUBSCRIPTION_UPDATED,
            {"restaurant_id": restaurant.id, "invoice_id": invoice.id, **changes},
        )
        return SettlementResult(
            outcome=SettlementOutcome.PAID,
            invoice=invoice,
            restaurant=restaurant,
            changes=changes,
        )

    def _apply_effect(self, invoice: Invoice, restaurant: Restaurant, now: datetime) -> dict[str, Any]:
        metadata = parse_invoice_metadata(invoice.type, invoice.invoice_metadata)
        invoice_type = InvoiceType(invoice.type)

        if invoice_type is InvoiceType.EXTRA_TABLE and isinstance(metadata, ExtraTableMetadata):
            quote = calculate_price(metadata.basis_table_count, self.pricing)
            if quote is None:
                raise ValidationError("Extra-table invoice has no billable basis.", kind="invalid_invoice_metadata")
            restaurant.price_per_month = quote.monthly_price
            return {"price_per_month": str(quote.monthly_price), "basis_table_count": metadata.basis_table_count}

        if not isinstance(metadata, TermMetadata):
            raise ValidationError(
                f"{invoice_type.value} invoice carries {type(metadata).__name__}.", kind="invalid_invoice_metadata"
            )
        if invoice_type is InvoiceType.EXTENSION:
            new_end = extension_end_date(restaurant.subscription_end_date, metadata.months_added, now)
        elif invoice_type in (InvoiceType.RENEWAL, InvoiceType.MONTHLY):
            new_end = renewal_end_date(restaurant.subscription_end_date, metadata.months_added, now)
            if restaurant.subscription_start_date is None:
                restaurant.subscription_start_date = now
        else:
            raise ValidationError(
                f"{invoice_type.value} invoice has no term settlement.", kind="invalid_invoice_metadata"
            )

        restaurant.subscription_end_date = new_end
        restaurant.subscription_is_active = True
        return {"subscription_end_date": new_end.isoformat(), "months_added": metadata.months_added}

    def mark_failed(self, invoice_id: int, reason: str, now: datetime | None = None) -> bool:
        """PENDING -> FAILED. Returns False when the invoice had already moved on."""
        now = now or utcnow_naive()
        try:
            won = self._compare_and_set(
                invoice_id,
                InvoiceStatus.FAILED,
                {"failed_at": now, "failure_reason": reason, "updated_at": now},
            )
            self.commit()
        except Exception:
            self.rollback()
            raise

        if won:
            logger.warning(
                "settlement.failed_signature",
                extra={"event": "settlement.failed_signature", "invoice_id": invoice_id, "reason": reason},
            )
            safe_publish(self.publisher, BillingEvents.INVOICE_FAILED, {"invoice_id": invoice_id, "reason": reason})
        return won

    def cancel_invoice(self, invoice_id: int, reason: str | None = None, now: datetime | None = None) -> Invoice:
        """Administrative PENDING -> CANCELLED."""
        now = now or utcnow_naive()
        try:
            won = self._compare_and_set(
                invoice_id,
                InvoiceStatus.CANCELLED,
                {"cancelled_at": now, "failure_reason": reason, "updated_at": now},
            )
            self.commit()
        except Exception:
            self.rollback()
            raise

        invoice = self._load_invoice(invoice_id)
        if not won:
            raise InvoiceAlreadyProcessedError(f"Invoice already {invoice.status.lower()}.")

        logger.info("invoice.cancelled", extra={"event": "invoice.cancelled", "invoice_id": invoice_id})
        safe_publish(
            self.publisher,
            BillingEvents.INVOICE_CANCELLED,
            {"invoice_id": invoice_id, "restaurant_id": invoice.restaurant_id, "reason": reason},
        )
        return invoice
