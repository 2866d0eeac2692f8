"""Invoice lookups, the public payment view and lazy gateway checkout."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from restroflow.billing.events import BillingEvents, EventPublisher, LoggingEventPublisher, safe_publish
from restroflow.billing.state_machine import INVOICE_LIFECYCLE
from restroflow.core.config import Config
from restroflow.core.enums import InvoiceStatus, InvoiceType
from restroflow.core.exceptions import InvoiceAlreadyProcessedError, InvoiceNotFoundError, ValidationError
from restroflow.database.models import Invoice
from restroflow.services.base_service import BaseService
from restroflow.services.payment_gateway import PaymentGateway, RazorpayGateway
from restroflow.utils.ids import build_receipt
from restroflow.utils.validators import require_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentView:
    """What the public payment page may see for a token."""

    amount: Decimal
    currency: str
    description: str | None
    due_date: datetime
    status: str
    invoice_type: str
    is_payable: bool


@dataclass(frozen=True)
class CheckoutOrder:
    order_id: str
    amount: Decimal
    currency: str
    key_id: str | None


class InvoiceService(BaseService):
    """Service for invoice reads and checkout preparation."""

    def __init__(
        self,
        db: Session | None = None,
        settings: Config | None = None,
        gateway: PaymentGateway | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        super().__init__(db=db, settings=settings)
        self._gateway = gateway
        self.publisher = publisher or LoggingEventPublisher()

    @property
    def gateway(self) -> PaymentGateway:
        if self._gateway is None:
            self._gateway = RazorpayGateway(settings=self.settings)
        return self._gateway

    def get_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if invoice is None:
            raise InvoiceNotFoundError("Invoice not found.")
        return invoice

    def get_by_token(self, token: str | None) -> Invoice:
        token = require_text(token, "token")
        invoice = self.db.query(Invoice).filter(Invoice.payment_link_token == token).first()
        if invoice is None:
            raise InvoiceNotFoundError("Invoice not found or invalid token.")
        return invoice

    def list_invoices(
        self,
        restaurant_id: int | None = None,
        status: str | None = None,
        invoice_type: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Invoice]:
        query = self.db.query(Invoice)
        if restaurant_id is not None:
            query = query.filter(Invoice.restaurant_id == restaurant_id)
        if status:
            try:
                query = query.filter(Invoice.status == InvoiceStatus(status.upper()).value)
            except ValueError as exc:
                raise ValidationError(f"Unknown invoice status: {status}", kind="invalid_status_filter") from exc
        if invoice_type:
            try:
                query = query.filter(Invoice.type == InvoiceType(invoice_type.upper()).value)
            except ValueError as exc:
                raise ValidationError(f"Unknown invoice type: {invoice_type}", kind="invalid_type_filter") from exc
        return query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).offset(offset).limit(limit).all()

    def find_pending(self, restaurant_id: int, invoice_type: InvoiceType) -> Invoice | None:
        return (
            self.db.query(Invoice)
            .filter(Invoice.restaurant_id == restaurant_id)
            .filter(Invoice.type == invoice_type.value)
            .filter(Invoice.status == InvoiceStatus.PENDING.value)
            .order_by(Invoice.created_at.asc(), Invoice.id.asc())
            .first()
        )

    def get_payment_view(self, token: str | None) -> PaymentView:
        """Terminal invoices come back as a read-only view, never as payable."""
        invoice = self.get_by_token(token)
        return PaymentView(
            amount=invoice.amount,
            currency=self.settings.CURRENCY,
            description=invoice.description,
            due_date=invoice.due_date,
            status=invoice.status,
            invoice_type=invoice.type,
            is_payable=not INVOICE_LIFECYCLE.is_terminal(invoice.status),
        )

    def create_payment_order(self, token: str | None) -> CheckoutOrder:
        """Create the gateway order for a PENDING invoice.

        The order id is stored only after the gateway confirms it, so a
        gateway failure leaves the invoice exactly as it was. Once linked,
        the same order is handed back on every later checkout.
        """
        invoice = self.get_by_token(token)
        if INVOICE_LIFECYCLE.is_terminal(invoice.status):
            raise InvoiceAlreadyProcessedError(f"Invoice is already {invoice.status.lower()}.")
        if invoice.razorpay_order_id:
            logger.info(
                "invoice.order.reused",
                extra={"event": "invoice.order.reused", "invoice_id": invoice.id, "order_id": invoice.razorpay_order_id},
            )
            return CheckoutOrder(
                order_id=invoice.razorpay_order_id,
                amount=invoice.amount,
                currency=self.settings.CURRENCY,
                key_id=self.settings.RAZORPAY_KEY_ID,
            )

        order = self.gateway.create_order(invoice.amount, self.settings.CURRENCY, build_receipt(invoice.id))

        invoice.razorpay_order_id = order.order_id
        self.commit()
        logger.info(
            "invoice.order.linked",
            extra={"event": "invoice.order.linked", "invoice_id": invoice.id, "order_id": order.order_id},
        )
        safe_publish(
            self.publisher,
            BillingEvents.INVOICE_ORDER_CREATED,
            {"invoice_id": invoice.id, "restaurant_id": invoice.restaurant_id, "order_id": order.order_id},
        )
        return CheckoutOrder(
            order_id=order.order_id,
            amount=invoice.amount,
            currency=self.settings.CURRENCY,
            key_id=self.settings.RAZORPAY_KEY_ID,
        )
