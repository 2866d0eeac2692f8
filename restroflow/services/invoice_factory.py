"""Issues PENDING invoices with public payment links."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from restroflow.billing.events import BillingEvents, EventPublisher, LoggingEventPublisher, safe_publish
from restroflow.billing.metadata import ExtraTableMetadata, TermMetadata, dump_invoice_metadata
from restroflow.billing.pricing import PricingCalculator, PricingConfig
from restroflow.billing.proration import calculate_prorated_amount, remaining_days
from restroflow.core.config import Config
from restroflow.core.enums import InvoiceStatus, InvoiceType
from restroflow.core.exceptions import ValidationError
from restroflow.database.models import Invoice, Restaurant
from restroflow.services.base_service import BaseService
from restroflow.utils.dates import utcnow_naive
from restroflow.utils.ids import new_payment_token

logger = logging.getLogger(__name__)


class InvoiceFactory(BaseService):
    """Builds and persists the three invoice kinds.

    Creation performs exactly one durable write and never talks to the
    gateway; the order is created when the payer opens checkout.
    """

    def __init__(
        self,
        db: Session | None = None,
        settings: Config | None = None,
        pricing: PricingConfig | None = None,
        publisher: EventPublisher | None = None,
        token_factory: Callable[[], str] = new_payment_token,
    ) -> None:
        super().__init__(db=db, settings=settings)
        self.pricing = pricing or PricingConfig.from_settings(self.settings)
        self.calculator = PricingCalculator(self.pricing)
        self.publisher = publisher or LoggingEventPublisher()
        self._token_factory = token_factory

    def payment_link_for(self, token: str) -> str:
        return f"{self.settings.FRONTEND_URL}/payment?token={token}"

    def _persist(
        self,
        restaurant: Restaurant,
        invoice_type: InvoiceType,
        amount: Decimal,
        description: str,
        metadata: ExtraTableMetadata | TermMetadata,
        now: datetime,
        tables_added: int = 0,
        months_added: int = 0,
        prorated_days: int = 0,
    ) -> Invoice:
        if amount < 1:
            raise ValidationError("Invoice amount must be at least 1.", kind="invoice_amount_too_small")

        token = self._token_factory()
        invoice = Invoice(
            restaurant_id=restaurant.id,
            type=invoice_type.value,
            amount=amount,
            tables_added=tables_added,
            months_added=months_added,
            prorated_days=prorated_days,
            description=description,
            status=InvoiceStatus.PENDING.value,
            payment_link_token=token,
            payment_link=self.payment_link_for(token),
            due_date=now + timedelta(days=self.settings.INVOICE_DUE_DAYS),
            invoice_metadata=dump_invoice_metadata(metadata),
            created_at=now,
            updated_at=now,
        )
        self.db.add(invoice)
        self.commit()
        self.db.refresh(invoice)

        logger.info(
            "invoice.created",
            extra={
                "event": "invoice.created",
                "invoice_id": invoice.id,
                "restaurant_id": restaurant.id,
                "invoice_type": invoice_type.value,
                "amount": str(amount),
            },
        )
        safe_publish(
            self.publisher,
            BillingEvents.INVOICE_CREATED,
            {
                "invoice_id": invoice.id,
                "restaurant_id": restaurant.id,
                "type": invoice_type.value,
                "amount": str(invoice.amount),
            },
        )
        return invoice

    def _term_amount(self, total_tables: int, months: int) -> Decimal:
        if months < 1:
            raise ValidationError("months must be >= 1.", kind="invalid_months")
        quote = self.calculator.quote(total_tables)
        if quote is None:
            raise ValidationError("Restaurant has no billable tables.", kind="no_billable_tables")
        return quote.monthly_price * months

    def create_extra_table_invoice(
        self,
        restaurant: Restaurant,
        extra_tables: int,
        period_end: datetime,
        basis_table_count: int,
        location_deltas: dict[str, int] | None = None,
        now: datetime | None = None,
    ) -> Invoice:
        """Prorated charge for tables added before ``period_end``.

        ``basis_table_count`` is the total the restaurant will be billed for
        once paid; settlement prices from it, not from later topology.
        """
        if extra_tables < 1:
            raise ValidationError("extra_tables must be >= 1.", kind="invalid_extra_tables")
        now = now or utcnow_naive()
        amount = calculate_prorated_amount(extra_tables, now, period_end, self.pricing)
        metadata = ExtraTableMetadata(
            basis_table_count=basis_table_count,
            location_deltas={str(key): int(value) for key, value in (location_deltas or {}).items()},
        )
        return self._persist(
            restaurant,
            InvoiceType.EXTRA_TABLE,
            amount,
            f"Prorated payment for {extra_tables} extra table(s)",
            metadata,
            now,
            tables_added=extra_tables,
            prorated_days=max(remaining_days(now, period_end), 0),
        )

    def create_renewal_invoice(
        self,
        restaurant: Restaurant,
        total_tables: int,
        months: int = 1,
        now: datetime | None = None,
    ) -> Invoice:
        amount = self._term_amount(total_tables, months)
        return self._persist(
            restaurant,
            InvoiceType.RENEWAL,
            amount,
            f"Renewal for {months} month(s) - {total_tables} tables",
            TermMetadata(months_added=months),
            now or utcnow_naive(),
            months_added=months,
        )

    def create_extension_invoice(
        self,
        restaurant: Restaurant,
        total_tables: int,
        months: int,
        now: datetime | None = None,
    ) -> Invoice:
        amount = self._term_amount(total_tables, months)
        return self._persist(
            restaurant,
            InvoiceType.EXTENSION,
            amount,
            f"Extension for {months} month(s) - {total_tables} tables",
            TermMetadata(months_added=months),
            now or utcnow_naive(),
            months_added=months,
        )
