from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, ContextManager, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from restroflow.core.config import Config, get_config
from restroflow.core.enums import NotificationStatus
from restroflow.database.db import get_db_session
from restroflow.database.models import NotificationLog
from restroflow.utils.validators import escape_html, sanitize_text

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_payment_link(
        self,
        email: str,
        restaurant_name: str,
        payment_link: str,
        amount: Decimal,
        description: str,
        due_date: datetime,
    ) -> bool: ...

    def send_renewal_reminder(
        self,
        email: str,
        restaurant_name: str,
        end_date: datetime | None,
        payment_link: str,
        amount: Decimal,
        description: str,
        due_date: datetime,
    ) -> bool: ...


@dataclass
class EmailTemplate:
    subject: str
    html_body: str
    text_body: str


def format_amount(amount: Decimal) -> str:
    return f"₹{Decimal(amount):,.2f}"


def format_date(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%d %B %Y")


class EmailNotificationService:
    """SMTP notifier. Delivery is best-effort: every method returns a bool."""

    def __init__(
        self,
        settings: Config | None = None,
        session_scope: Callable[[], ContextManager[Session]] = get_db_session,
    ) -> None:
        self.settings = settings or get_config()
        self._session_scope = session_scope

    def build_payment_link_template(
        self,
        restaurant_name: str,
        payment_link: str,
        amount: Decimal,
        description: str,
        due_date: datetime,
    ) -> EmailTemplate:
        subject = "Payment Required - RestroFlow Subscription"
        text = (
            f"Hi {restaurant_name},\n\n"
            f"{description}\n"
            f"Amount due: {format_amount(amount)}\n"
            f"Due date: {format_date(due_date)}\n\n"
            f"Pay securely here: {payment_link}\n\n"
            "Thanks,\nRestroFlow Billing"
        )
        html = (
            f"<p>Hi {escape_html(restaurant_name)},</p>"
            f"<p>{escape_html(description)}</p>"
            f"<p><strong>{escape_html(format_amount(amount))}</strong> due by {escape_html(format_date(due_date))}.</p>"
            f'<p><a href="{escape_html(payment_link)}">Pay now</a></p>'
            "<p>Thanks,<br/>RestroFlow Billing</p>"
        )
        return EmailTemplate(subject=subject, html_body=html, text_body=text)

    def build_renewal_template(
        self,
        restaurant_name: str,
        end_date: datetime | None,
        payment_link: str,
        amount: Decimal,
        description: str,
        due_date: datetime,
    ) -> EmailTemplate:
        subject = "Your RestroFlow subscription is about to expire"
        text = (
            f"Hi {restaurant_name},\n\n"
            f"Your subscription ends on {format_date(end_date)}.\n\n"
            f"{description}\n"
            f"Amount due: {format_amount(amount)}\n"
            f"Pay by: {format_date(due_date)}\n\n"
            f"Renew now to keep QR ordering running: {payment_link}\n\n"
            "Thanks,\nRestroFlow Billing"
        )
        html = (
            f"<p>Hi {escape_html(restaurant_name)},</p>"
            f"<p>Your subscription ends on <strong>{escape_html(format_date(end_date))}</strong>.</p>"
            f"<p>{escape_html(description)}</p>"
            f"<p><strong>{escape_html(format_amount(amount))}</strong> due by {escape_html(format_date(due_date))}.</p>"
            f'<p><a href="{escape_html(payment_link)}">Renew subscription</a></p>'
            "<p>Thanks,<br/>RestroFlow Billing</p>"
        )
        return EmailTemplate(subject=subject, html_body=html, text_body=text)

    def _log_notification(
        self,
        recipient_email: str,
        template: EmailTemplate,
        notification_type: str,
        status: str,
        error_message: str | None = None,
    ) -> None:
        try:
            with self._session_scope() as session:
                session.add(
                    NotificationLog(
                        recipient_email=sanitize_text(recipient_email, 320),
                        subject=sanitize_text(template.subject, 500),
                        body=sanitize_text(template.text_body, 8000),
                        notification_type=notification_type,
                        status=status,
                        error_message=sanitize_text(error_message or "", 2000) or None,
                    )
                )
                session.commit()
        except SQLAlchemyError:
            logger.exception("notification.log.failed", extra={"event": "notification.log.failed"})

    def _deliver(self, to_email: str, template: EmailTemplate, notification_type: str) -> bool:
        if self.settings.NOTIFICATIONS_SANDBOX:
            self._log_notification(to_email, template, notification_type, NotificationStatus.SANDBOX_SENT.value)
            logger.info("notification.sandbox.sent", extra={"event": "notification.sandbox.sent", "to_email": to_email})
            return True

        if not self.settings.SMTP_SERVER:
            self._log_notification(
                to_email, template, notification_type, NotificationStatus.FAILED.value, "smtp not configured"
            )
            logger.warning("notification.smtp_not_configured", extra={"event": "notification.smtp_not_configured"})
            return False

        try:
            message = MIMEMultipart("alternative")
            message["Subject"] = template.subject
            message["From"] = self.settings.SMTP_FROM_EMAIL
            message["To"] = to_email
            message.attach(MIMEText(template.text_body, "plain"))
            message.attach(MIMEText(template.html_body, "html"))

            with smtplib.SMTP(self.settings.SMTP_SERVER, self.settings.SMTP_PORT, timeout=30) as server:
                server.starttls()
                if self.settings.SMTP_USERNAME and self.settings.SMTP_PASSWORD:
                    server.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD)
                server.sendmail(self.settings.SMTP_FROM_EMAIL, [to_email], message.as_string())

            self._log_notification(to_email, template, notification_type, NotificationStatus.SENT.value)
            return True
        except Exception as exc:
            self._log_notification(to_email, template, notification_type, NotificationStatus.FAILED.value, str(exc))
            logger.exception("notification.send.failed", extra={"event": "notification.send.failed", "to_email": to_email})
            return False

    def send_payment_link(
        self,
        email: str,
        restaurant_name: str,
        payment_link: str,
        amount: Decimal,
        description: str,
        due_date: datetime,
    ) -> bool:
        template = self.build_payment_link_template(restaurant_name, payment_link, amount, description, due_date)
        return self._deliver(email, template, "payment_link")

    def send_renewal_reminder(
        self,
        email: str,
        restaurant_name: str,
        end_date: datetime | None,
        payment_link: str,
        amount: Decimal,
        description: str,
        due_date: datetime,
    ) -> bool:
        template = self.build_renewal_template(
            restaurant_name, end_date, payment_link, amount, description, due_date
        )
        return self._deliver(email, template, "renewal_reminder")


def notify_safely(send: Callable[..., bool], **kwargs) -> bool:
    """Call a notifier method; failures are logged, never raised."""
    try:
        return bool(send(**kwargs))
    except Exception:
        logger.exception("notification.dispatch.failed", extra={"event": "notification.dispatch.failed"})
        return False
