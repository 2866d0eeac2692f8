from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from restroflow.database.models import NotificationLog
from restroflow.services import notification_service as notification_module
from restroflow.services.notification_service import EmailNotificationService, format_amount, notify_safely


def test_format_amount():
    assert format_amount(Decimal("1234.5")) == "₹1,234.50"


def test_payment_link_template_escapes_html(settings):
    service = EmailNotificationService(settings=settings)

    template = service.build_payment_link_template(
        "<b>Cafe</b>", "https://pay.test/?token=abc", Decimal("16.67"), "Prorated payment", datetime(2026, 5, 1)
    )

    assert "&lt;b&gt;Cafe&lt;/b&gt;" in template.html_body
    assert "₹16.67" in template.text_body
    assert "01 May 2026" in template.text_body


def test_renewal_template_states_amount_and_due_date(settings):
    service = EmailNotificationService(settings=settings)

    template = service.build_renewal_template(
        "Spice Route",
        datetime(2026, 5, 1),
        "https://pay.test/?token=abc",
        Decimal("1500"),
        "Renewal for 3 month(s) - 10 tables",
        datetime(2026, 4, 28),
    )

    assert "01 May 2026" in template.text_body
    assert "Renewal for 3 month(s) - 10 tables" in template.text_body
    assert "Amount due: ₹1,500.00" in template.text_body
    assert "Pay by: 28 April 2026" in template.text_body
    assert "₹1,500.00" in template.html_body


def test_sandbox_delivery_logs_and_succeeds(settings, session_scope, session):
    service = EmailNotificationService(settings=settings, session_scope=session_scope)

    sent = service.send_renewal_reminder(
        "owner@example.com",
        "Spice Route",
        datetime(2026, 5, 1),
        "https://pay.test",
        Decimal("500"),
        "Renewal for 1 month(s) - 10 tables",
        datetime(2026, 4, 28),
    )

    assert sent is True
    row = session.query(NotificationLog).one()
    assert row.status == "sandbox_sent"
    assert row.notification_type == "renewal_reminder"
    assert row.recipient_email == "owner@example.com"
    assert "Amount due: ₹500.00" in row.body
    assert "Pay by: 28 April 2026" in row.body


def test_missing_smtp_server_fails_softly(settings, session_scope, session):
    service = EmailNotificationService(
        settings=replace(settings, NOTIFICATIONS_SANDBOX=False, SMTP_SERVER=None),
        session_scope=session_scope,
    )

    sent = service.send_payment_link(
        "owner@example.com", "Spice Route", "https://pay.test", Decimal("500"), "Renewal", datetime(2026, 5, 1)
    )

    assert sent is False
    assert session.query(NotificationLog).one().status == "failed"


def test_smtp_errors_are_logged_not_raised(settings, session_scope, session, monkeypatch):
    class _BrokenSMTP:
        def __init__(self, *args, **kwargs):
            raise OSError("connection refused")

    monkeypatch.setattr(notification_module.smtplib, "SMTP", _BrokenSMTP)
    service = EmailNotificationService(
        settings=replace(settings, NOTIFICATIONS_SANDBOX=False, SMTP_SERVER="smtp.test"),
        session_scope=session_scope,
    )

    sent = service.send_renewal_reminder(
        "owner@example.com", "Spice Route", None, "https://pay.test", Decimal("500"), "Renewal", datetime(2026, 5, 1)
    )

    assert sent is False
    row = session.query(NotificationLog).one()
    assert row.status == "failed"
    assert "connection refused" in row.error_message


def test_notify_safely_swallows_exceptions():
    def _explode(**_kwargs):
        raise RuntimeError("boom")

    assert notify_safely(_explode, email="x@example.com") is False
    assert notify_safely(lambda **_kwargs: True) is True
