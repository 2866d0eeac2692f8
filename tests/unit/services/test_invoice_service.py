from __future__ import annotations

from decimal import Decimal

import pytest

from restroflow.billing.events import BillingEvents
from restroflow.billing.payment_verifier import compute_signature
from restroflow.core.exceptions import (
    InvoiceAlreadyProcessedError,
    InvoiceNotFoundError,
    PaymentGatewayError,
    ValidationError,
)
from restroflow.core.enums import InvoiceType, SettlementOutcome
from restroflow.services.invoice_factory import InvoiceFactory
from restroflow.services.invoice_service import InvoiceService
from restroflow.services.payment_gateway import GatewayOrder
from restroflow.services.settlement_service import SubscriptionStateMachine


class FakeGateway:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple] = []

    def create_order(self, amount, currency, receipt):
        self.calls.append((amount, currency, receipt))
        if self.fail:
            raise PaymentGatewayError("gateway unavailable")
        return GatewayOrder(order_id=f"order_test_{len(self.calls)}", amount_minor=int(amount * 100), currency=currency, receipt=receipt)

    def verify_payment(self, order_id, payment_id, signature):
        return False


def _invoice(session, settings, restaurant, **kwargs):
    return InvoiceFactory(db=session, settings=settings).create_renewal_invoice(restaurant, 10, **kwargs)


def test_payment_view_for_pending_invoice(session, settings, make_restaurant):
    invoice = _invoice(session, settings, make_restaurant())

    view = InvoiceService(db=session, settings=settings).get_payment_view(invoice.payment_link_token)

    assert view.amount == Decimal("500.00")
    assert view.currency == "INR"
    assert view.status == "PENDING"
    assert view.invoice_type == "RENEWAL"
    assert view.is_payable is True


@pytest.mark.parametrize("action", ["paid", "cancelled"])
def test_payment_view_for_terminal_invoice_is_read_only(session, settings, make_restaurant, action):
    invoice = _invoice(session, settings, make_restaurant())
    machine = SubscriptionStateMachine(db=session, settings=settings)
    if action == "paid":
        machine.settle_paid(invoice.id, payment_id="pay_1")
    else:
        machine.cancel_invoice(invoice.id)

    view = InvoiceService(db=session, settings=settings).get_payment_view(invoice.payment_link_token)

    assert view.status == action.upper()
    assert view.is_payable is False


def test_unknown_and_missing_token(session, settings):
    service = InvoiceService(db=session, settings=settings)

    with pytest.raises(InvoiceNotFoundError):
        service.get_payment_view("nope")
    with pytest.raises(ValidationError):
        service.get_payment_view("   ")


def test_create_payment_order_links_gateway_order(session, settings, publisher, make_restaurant):
    invoice = _invoice(session, settings, make_restaurant())
    gateway = FakeGateway()
    service = InvoiceService(db=session, settings=settings, gateway=gateway, publisher=publisher)

    order = service.create_payment_order(invoice.payment_link_token)

    assert order.order_id == "order_test_1"
    assert order.key_id == "rzp_test_key"
    assert order.amount == Decimal("500.00")
    amount, currency, receipt = gateway.calls[0]
    assert currency == "INR"
    assert receipt.startswith(f"inv_{invoice.id}_")
    assert len(receipt) <= 40
    session.refresh(invoice)
    assert invoice.razorpay_order_id == "order_test_1"
    assert publisher.names() == [BillingEvents.INVOICE_ORDER_CREATED]


def test_repeat_checkout_returns_the_linked_order(session, settings, publisher, make_restaurant):
    invoice = _invoice(session, settings, make_restaurant())
    gateway = FakeGateway()
    service = InvoiceService(db=session, settings=settings, gateway=gateway, publisher=publisher)

    first = service.create_payment_order(invoice.payment_link_token)
    second = service.create_payment_order(invoice.payment_link_token)

    assert len(gateway.calls) == 1
    assert second.order_id == first.order_id == "order_test_1"
    assert second.amount == first.amount
    session.refresh(invoice)
    assert invoice.razorpay_order_id == "order_test_1"
    assert publisher.names() == [BillingEvents.INVOICE_ORDER_CREATED]

    # The payer completes checkout on the order opened first.
    signature = compute_signature(first.order_id, "pay_1", settings.RAZORPAY_KEY_SECRET)
    result = SubscriptionStateMachine(db=session, settings=settings, publisher=publisher).verify_and_settle(
        invoice.payment_link_token, first.order_id, "pay_1", signature
    )
    assert result.outcome is SettlementOutcome.PAID
    assert result.invoice.status == "PAID"


def test_gateway_failure_leaves_invoice_untouched(session, settings, make_restaurant):
    invoice = _invoice(session, settings, make_restaurant())
    service = InvoiceService(db=session, settings=settings, gateway=FakeGateway(fail=True))

    with pytest.raises(PaymentGatewayError):
        service.create_payment_order(invoice.payment_link_token)

    session.refresh(invoice)
    assert invoice.razorpay_order_id is None
    assert invoice.status == "PENDING"


def test_create_payment_order_rejects_terminal_invoice(session, settings, make_restaurant):
    invoice = _invoice(session, settings, make_restaurant())
    SubscriptionStateMachine(db=session, settings=settings).cancel_invoice(invoice.id)
    gateway = FakeGateway()

    with pytest.raises(InvoiceAlreadyProcessedError):
        InvoiceService(db=session, settings=settings, gateway=gateway).create_payment_order(
            invoice.payment_link_token
        )
    assert gateway.calls == []


def test_list_invoices_filters(session, settings, make_restaurant):
    first = make_restaurant()
    second = make_restaurant()
    factory = InvoiceFactory(db=session, settings=settings)
    renewal = factory.create_renewal_invoice(first, 10)
    factory.create_extension_invoice(first, 10, months=1)
    factory.create_renewal_invoice(second, 10)
    SubscriptionStateMachine(db=session, settings=settings).cancel_invoice(renewal.id)
    service = InvoiceService(db=session, settings=settings)

    assert len(service.list_invoices()) == 3
    assert len(service.list_invoices(restaurant_id=first.id)) == 2
    assert [row.id for row in service.list_invoices(status="cancelled")] == [renewal.id]
    assert len(service.list_invoices(invoice_type="EXTENSION")) == 1
    assert len(service.list_invoices(limit=1)) == 1
    with pytest.raises(ValidationError):
        service.list_invoices(status="LOST")


def test_find_pending_only_returns_pending(session, settings, make_restaurant):
    restaurant = make_restaurant()
    invoice = _invoice(session, settings, restaurant)
    service = InvoiceService(db=session, settings=settings)

    assert service.find_pending(restaurant.id, InvoiceType.RENEWAL).id == invoice.id
    assert service.find_pending(restaurant.id, InvoiceType.EXTENSION) is None

    SubscriptionStateMachine(db=session, settings=settings).cancel_invoice(invoice.id)
    assert service.find_pending(restaurant.id, InvoiceType.RENEWAL) is None


def test_get_invoice_not_found(session, settings):
    with pytest.raises(InvoiceNotFoundError):
        InvoiceService(db=session, settings=settings).get_invoice(404)
