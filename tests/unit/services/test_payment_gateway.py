from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest
import requests

from restroflow.billing.payment_verifier import compute_signature
from restroflow.core.exceptions import ConfigurationError, PaymentGatewayError, ValidationError
from restroflow.services import payment_gateway as gateway_module
from restroflow.services.payment_gateway import RazorpayGateway, to_minor_units


class _Response:
    def __init__(self, status_code: int, body: dict | None = None) -> None:
        self.status_code = status_code
        self._body = body or {}

    def json(self):
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class _FakeHttp:
    def __init__(self, responses):
        self._responses = list(responses)
        self.posts: list[dict] = []

    def post(self, url, json=None, auth=None, timeout=None):
        self.posts.append({"url": url, "json": json, "auth": auth, "timeout": timeout})
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch):
    monkeypatch.setattr(gateway_module.time, "sleep", lambda _seconds: None)


def test_minor_units_conversion():
    assert to_minor_units(Decimal("16.67")) == 1667
    assert to_minor_units(Decimal("500")) == 50000


def test_create_order_posts_paise_and_truncated_receipt(settings):
    http = _FakeHttp([_Response(200, {"id": "order_XYZ"})])
    gateway = RazorpayGateway(settings=settings, session=http)

    order = gateway.create_order(Decimal("16.67"), "INR", "r" * 60)

    assert order.order_id == "order_XYZ"
    assert order.amount_minor == 1667
    sent = http.posts[0]
    assert sent["url"] == f"{settings.RAZORPAY_API_BASE}/orders"
    assert sent["json"]["amount"] == 1667
    assert sent["json"]["currency"] == "INR"
    assert len(sent["json"]["receipt"]) == 40
    assert sent["auth"] == ("rzp_test_key", settings.RAZORPAY_KEY_SECRET)


def test_transient_failures_are_retried(settings):
    http = _FakeHttp([requests.exceptions.ConnectionError("reset"), _Response(200, {"id": "order_2"})])

    order = RazorpayGateway(settings=settings, session=http).create_order(Decimal("50"), "INR", "inv_1")

    assert order.order_id == "order_2"
    assert len(http.posts) == 2


def test_retryable_status_then_success(settings):
    http = _FakeHttp([_Response(503), _Response(200, {"id": "order_3"})])

    assert RazorpayGateway(settings=settings, session=http).create_order(Decimal("50"), "INR", "inv_1").order_id == "order_3"


def test_exhausted_retries_raise_gateway_error(settings):
    http = _FakeHttp([requests.exceptions.Timeout("slow"), requests.exceptions.Timeout("slow")])

    with pytest.raises(PaymentGatewayError):
        RazorpayGateway(settings=settings, session=http).create_order(Decimal("50"), "INR", "inv_1")
    assert len(http.posts) == 2


def test_client_error_is_not_retried(settings):
    http = _FakeHttp([_Response(400), _Response(200, {"id": "never"})])

    with pytest.raises(PaymentGatewayError):
        RazorpayGateway(settings=settings, session=http).create_order(Decimal("50"), "INR", "inv_1")
    assert len(http.posts) == 1


def test_missing_order_id_is_a_gateway_error(settings):
    http = _FakeHttp([_Response(200, {})])

    with pytest.raises(PaymentGatewayError):
        RazorpayGateway(settings=settings, session=http).create_order(Decimal("50"), "INR", "inv_1")


def test_amount_below_one_rupee_is_rejected(settings):
    with pytest.raises(ValidationError):
        RazorpayGateway(settings=settings, session=_FakeHttp([])).create_order(Decimal("0.50"), "INR", "inv_1")


def test_missing_key_id_is_a_configuration_error(settings):
    gateway = RazorpayGateway(settings=replace(settings, RAZORPAY_KEY_ID=None), session=_FakeHttp([]))

    with pytest.raises(ConfigurationError):
        gateway.create_order(Decimal("50"), "INR", "inv_1")


def test_verify_payment_uses_key_secret(settings):
    gateway = RazorpayGateway(settings=settings, session=_FakeHttp([]))
    signature = compute_signature("order_1", "pay_1", settings.RAZORPAY_KEY_SECRET)

    assert gateway.verify_payment("order_1", "pay_1", signature) is True
    assert gateway.verify_payment("order_1", "pay_1", "0" * 64) is False
