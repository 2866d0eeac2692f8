"""Razorpay order creation and callback verification."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

import requests

from restroflow.billing.payment_verifier import verify_payment
from restroflow.core.config import Config, get_config
from restroflow.core.exceptions import ConfigurationError, PaymentGatewayError, ValidationError
from restroflow.utils.ids import RECEIPT_MAX_LENGTH

logger = logging.getLogger(__name__)

MINOR_UNITS_PER_MAJOR = 100
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass(frozen=True)
class GatewayOrder:
    order_id: str
    amount_minor: int
    currency: str
    receipt: str


class PaymentGateway(Protocol):
    def create_order(self, amount: Decimal, currency: str, receipt: str) -> GatewayOrder: ...

    def verify_payment(self, order_id: str, payment_id: str, signature: str) -> bool: ...


def to_minor_units(amount: Decimal) -> int:
    """Convert rupees to paise for the gateway API."""
    minor = (Decimal(amount) * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)


class RazorpayGateway:
    """Thin Razorpay REST client; only the calls billing needs."""

    def __init__(self, settings: Config | None = None, session: requests.Session | None = None) -> None:
        self.settings = settings or get_config()
        self._http = session or requests.Session()

    def _auth(self) -> tuple[str, str]:
        if not self.settings.RAZORPAY_KEY_ID:
            raise ConfigurationError("RAZORPAY_KEY_ID is not configured.")
        return self.settings.RAZORPAY_KEY_ID, self.settings.RAZORPAY_KEY_SECRET

    def create_order(self, amount: Decimal, currency: str, receipt: str) -> GatewayOrder:
        amount_minor = to_minor_units(amount)
        if amount_minor < MINOR_UNITS_PER_MAJOR:
            raise ValidationError("Order amount must be at least 1 currency unit.", kind="order_amount_too_small")

        receipt = receipt[:RECEIPT_MAX_LENGTH]
        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,
        }
        url = f"{self.settings.RAZORPAY_API_BASE}/orders"
        auth = self._auth()
        total_attempts = self.settings.GATEWAY_MAX_RETRIES + 1
        last_error: Exception | None = None

        for attempt in range(1, total_attempts + 1):
            try:
                response = self._http.post(
                    url,
                    json=payload,
                    auth=auth,
                    timeout=(5, self.settings.GATEWAY_TIMEOUT_SECONDS),
                )
                if response.status_code in RETRYABLE_STATUS_CODES and attempt < total_attempts:
                    last_error = PaymentGatewayError(f"gateway returned {response.status_code}")
                    time.sleep(0.25 * (2 ** (attempt - 1)))
                    continue
                response.raise_for_status()
                body = response.json()
                order_id = body.get("id")
                if not order_id:
                    raise PaymentGatewayError("Gateway order response did not include an id.")
                logger.info(
                    "gateway.order.created",
                    extra={"event": "gateway.order.created", "order_id": order_id, "receipt": receipt},
                )
                return GatewayOrder(order_id=order_id, amount_minor=amount_minor, currency=currency, receipt=receipt)
            except requests.exceptions.HTTPError as exc:
                last_error = exc
                break
            except (requests.exceptions.RequestException, ValueError) as exc:
                last_error = exc
                logger.warning(
                    "gateway.order.failed",
                    extra={
                        "event": "gateway.order.failed",
                        "attempt": attempt,
                        "attempts_total": total_attempts,
                        "error": str(exc),
                    },
                )
                if attempt < total_attempts:
                    time.sleep(0.25 * (2 ** (attempt - 1)))

        logger.error(
            "gateway.order.exhausted",
            extra={"event": "gateway.order.exhausted", "receipt": receipt, "error": str(last_error)},
        )
        raise PaymentGatewayError(f"Failed to create payment order: {last_error}")

    def verify_payment(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_payment(order_id, payment_id, signature, self.settings.RAZORPAY_KEY_SECRET)
