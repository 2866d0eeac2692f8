"""Server-side verification of gateway payment callbacks."""

from __future__ import annotations

import hashlib
import hmac

from restroflow.core.exceptions import ValidationError


def _require(value: object, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be a non-empty string.", kind="malformed_payment_callback")
    return value.strip()


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 over ``"<order_id>|<payment_id>"``, hex encoded."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Return whether ``signature`` was produced by the gateway for this payment.

    A mismatch is an ordinary ``False``; only malformed input raises.
    """
    order_id = _require(order_id, "razorpay_order_id")
    payment_id = _require(payment_id, "razorpay_payment_id")
    signature = _require(signature, "razorpay_signature")
    if not isinstance(secret, str) or not secret:
        raise ValidationError("Payment verification secret is not configured.", kind="verifier_not_configured")

    expected = compute_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature.lower())


class PaymentVerifier:
    def __init__(self, secret: str) -> None:
        self._secret = secret

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_payment(order_id, payment_id, signature, self._secret)
