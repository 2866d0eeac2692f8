"""Identifier generation helpers."""

from __future__ import annotations

import secrets
import time
import uuid

PAYMENT_TOKEN_BYTES = 32
RECEIPT_MAX_LENGTH = 40


def new_run_id() -> str:
    """Create a UUID4-based run identifier."""
    return str(uuid.uuid4())


def new_payment_token() -> str:
    """Return an unguessable 64-char hex token for public payment links."""
    return secrets.token_hex(PAYMENT_TOKEN_BYTES)


def build_receipt(invoice_id: int, now_ms: int | None = None) -> str:
    """Gateway receipt reference; the gateway rejects receipts over 40 chars."""
    stamp = str(now_ms if now_ms is not None else int(time.time() * 1000))[-6:]
    return f"inv_{invoice_id}_{stamp}"[:RECEIPT_MAX_LENGTH]
