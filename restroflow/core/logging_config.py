"""Structured JSON logging for the API and the Celery workers."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from restroflow.core.config import get_config

_RESERVED_RECORD_FIELDS = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

# Payment-link tokens are bearer credentials; signatures and secrets never belong in logs.
REDACTED_FIELDS = frozenset(
    {
        "token",
        "payment_link",
        "payment_link_token",
        "razorpay_signature",
        "signature",
        "key_secret",
        "authorization",
    }
)
REDACTED = "[redacted]"


def redact(key: str, value: Any) -> Any:
    return REDACTED if key.lower() in REDACTED_FIELDS and value is not None else value


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields are merged in and redacted."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_FIELDS or key.startswith("_"):
                continue
            payload[key] = redact(key, value)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(force: bool = False) -> None:
    """Install the JSON handlers on the root logger once per process."""
    config = get_config()
    root = logging.getLogger()
    if root.handlers and not force:
        return
    for handler in list(root.handlers):
        root.removeHandler(handler)

    root.setLevel(config.LOG_LEVEL)
    formatter = JsonFormatter()

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if config.LOG_FILE:
        file_handler = logging.FileHandler(config.LOG_FILE)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if config.is_production:
        for noisy in ("sqlalchemy.engine", "urllib3", "celery.redirected"):
            logging.getLogger(noisy).setLevel(logging.WARNING)
