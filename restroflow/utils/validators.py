"""Deterministic sanitizers used before persisting free-form text."""

from __future__ import annotations

import html

from restroflow.core.exceptions import ValidationError


def sanitize_text(value: str | None, max_len: int = 20000) -> str:
    """Sanitize free-form content before persistence/display."""
    if value is None:
        return ""
    cleaned = str(value).replace("\x00", "").strip()
    cleaned = cleaned[:max_len]
    return cleaned


def escape_html(value: str | None, max_len: int = 2000) -> str:
    """Escape values interpolated into notification HTML bodies."""
    return html.escape(sanitize_text(value, max_len=max_len))


def require_text(value: str | None, field_name: str) -> str:
    """Return stripped ``value`` or raise when it is missing."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required.", kind=f"missing_{field_name}")
    return value.strip()
