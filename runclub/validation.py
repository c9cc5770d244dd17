"""Coercion helpers for form and JSON input.

All helpers take a mapping (``request.form``, ``request.get_json()`` or a plain
dict) and raise :class:`~runclub.errors.ValidationError` naming the offending
field, so nothing reaches the store half-validated.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from dateutil import parser as date_parser

from runclub.errors import ValidationError


def get_required_string(data: Mapping[str, Any], key: str) -> str:
    raw = data.get(key)
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError(f"Missing required field: {key}", field=key)
    return raw.strip()


def get_optional_string(data: Mapping[str, Any], key: str) -> str | None:
    raw = data.get(key)
    if not isinstance(raw, str):
        return None
    value = raw.strip()
    return value or None


def get_required_int(data: Mapping[str, Any], key: str) -> int:
    raw = data.get(key)
    if isinstance(raw, bool):
        raise ValidationError(f"Invalid number for field: {key}", field=key)
    if isinstance(raw, int):
        return raw
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(f"Missing required field: {key}", field=key)
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"Invalid number for field: {key}", field=key) from None


def get_optional_int(data: Mapping[str, Any], key: str) -> int | None:
    raw = data.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    return get_required_int(data, key)


def get_optional_float(data: Mapping[str, Any], key: str) -> float | None:
    raw = data.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, bool):
        raise ValidationError(f"Invalid number for field: {key}", field=key)
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid number for field: {key}", field=key) from None


def get_optional_date(data: Mapping[str, Any], key: str) -> date | None:
    """Parse an ISO-8601 date (``YYYY-MM-DD``, a full timestamp is truncated)."""
    raw = data.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, date):
        return raw
    try:
        return date_parser.isoparse(str(raw).strip()).date()
    except ValueError:
        raise ValidationError(f"Invalid date for field: {key}", field=key) from None


def get_checkbox(data: Mapping[str, Any], key: str) -> bool:
    """HTML checkboxes post ``"on"`` when checked; JSON callers send a bool."""
    raw = data.get(key)
    if isinstance(raw, bool):
        return raw
    return raw in ("on", "true", "1")


def get_choice(data: Mapping[str, Any], key: str, choices: tuple[str, ...]) -> str:
    value = get_required_string(data, key).lower()
    if value not in choices:
        raise ValidationError(f"Invalid value for field: {key} (expected one of {', '.join(choices)})", field=key)
    return value
