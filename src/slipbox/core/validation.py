# src/slipbox/core/validation.py

"""Boundary validation helpers. All failures raise InvalidArgumentError."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from .errors import InvalidArgumentError

MAX_TITLE_LENGTH = 500
MAX_NOTES_LENGTH = 50000
MAX_TAG_NAME_LENGTH = 100
MAX_CHECKLIST_ITEM_LENGTH = 1000
MAX_TOKEN_NAME_LENGTH = 255


def validate_not_empty(value: str | None, field_name: str) -> str:
    if value is None or not isinstance(value, str) or value.strip() == "":
        raise InvalidArgumentError(f"{field_name} cannot be empty")
    return value


def validate_length(value: str | None, field_name: str, max_length: int) -> str:
    value = value or ""
    if len(value) > max_length:
        raise InvalidArgumentError(
            f"{field_name} exceeds maximum length of {max_length} characters"
        )
    return value


def validate_tag_name(name: str | None) -> str:
    name = validate_not_empty(name, "name")
    validate_length(name, "name", MAX_TAG_NAME_LENGTH)
    for i, ch in enumerate(name):
        code = ord(ch)
        if code < 32 or code == 127:
            raise InvalidArgumentError(f"name contains invalid character at position {i}")
    return name


def parse_uuid(raw: object, what: str) -> str:
    """Return the canonical string form of a UUID, or raise InvalidArgumentError."""
    if not isinstance(raw, str):
        raise InvalidArgumentError(f"invalid {what} ID format")
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        raise InvalidArgumentError(f"invalid {what} ID format") from None


def parse_start_date(raw: str) -> date:
    """Parse a pure calendar date (YYYY-MM-DD)."""
    try:
        if len(raw) != 10:
            raise ValueError(raw)
        return date.fromisoformat(raw)
    except ValueError:
        raise InvalidArgumentError("invalid start_date format: expected YYYY-MM-DD") from None


def parse_timestamp(raw: object, field_name: str) -> float:
    """Parse an ISO-8601 timestamp into epoch seconds. Naive values are taken as UTC."""
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidArgumentError(f"invalid {field_name}: expected ISO-8601 timestamp")
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidArgumentError(f"invalid {field_name}: expected ISO-8601 timestamp") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()
