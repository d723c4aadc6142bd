from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

_UNSAFE_CHARS = re.compile(r"[<>]")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_PHONE_RE = re.compile(r"[\d\s\-\(\)\+]{10,15}")
_CURRENCY_NOISE = re.compile(r"[$,\s]")


class PayloadValidationError(ValueError):
    def __init__(self, message: str, missing_fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing_fields = missing_fields or []


@dataclass(frozen=True)
class LeadSchema:
    required: tuple[str, ...] = ("borrower_first_name", "borrower_email", "borrower_phone")
    email_fields: tuple[str, ...] = ("borrower_email",)
    phone_fields: tuple[str, ...] = ("borrower_phone",)
    # field -> (min, max), inclusive
    ranges: dict[str, tuple[float, float]] = field(
        default_factory=lambda: {"property_value": (0, 10_000_000)}
    )


DEFAULT_LEAD_SCHEMA = LeadSchema()


def sanitize_string(value: str) -> str:
    # strip after removal so "< x >" does not leave padding behind
    return _UNSAFE_CHARS.sub("", value.strip()).strip()


def sanitize_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Returns a new dict with every top-level string trimmed and angle brackets
    removed. Non-string values pass through untouched.
    """
    return {k: sanitize_string(v) if isinstance(v, str) else v for k, v in data.items()}


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.fullmatch(value))


def is_valid_phone(value: str) -> bool:
    return bool(_PHONE_RE.fullmatch(value))


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _as_number(value: Any) -> float | None:
    # nan/inf never count as numbers; nan would slip through both bounds
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = _CURRENCY_NOISE.sub("", value)
    elif not isinstance(value, (int, float)):
        return None
    try:
        num = float(value)
    except (ValueError, OverflowError):
        return None
    return num if math.isfinite(num) else None


def validate_payload(data: Mapping[str, Any], schema: LeadSchema = DEFAULT_LEAD_SCHEMA) -> None:
    """
    Raises PayloadValidationError on the first class of problem found:
    missing required fields, then email/phone format, then numeric ranges.
    """
    missing = [f for f in schema.required if _is_blank(data.get(f))]
    if missing:
        raise PayloadValidationError(f"Missing required fields: {', '.join(missing)}", missing_fields=missing)

    for f in schema.email_fields:
        v = data.get(f)
        if not _is_blank(v) and not (isinstance(v, str) and is_valid_email(v)):
            raise PayloadValidationError(f"Invalid email format: {f}")

    for f in schema.phone_fields:
        v = data.get(f)
        if not _is_blank(v) and not (isinstance(v, str) and is_valid_phone(v)):
            raise PayloadValidationError(f"Invalid phone format: {f}")

    for f, (lo, hi) in schema.ranges.items():
        v = data.get(f)
        if _is_blank(v):
            continue
        num = _as_number(v)
        if num is None:
            raise PayloadValidationError(f"{f} must be numeric")
        if num < lo or num > hi:
            raise PayloadValidationError(f"{f} must be between {lo:,.0f} and {hi:,.0f}")
