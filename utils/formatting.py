"""
Keystroke formatters and deferred format checks for phone and national-ID fields.
Shared by the form client (as-you-type) and the ingestion schema (re-validation).
"""
import re
from typing import Optional

PHONE_DIGITS = 8
PHONE_LENGTH = 9
PHONE_PATTERN = re.compile(r"^\d{4}-\d{4}$")

NATIONAL_ID_DIGITS = 9
NATIONAL_ID_LENGTH = 10
NATIONAL_ID_PATTERN = re.compile(r"^\d{8}-\d$")

EMAIL_PATTERN = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)

PHONE_FORMAT_MESSAGE = "Invalid format. Must be 8 digits as xxxx-xxxx"
NATIONAL_ID_FORMAT_MESSAGE = "Invalid format. Must be 8 digits, a hyphen and 1 digit (e.g. 12345678-9)"
EMAIL_FORMAT_MESSAGE = "Invalid email address"

_NON_DIGITS = re.compile(r"\D")


def _group(value: str, max_digits: int, split_at: int) -> str:
    digits = _NON_DIGITS.sub("", value or "")[:max_digits]
    if len(digits) > split_at:
        return f"{digits[:split_at]}-{digits[split_at:]}"
    return digits


def format_phone(value: str) -> str:
    """Normalize raw input to xxxx-xxxx (hyphen appears once a 5th digit is typed)."""
    return _group(value, PHONE_DIGITS, 4)


def format_national_id(value: str) -> str:
    """Normalize raw input to xxxxxxxx-x (hyphen appears once a 9th digit is typed)."""
    return _group(value, NATIONAL_ID_DIGITS, 8)


def check_phone(value: str) -> Optional[str]:
    """Return an error message only when a full-length phone does not match."""
    if value and len(value) == PHONE_LENGTH and not PHONE_PATTERN.match(value):
        return PHONE_FORMAT_MESSAGE
    return None


def check_national_id(value: str) -> Optional[str]:
    """Return an error message only when a full-length national ID does not match."""
    if value and len(value) == NATIONAL_ID_LENGTH and not NATIONAL_ID_PATTERN.match(value):
        return NATIONAL_ID_FORMAT_MESSAGE
    return None


def check_email(value: str) -> Optional[str]:
    if value and not EMAIL_PATTERN.match(value):
        return EMAIL_FORMAT_MESSAGE
    return None
