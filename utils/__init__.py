"""Shared helpers for the ingestion API and the form client."""
from utils.case import dict_keys_to_camel, to_camel_key
from utils.formatting import (
    check_email,
    check_national_id,
    check_phone,
    format_national_id,
    format_phone,
)

__all__ = [
    "to_camel_key",
    "dict_keys_to_camel",
    "format_phone",
    "format_national_id",
    "check_phone",
    "check_national_id",
    "check_email",
]
