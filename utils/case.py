"""
Key naming between snake_case attributes and the camelCase used by the form,
the JSON responses and the sheet headers.
"""
from typing import Any

from pydantic.alias_generators import to_camel


def to_camel_key(s: str) -> str:
    """snake_case to camelCase; digits stay attached (beneficiary1_name -> beneficiary1Name)."""
    return to_camel(s)


def dict_keys_to_camel(obj: Any) -> Any:
    """Recursively camelCase dict keys for JSON responses."""
    if isinstance(obj, dict):
        return {to_camel_key(k): dict_keys_to_camel(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_camel(x) for x in obj]
    return obj
