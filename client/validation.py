"""
Per-step form rules. Each validator takes the flat form values and returns field errors;
an empty list means the step may be left.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from schemas.submission import ACCOUNT_TYPES, OTHER_BANK
from utils.formatting import check_email, check_national_id, check_phone


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _required(values: Mapping[str, Any], name: str, message: str, errors: list[FieldError]) -> bool:
    if _blank(values.get(name)):
        errors.append(FieldError(name, message))
        return False
    return True


def validate_personal(values: Mapping[str, Any]) -> list[FieldError]:
    errors: list[FieldError] = []
    _required(values, "fullName", "Full name is required", errors)
    if _required(values, "nationalId", "National ID number is required", errors):
        msg = check_national_id(values["nationalId"])
        if msg:
            errors.append(FieldError("nationalId", msg))
    if _required(values, "phone", "Phone number is required", errors):
        msg = check_phone(values["phone"])
        if msg:
            errors.append(FieldError("phone", msg))
    if _required(values, "email", "Email is required", errors):
        msg = check_email(values["email"])
        if msg:
            errors.append(FieldError("email", msg))
    return errors


def validate_banking(values: Mapping[str, Any]) -> list[FieldError]:
    errors: list[FieldError] = []
    if _required(values, "bankName", "Bank name is required", errors) and values["bankName"] == OTHER_BANK:
        _required(values, "customBank", "Please specify the bank name", errors)
    _required(values, "accountNumber", "Account number is required", errors)
    if values.get("accountType") not in ACCOUNT_TYPES:
        errors.append(FieldError("accountType", "Account type is required"))
    return errors


def validate_beneficiaries(values: Mapping[str, Any]) -> list[FieldError]:
    errors: list[FieldError] = []
    if not values.get("hasBeneficiaries"):
        return errors
    for i in (1, 2):
        _required(values, f"beneficiary{i}Name", f"Beneficiary {i} name is required", errors)
        phone_field = f"beneficiary{i}Phone"
        if _required(values, phone_field, f"Beneficiary {i} phone is required", errors):
            msg = check_phone(values[phone_field])
            if msg:
                errors.append(FieldError(phone_field, msg))
    return errors


def validate_investment(values: Mapping[str, Any], min_amount: Decimal) -> list[FieldError]:
    errors: list[FieldError] = []
    if _required(values, "investmentAmount", "Investment amount is required", errors):
        try:
            amount = Decimal(str(values["investmentAmount"]))
        except InvalidOperation:
            errors.append(FieldError("investmentAmount", "Investment amount must be a number"))
        else:
            if not amount.is_finite() or amount < min_amount:
                errors.append(FieldError("investmentAmount", f"The minimum investment amount is ${min_amount}"))
    if values.get("termsAccepted") is not True:
        errors.append(FieldError("termsAccepted", "You must accept the terms and conditions"))

    exposed = values.get("isPoliticallyExposed")
    if exposed is None:
        errors.append(FieldError("isPoliticallyExposed", "You must select an option"))
    elif exposed is True:
        _required(values, "exposedPosition", "You must specify the position you hold", errors)
    return errors
