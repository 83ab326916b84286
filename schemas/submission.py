from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from schemas.document import DOCUMENT_FIELDS, DOCUMENT_ORDER
from utils.formatting import (
    EMAIL_FORMAT_MESSAGE,
    EMAIL_PATTERN,
    NATIONAL_ID_FORMAT_MESSAGE,
    NATIONAL_ID_PATTERN,
    PHONE_FORMAT_MESSAGE,
    PHONE_PATTERN,
)

BANK_OPTIONS: tuple[str, ...] = (
    "Banco Agrícola",
    "Banco Cuscatlán",
    "Banco Davivienda",
    "Banco Atlántida",
    "Banco Azul",
    "Banco Industrial",
    "Banco Promérica",
    "Banco de América Central",
    "Banco Hipotecario",
    "Banco G&T Continental",
    "Banco de Fomento Agropecuario",
)
OTHER_BANK = "Other"

ACCOUNT_TYPES: tuple[str, ...] = ("savings", "checking")


def _sanitize(value: Any) -> Any:
    if isinstance(value, str):
        return value.replace("<", "").replace(">", "")
    return value


class BeneficiarySchema(BaseModel):
    name: str = ""
    phone: str = ""
    instagram_handle: Optional[str] = Field("", alias="instagramHandle")

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}

    @field_validator("*", mode="before")
    @classmethod
    def _strip_markup(cls, v: Any) -> Any:
        return _sanitize(v)


class SubmissionPayload(BaseModel):
    """One investor application as assembled by the form client."""

    # Identity
    full_name: str = Field(..., alias="fullName", min_length=1)
    national_id: str = Field(..., alias="nationalId")
    phone: str
    email: str

    # Banking
    bank_name: str = Field(..., alias="bankName", min_length=1)
    custom_bank: Optional[str] = Field("", alias="customBank")
    account_number: str = Field(..., alias="accountNumber", min_length=1)
    account_type: Literal["savings", "checking"] = Field(..., alias="accountType")

    # Beneficiaries
    has_beneficiaries: bool = Field(False, alias="hasBeneficiaries")
    beneficiaries: list[BeneficiarySchema] = Field(default_factory=list)

    # Compliance
    is_politically_exposed: bool = Field(False, alias="isPoliticallyExposed")
    exposed_position: Optional[str] = Field("", alias="exposedPosition")

    # Investment
    investment_amount: Decimal = Field(..., alias="investmentAmount", gt=0)
    comments: Optional[str] = ""
    terms_accepted: bool = Field(False, alias="termsAccepted")

    # Documents (data URLs)
    id_front_image: Optional[str] = Field(None, alias="idFrontImage")
    id_back_image: Optional[str] = Field(None, alias="idBackImage")
    payment_receipt_image: Optional[str] = Field(None, alias="paymentReceiptImage")
    utility_receipt_image: Optional[str] = Field(None, alias="utilityReceiptImage")
    signature_image: Optional[str] = Field(None, alias="signatureImage")

    origin: Optional[str] = None

    model_config = {"populate_by_name": True, "str_strip_whitespace": True, "extra": "ignore"}

    @field_validator("*", mode="before")
    @classmethod
    def _strip_markup(cls, v: Any) -> Any:
        return _sanitize(v)

    @field_validator("national_id")
    @classmethod
    def _check_national_id(cls, v: str) -> str:
        if not NATIONAL_ID_PATTERN.match(v):
            raise ValueError(NATIONAL_ID_FORMAT_MESSAGE)
        return v

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, v: str) -> str:
        if not PHONE_PATTERN.match(v):
            raise ValueError(PHONE_FORMAT_MESSAGE)
        return v

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError(EMAIL_FORMAT_MESSAGE)
        return v

    @field_validator("bank_name")
    @classmethod
    def _check_bank(cls, v: str) -> str:
        if v not in BANK_OPTIONS and v != OTHER_BANK:
            raise ValueError("Unknown bank; choose one from the list or 'Other'")
        return v

    @field_validator("investment_amount")
    @classmethod
    def _check_minimum(cls, v: Decimal, info: ValidationInfo) -> Decimal:
        minimum = (info.context or {}).get("min_investment_amount")
        if minimum is not None and v < Decimal(str(minimum)):
            raise ValueError(f"Minimum investment amount is {minimum}")
        return v

    @field_validator("terms_accepted")
    @classmethod
    def _check_terms(cls, v: bool) -> bool:
        if not v:
            raise ValueError("Terms and conditions must be accepted")
        return v

    @model_validator(mode="after")
    def _check_conditional_fields(self) -> "SubmissionPayload":
        if self.bank_name == OTHER_BANK and not self.custom_bank:
            raise ValueError("customBank is required when bankName is 'Other'")
        if self.bank_name != OTHER_BANK:
            self.custom_bank = ""

        if self.is_politically_exposed and not self.exposed_position:
            raise ValueError("exposedPosition is required for politically exposed persons")
        if not self.is_politically_exposed:
            self.exposed_position = ""

        if self.has_beneficiaries:
            if len(self.beneficiaries) != 2:
                raise ValueError("Exactly two beneficiaries are required")
            for i, b in enumerate(self.beneficiaries, start=1):
                if not b.name or not b.phone:
                    raise ValueError(f"Beneficiary {i} requires a name and a phone")
                if not PHONE_PATTERN.match(b.phone):
                    raise ValueError(f"Beneficiary {i} phone: {PHONE_FORMAT_MESSAGE}")
        else:
            self.beneficiaries = []

        missing = [
            kind.value for kind in DOCUMENT_ORDER if not getattr(self, DOCUMENT_FIELDS[kind])
        ]
        if missing:
            raise ValueError(f"Missing required documents: {', '.join(missing)}")
        return self

    @property
    def resolved_bank_name(self) -> str:
        return self.custom_bank if self.bank_name == OTHER_BANK else self.bank_name


class SubmissionResponse(BaseModel):
    success: bool
    message: str
    submission_id: Optional[str] = Field(None, alias="submissionId")

    model_config = {"populate_by_name": True}
