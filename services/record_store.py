from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Optional

from schemas.document import DocumentKind
from schemas.submission import SubmissionPayload
from services.sheets import SheetStore
from utils.case import to_camel_key

logger = logging.getLogger(__name__)

# Column order is part of the sheet contract; never derive it from payload key order.
RECORD_COLUMNS: tuple[str, ...] = (
    "timestamp",
    "submissionId",
    "fullName",
    "nationalId",
    "phone",
    "email",
    "bankName",
    "accountNumber",
    "accountType",
    "beneficiaryStatus",
    "beneficiary1Name",
    "beneficiary1Phone",
    "beneficiary1Instagram",
    "beneficiary2Name",
    "beneficiary2Phone",
    "beneficiary2Instagram",
    "investmentAmount",
    "comments",
    "isPoliticallyExposed",
    "exposedPosition",
    "utilityReceiptLocator",
    "signatureLocator",
    "idFrontLocator",
    "idBackLocator",
    "paymentReceiptLocator",
)


@dataclass
class SubmissionRecord:
    timestamp: str
    submission_id: str
    full_name: str
    national_id: str
    phone: str
    email: str
    bank_name: str
    account_number: str
    account_type: str
    beneficiary_status: str
    beneficiary1_name: str = ""
    beneficiary1_phone: str = ""
    beneficiary1_instagram: str = ""
    beneficiary2_name: str = ""
    beneficiary2_phone: str = ""
    beneficiary2_instagram: str = ""
    investment_amount: str = ""
    comments: str = ""
    is_politically_exposed: str = "No"
    exposed_position: str = ""
    utility_receipt_locator: str = ""
    signature_locator: str = ""
    id_front_locator: str = ""
    id_back_locator: str = ""
    payment_receipt_locator: str = ""

    @classmethod
    def from_payload(
        cls,
        payload: SubmissionPayload,
        submission_id: str,
        received_at: datetime,
        locators: dict[DocumentKind, Optional[str]],
    ) -> "SubmissionRecord":
        record = cls(
            timestamp=received_at.isoformat(),
            submission_id=submission_id,
            full_name=payload.full_name,
            national_id=payload.national_id,
            phone=payload.phone,
            email=payload.email,
            bank_name=payload.resolved_bank_name,
            account_number=payload.account_number,
            account_type=payload.account_type,
            beneficiary_status="With beneficiaries" if payload.has_beneficiaries else "No beneficiaries",
            investment_amount=str(payload.investment_amount),
            comments=payload.comments or "",
            is_politically_exposed="Yes" if payload.is_politically_exposed else "No",
            exposed_position=payload.exposed_position or "",
        )
        for i, b in enumerate(payload.beneficiaries[:2], start=1):
            setattr(record, f"beneficiary{i}_name", b.name)
            setattr(record, f"beneficiary{i}_phone", b.phone)
            setattr(record, f"beneficiary{i}_instagram", b.instagram_handle or "")
        for kind, locator in locators.items():
            setattr(record, f"{kind.value}_locator", locator or "")
        return record

    def to_row(self) -> list[str]:
        by_column = {to_camel_key(f.name): getattr(self, f.name) for f in fields(self)}
        return [by_column[column] for column in RECORD_COLUMNS]


class RecordStore:
    def __init__(self, sheets: SheetStore, sheet_name: str):
        self.sheets = sheets
        self.sheet_name = sheet_name

    async def ensure_sheet(self) -> tuple[int, bool]:
        sheet_id, created = await self.sheets.ensure_sheet(self.sheet_name, RECORD_COLUMNS)
        if created:
            logger.info("Created sheet %r with header row", self.sheet_name)
        return sheet_id, created

    async def append_row(self, row: list[str]) -> int:
        sheet_id, _ = await self.ensure_sheet()
        return await self.sheets.append_row(sheet_id, row)
