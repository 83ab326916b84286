from __future__ import annotations

import logging
from decimal import Decimal
from enum import IntEnum
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, NamedTuple, Optional, Union

from client.drafts import DraftStore
from client.image_compressor import DEFAULT_MAX_WIDTH, DEFAULT_QUALITY, compress_file
from client.validation import (
    FieldError,
    validate_banking,
    validate_beneficiaries,
    validate_investment,
    validate_personal,
)
from schemas.document import DocumentKind
from schemas.submission import OTHER_BANK
from utils.formatting import format_national_id, format_phone

logger = logging.getLogger(__name__)


class FormStep(IntEnum):
    PERSONAL = 1
    BANKING = 2
    BENEFICIARIES = 3
    INVESTMENT = 4


STEP_DOCUMENTS: dict[FormStep, tuple[DocumentKind, ...]] = {
    FormStep.PERSONAL: (DocumentKind.ID_FRONT, DocumentKind.ID_BACK),
    FormStep.BANKING: (),
    FormStep.BENEFICIARIES: (),
    FormStep.INVESTMENT: (
        DocumentKind.PAYMENT_RECEIPT,
        DocumentKind.UTILITY_RECEIPT,
        DocumentKind.SIGNATURE,
    ),
}

DOCUMENT_LABELS: dict[DocumentKind, str] = {
    DocumentKind.ID_FRONT: "Photo of the front of your ID",
    DocumentKind.ID_BACK: "Photo of the back of your ID",
    DocumentKind.PAYMENT_RECEIPT: "Proof of payment",
    DocumentKind.UTILITY_RECEIPT: "Utility bill receipt",
    DocumentKind.SIGNATURE: "Photo of your signature",
}

FIELD_FORMATTERS: dict[str, Callable[[str], str]] = {
    "nationalId": format_national_id,
    "phone": format_phone,
    "beneficiary1Phone": format_phone,
    "beneficiary2Phone": format_phone,
}


class StagedImage(NamedTuple):
    data_url: str
    file_name: str


class FormStepController:
    """
    Linear four-step form. ``advance`` only moves forward when the current step
    validates; ``retreat`` never validates. The step index is not persisted.
    """

    def __init__(
        self,
        drafts: DraftStore,
        min_investment_amount: Decimal = Decimal("1000"),
        max_image_width: int = DEFAULT_MAX_WIDTH,
        image_quality: float = DEFAULT_QUALITY,
    ):
        self.drafts = drafts
        self.min_investment_amount = min_investment_amount
        self.max_image_width = max_image_width
        self.image_quality = image_quality
        self.step = FormStep.PERSONAL
        self.values: dict[str, Any] = {}
        self.images: dict[DocumentKind, StagedImage] = {}
        self.errors: list[FieldError] = []
        self._rehydrate()

    def _rehydrate(self) -> None:
        for kind in DocumentKind:
            staged = self.drafts.load(kind)
            if staged:
                self.images[kind] = StagedImage(*staged)

    # ─── Fields ───────────────────────────────────

    def set_field(self, name: str, value: Any) -> Any:
        formatter = FIELD_FORMATTERS.get(name)
        if formatter and isinstance(value, str):
            value = formatter(value)
        self.values[name] = value

        if name == "bankName" and value != OTHER_BANK:
            self.values["customBank"] = ""
        if name == "isPoliticallyExposed" and value is not True:
            self.values["exposedPosition"] = ""
        return value

    # ─── Images ───────────────────────────────────

    def attach_image(
        self,
        kind: DocumentKind,
        source: Union[str, Path, BytesIO],
        file_name: Optional[str] = None,
    ) -> StagedImage:
        """Compress a user-selected image and stage it in memory and in the draft store."""
        data_url = compress_file(source, max_width=self.max_image_width, quality=self.image_quality)
        if file_name is None:
            file_name = Path(source).name if isinstance(source, (str, Path)) else "upload.jpg"
        return self.stage_image(kind, data_url, file_name)

    def stage_image(self, kind: DocumentKind, data_url: str, file_name: str) -> StagedImage:
        staged = StagedImage(data_url, file_name)
        self.images[kind] = staged
        if not self.drafts.save(kind, data_url, file_name):
            logger.info("Keeping %s only in memory for this session", kind.value)
        return staged

    def remove_image(self, kind: DocumentKind) -> None:
        self.images.pop(kind, None)
        self.drafts.clear(kind)

    # ─── Navigation ───────────────────────────────

    def validate_step(self, step: Optional[FormStep] = None, include_documents: bool = True) -> list[FieldError]:
        step = step or self.step
        if step is FormStep.PERSONAL:
            errors = validate_personal(self.values)
        elif step is FormStep.BANKING:
            errors = validate_banking(self.values)
        elif step is FormStep.BENEFICIARIES:
            errors = validate_beneficiaries(self.values)
        else:
            errors = validate_investment(self.values, self.min_investment_amount)
        for kind in STEP_DOCUMENTS[step] if include_documents else ():
            if kind not in self.images:
                errors.append(FieldError(kind.value, f"{DOCUMENT_LABELS[kind]} is required"))
        return errors

    def validate_all(self, include_documents: bool = True) -> list[FieldError]:
        errors: list[FieldError] = []
        for step in FormStep:
            errors.extend(self.validate_step(step, include_documents))
        return errors

    def advance(self) -> bool:
        self.errors = self.validate_step()
        if self.errors or self.is_last_step:
            return False
        self.step = FormStep(self.step + 1)
        return True

    def retreat(self) -> None:
        self.errors = []
        if self.step > FormStep.PERSONAL:
            self.step = FormStep(self.step - 1)

    @property
    def is_last_step(self) -> bool:
        return self.step == max(FormStep)

    @property
    def progress(self) -> float:
        return self.step / len(FormStep) * 100

    @property
    def progress_label(self) -> str:
        return f"Step {int(self.step)} of {len(FormStep)}"

    def reset(self) -> None:
        self.step = FormStep.PERSONAL
        self.values = {}
        self.images = {}
        self.errors = []
