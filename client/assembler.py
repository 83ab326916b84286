"""
Final submit: gather field values and staged images, attach the shared secret,
and POST once to the ingestion endpoint.

The endpoint's response body is not relied upon; once the request has been
dispatched the submission is treated as sent.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

import httpx

from client.config import ClientSettings
from client.drafts import DraftStore
from client.notifier import NOTIFICATION_SUBJECT, Notifier, build_notification_body
from client.steps import FormStepController
from client.validation import FieldError
from schemas.document import DOCUMENT_ORDER, DocumentKind
from utils.case import to_camel_key

logger = logging.getLogger(__name__)


class IncompleteFormError(Exception):
    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))


class MissingImageError(Exception):
    def __init__(self, kinds: list[DocumentKind]):
        self.kinds = kinds
        super().__init__(f"Missing required images: {', '.join(k.value for k in kinds)}")


class SubmissionDispatchError(Exception):
    pass


@dataclass
class SubmissionOutcome:
    dispatched: bool
    status_code: Optional[int]
    notified: bool


_TEXT_FIELDS = (
    "fullName",
    "nationalId",
    "phone",
    "email",
    "bankName",
    "customBank",
    "accountNumber",
    "accountType",
    "exposedPosition",
    "comments",
)


def _image_field(kind: DocumentKind) -> str:
    return to_camel_key(f"{kind.value}_image")


class SubmissionAssembler:
    def __init__(
        self,
        settings: ClientSettings,
        drafts: DraftStore,
        notifier: Optional[Notifier] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.drafts = drafts
        self.notifier = notifier
        self.transport = transport

    def resolve_images(self, controller: FormStepController) -> dict[DocumentKind, str]:
        """In-memory image first, then the draft store; every slot must resolve."""
        images: dict[DocumentKind, str] = {}
        missing: list[DocumentKind] = []
        for kind in DOCUMENT_ORDER:
            staged = controller.images.get(kind)
            data_url = staged.data_url if staged else None
            if not data_url:
                draft = self.drafts.load(kind)
                data_url = draft[0] if draft else None
            if data_url:
                images[kind] = data_url
            else:
                missing.append(kind)
        if missing:
            raise MissingImageError(missing)
        return images

    def build_payload(self, controller: FormStepController) -> dict[str, Any]:
        errors = controller.validate_all(include_documents=False)
        if errors:
            raise IncompleteFormError(errors)
        images = self.resolve_images(controller)
        values = controller.values

        payload: dict[str, Any] = {name: values.get(name) or "" for name in _TEXT_FIELDS}
        has_beneficiaries = bool(values.get("hasBeneficiaries"))
        payload["hasBeneficiaries"] = has_beneficiaries
        payload["beneficiaries"] = [
            {
                "name": values.get(f"beneficiary{i}Name") or "",
                "phone": values.get(f"beneficiary{i}Phone") or "",
                "instagramHandle": values.get(f"beneficiary{i}Instagram") or "",
            }
            for i in (1, 2)
        ] if has_beneficiaries else []
        payload["isPoliticallyExposed"] = values.get("isPoliticallyExposed") is True
        payload["investmentAmount"] = str(Decimal(str(values.get("investmentAmount"))))
        payload["termsAccepted"] = values.get("termsAccepted") is True
        for kind, data_url in images.items():
            payload[_image_field(kind)] = data_url

        payload["secretToken"] = self.settings.secret_token
        payload["origin"] = self.settings.origin
        return payload

    async def submit(self, controller: FormStepController) -> SubmissionOutcome:
        if not controller.is_last_step:
            raise IncompleteFormError([FieldError("step", "Complete every step before submitting")])
        # Raises before any network call when the form is incomplete
        payload = self.build_payload(controller)

        async with httpx.AsyncClient(
            transport=self.transport, timeout=self.settings.request_timeout_seconds
        ) as client:
            try:
                response = await client.post(
                    self.settings.endpoint_url,
                    data={"formData": json.dumps(payload), "origin": self.settings.origin},
                    headers={"Origin": self.settings.origin},
                )
            except httpx.HTTPError as exc:
                raise SubmissionDispatchError(f"Could not reach the submission endpoint: {exc}") from exc
        logger.info("Submission dispatched (HTTP %s)", response.status_code)

        notified = await self._notify(controller.values)
        self.drafts.clear_all(DOCUMENT_ORDER)
        controller.reset()
        return SubmissionOutcome(dispatched=True, status_code=response.status_code, notified=notified)

    async def _notify(self, values: dict[str, Any]) -> bool:
        if self.notifier is None:
            return False
        try:
            await asyncio.to_thread(self.notifier.send, NOTIFICATION_SUBJECT, build_notification_body(values))
        except Exception:
            logger.exception("Notification e-mail failed; submission was already dispatched")
            return False
        return True
