"""
Submission ingestion pipeline.

Gates run strictly in order and each one short-circuits the rest:
lock -> origin -> rate limit -> parse -> secret -> validate -> persist.
The lock is released whatever happens after it was acquired.
"""
from __future__ import annotations

import asyncio
import hmac
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import Settings
from schemas.document import DOCUMENT_FIELDS, DOCUMENT_ORDER, DocumentKind, StoredDocumentResult
from schemas.submission import SubmissionPayload
from services.audit_log import AuditLog
from services.concurrency import IngestionLock
from services.document_store import DocumentStore
from services.errors import (
    ConcurrencyTimeoutError,
    IngestionError,
    InvalidTokenError,
    OriginDeniedError,
    PayloadMissingError,
    PersistenceError,
    StorageError,
    ValidationError,
)
from services.rate_limit import CounterStore, RateLimiter, client_fingerprint
from services.record_store import RecordStore, SubmissionRecord
from services.sheets import SheetStore

logger = logging.getLogger(__name__)

SECRET_FIELD = "secretToken"


@dataclass
class IngestionRequest:
    """Transport-independent view of one POST."""

    origin_header: Optional[str] = None
    form_origin: Optional[str] = None
    form_data: Optional[str] = None
    raw_body: Optional[str] = None
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class IngestionResult:
    submission_id: str
    row_index: int
    documents: dict[DocumentKind, Optional[StoredDocumentResult]] = field(default_factory=dict)

    @property
    def failed_documents(self) -> list[DocumentKind]:
        return [kind for kind, doc in self.documents.items() if doc is None]


def _peek_origin(raw: Optional[str]) -> Optional[str]:
    """Read a declared ``origin`` from an unparsed JSON body without failing on bad input."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    value = data.get("origin") if isinstance(data, dict) else None
    return value if isinstance(value, str) else None


def _describe_schema_errors(exc: SchemaValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = err.get("msg", "invalid").removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


class IngestionPipeline:
    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        counter_store: CounterStore,
        lock: Optional[IngestionLock] = None,
    ):
        self.settings = settings
        self.lock = lock or IngestionLock(settings.lock_timeout_seconds)
        self.rate_limiter = RateLimiter(
            counter_store, settings.rate_limit_max_requests, settings.rate_limit_window_seconds
        )
        sheets = SheetStore(session_factory)
        self.audit = AuditLog(sheets, settings.audit_sheet_name, enabled=settings.audit_enabled)
        self.documents = DocumentStore(settings, session_factory, self.audit)
        self.records = RecordStore(sheets, settings.sheet_name)

    async def ingest(self, request: IngestionRequest) -> IngestionResult:
        try:
            async with self.lock.hold():
                return await self._ingest(request)
        except ConcurrencyTimeoutError as exc:
            # Process log only: the audit sheet belongs to whoever holds the lock
            logger.warning("Request rejected (%s): %s", exc.audit_action, exc.detail)
            raise

    async def _ingest(self, request: IngestionRequest) -> IngestionResult:
        request_id = uuid.uuid4().hex[:12]
        client_id = client_fingerprint(request.client_ip, request.user_agent)
        await self.audit.record("request_received", details=f"request={request_id} client={client_id[:12]}")
        try:
            self._check_origin(request)
            await self.rate_limiter.hit(client_id)
            data = self._parse(request)
            self._verify_secret(data)
            payload = self._validate(data)
        except IngestionError as exc:
            logger.warning("Request %s rejected (%s): %s", request_id, type(exc).__name__, exc.detail)
            await self.audit.record(exc.audit_action, details=f"request={request_id} {exc.detail}")
            raise
        return await self._persist(payload)

    # ─── Gates ────────────────────────────────────

    def _check_origin(self, request: IngestionRequest) -> str:
        origin = request.origin_header or request.form_origin or _peek_origin(request.form_data or request.raw_body)
        if origin in self.settings.origin_list:
            return origin
        if not self.settings.origin_enforced:
            logger.warning("Origin %r not allow-listed; continuing (enforcement disabled)", origin)
            return origin or ""
        raise OriginDeniedError(f"origin not allowed: {origin}")

    def _parse(self, request: IngestionRequest) -> dict[str, Any]:
        raw = request.form_data or request.raw_body
        if not raw:
            raise PayloadMissingError("no data received")
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ValidationError(f"payload is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError("payload must be a JSON object")
        return data

    def _verify_secret(self, data: dict[str, Any]) -> None:
        # Removed before anything else can see or persist it
        supplied = data.pop(SECRET_FIELD, None)
        expected = self.settings.secret_token
        if not expected or not isinstance(supplied, str):
            raise InvalidTokenError("token missing or not configured")
        if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
            raise InvalidTokenError("token mismatch")

    def _validate(self, data: dict[str, Any]) -> SubmissionPayload:
        try:
            return SubmissionPayload.model_validate(
                data, context={"min_investment_amount": self.settings.min_investment_amount}
            )
        except SchemaValidationError as exc:
            raise ValidationError(_describe_schema_errors(exc)) from exc

    # ─── Persistence ──────────────────────────────

    async def _persist(self, payload: SubmissionPayload) -> IngestionResult:
        submission_id = uuid.uuid4().hex
        received_at = datetime.now(timezone.utc)
        timeout = self.settings.stage_timeout_seconds

        documents: dict[DocumentKind, Optional[StoredDocumentResult]] = {}
        for kind in DOCUMENT_ORDER:
            image = getattr(payload, DOCUMENT_FIELDS[kind])
            try:
                documents[kind] = await asyncio.wait_for(
                    self.documents.store(kind, image, submission_id, payload.full_name), timeout
                )
            except StorageError:
                # Already audited by the document store; keep the structured data
                documents[kind] = None
            except asyncio.TimeoutError:
                logger.warning("Storing %s for %s timed out after %ss", kind.value, submission_id, timeout)
                await self.audit.record("document_failed", submission_id, "", f"{kind.value}: timed out")
                documents[kind] = None

        record = SubmissionRecord.from_payload(
            payload,
            submission_id,
            received_at,
            {kind: doc.url if doc else "" for kind, doc in documents.items()},
        )
        try:
            _, created = await asyncio.wait_for(self.records.ensure_sheet(), timeout)
            if created:
                await self.audit.record("sheet_created", submission_id, "", self.records.sheet_name)
            row_index = await asyncio.wait_for(self.records.append_row(record.to_row()), timeout)
        except Exception as exc:
            logger.exception("Failed to append submission %s", submission_id)
            reason = "timed out" if isinstance(exc, asyncio.TimeoutError) else str(exc)
            await self.audit.record("persistence_failed", submission_id, "", reason)
            raise PersistenceError(reason) from exc

        await self.audit.record("row_appended", submission_id, "", f"row={row_index}")
        result = IngestionResult(submission_id=submission_id, row_index=row_index, documents=documents)
        if result.failed_documents:
            logger.warning(
                "Submission %s saved without %s",
                submission_id,
                ", ".join(k.value for k in result.failed_documents),
            )
        return result
