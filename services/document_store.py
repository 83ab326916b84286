"""
Stores base64 data-URL images in a folder hierarchy:
<storage_root>/<root collection>/<submission folder>/<file>
Folder and document metadata live in the database; bytes live on disk.
"""
from __future__ import annotations

import base64
import binascii
import logging
import re
import secrets
import uuid
from pathlib import Path
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import Settings
from models import StorageFolder, StoredDocument
from schemas.document import DocumentKind, StoredDocumentResult
from services.audit_log import AuditLog
from services.errors import DocumentDecodeError, DocumentSizeError, DocumentWriteError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
_DATA_URL_PREFIX = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[\w-]+=[\w.-]+)*;base64,", re.IGNORECASE)
_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/heic": "heic",
}
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9]+")


def decode_data_url(data: str) -> tuple[bytes, str]:
    """Return (raw bytes, MIME type); a missing prefix means plain base64 of a generic image."""
    mime = DEFAULT_MIME_TYPE
    match = _DATA_URL_PREFIX.match(data)
    if match:
        mime = (match.group("mime") or DEFAULT_MIME_TYPE).lower()
        data = data[match.end():]
    try:
        content = base64.b64decode("".join(data.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DocumentDecodeError(f"invalid base64 content: {exc}") from exc
    return content, mime


def submission_folder_name(submission_id: str) -> str:
    return f"submission-{submission_id}"


def _safe_name(value: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", value).strip("_")[:60] or "investor"


class DocumentStore:
    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        audit: AuditLog,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.audit = audit
        self.storage_root = Path(settings.storage_root)

    def document_url(self, locator: str) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}/api/documents/{locator}"

    async def store(
        self,
        kind: DocumentKind,
        base64_image: str,
        submission_id: str,
        submitter_name: str,
    ) -> StoredDocumentResult:
        """Decode, validate and persist one image. Every attempt leaves one audit entry."""
        try:
            result = await self._store(kind, base64_image, submission_id, submitter_name)
        except StorageError as exc:
            logger.warning("Document %s for %s failed: %s", kind.value, submission_id, exc.detail)
            await self.audit.record("document_failed", submission_id, "", f"{kind.value}: {exc.detail}")
            raise
        await self.audit.record(
            "document_stored", submission_id, result.locator, f"{kind.value}: {result.byte_size} bytes {result.mime_type}"
        )
        return result

    async def _store(
        self,
        kind: DocumentKind,
        base64_image: str,
        submission_id: str,
        submitter_name: str,
    ) -> StoredDocumentResult:
        content, mime_type = decode_data_url(base64_image or "")
        size = len(content)
        if size < self.settings.min_image_bytes:
            raise DocumentSizeError(f"{size} bytes is below the minimum of {self.settings.min_image_bytes}")
        if size > self.settings.max_image_bytes:
            raise DocumentSizeError(f"{size} bytes exceeds the maximum of {self.settings.max_image_bytes}")

        extension = _EXTENSIONS.get(mime_type, "img")
        file_name = f"{kind.value}_{_safe_name(submitter_name)}.{extension}"
        locator = secrets.token_urlsafe(24)

        try:
            await self._write(kind, submission_id, file_name, mime_type, content, locator)
        except StorageError:
            raise
        except Exception as exc:
            # Folder lookup or metadata failures from the database
            raise DocumentWriteError(f"could not record {file_name}: {exc}") from exc

        return StoredDocumentResult(
            kind=kind,
            locator=locator,
            url=self.document_url(locator),
            mime_type=mime_type,
            byte_size=size,
        )

    async def _write(
        self,
        kind: DocumentKind,
        submission_id: str,
        file_name: str,
        mime_type: str,
        content: bytes,
        locator: str,
    ) -> None:
        async with self.session_factory() as session:
            root = await self._resolve_folder(session, self.settings.root_folder_name, None)
            folder = await self._resolve_folder(session, submission_folder_name(submission_id), root.id)
            path = self.storage_root / root.id / folder.id / file_name
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(content)
            except OSError as exc:
                await session.rollback()
                raise DocumentWriteError(f"could not write {file_name}: {exc}") from exc
            session.add(
                StoredDocument(
                    id=f"doc-{uuid.uuid4().hex[:12]}",
                    submission_id=submission_id,
                    kind=kind.value,
                    folder_id=folder.id,
                    file_name=file_name,
                    mime_type=mime_type,
                    byte_size=len(content),
                    locator=locator,
                )
            )
            try:
                await session.commit()
            except Exception:
                path.unlink(missing_ok=True)
                raise

    async def _resolve_folder(
        self, session: AsyncSession, name: str, parent_id: Optional[str]
    ) -> StorageFolder:
        """Fetch a folder by (parent, name) or create it."""
        stmt = select(StorageFolder).where(StorageFolder.name == name)
        if parent_id is None:
            stmt = stmt.where(StorageFolder.parent_id.is_(None))
        else:
            stmt = stmt.where(StorageFolder.parent_id == parent_id)
        folder = await session.scalar(stmt)
        if folder is None:
            folder = StorageFolder(id=f"fld-{uuid.uuid4().hex[:12]}", name=name, parent_id=parent_id)
            session.add(folder)
            await session.flush()
        return folder

    async def open(self, session: AsyncSession, locator: str) -> Optional[tuple[StoredDocument, Path]]:
        """Resolve a locator to its metadata and on-disk path, or None if unknown."""
        doc = await session.scalar(select(StoredDocument).where(StoredDocument.locator == locator))
        if doc is None:
            return None
        folder = await session.get(StorageFolder, doc.folder_id)
        path = self.storage_root / (folder.parent_id or "") / folder.id / doc.file_name
        return doc, path
