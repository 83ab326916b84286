"""
Sheet store, record layout, audit trail and document storage against an in-memory database.
Run from repo root: python -m pytest tests/test_stores.py -v
"""
import base64
import unittest
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import func, select

from database import build_session_factory, init_db
from models import StorageFolder, StoredDocument
from schemas.document import DOCUMENT_ORDER, DocumentKind
from schemas.submission import SubmissionPayload
from services.audit_log import AUDIT_COLUMNS, AuditLog
from services.document_store import DocumentStore, decode_data_url
from services.errors import DocumentDecodeError, DocumentSizeError, DocumentWriteError
from services.record_store import RECORD_COLUMNS, RecordStore, SubmissionRecord
from services.sheets import SheetStore
from tests.factories import make_settings, memory_engine, png_data_url, temp_storage, valid_payload


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = memory_engine()
        await init_db(self.engine)
        self.session_factory = build_session_factory(self.engine)
        self.sheets = SheetStore(self.session_factory)

    async def asyncTearDown(self):
        await self.engine.dispose()


class TestSheetStore(DatabaseTestCase):
    async def test_ensure_sheet_is_idempotent(self):
        sheet_id, created = await self.sheets.ensure_sheet("Investors", ["a", "b"])
        again_id, created_again = await self.sheets.ensure_sheet("Investors", ["a", "b"])
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(sheet_id, again_id)
        self.assertEqual(await self.sheets.count_sheets("Investors"), 1)
        self.assertEqual(await self.sheets.read_rows("Investors"), [["a", "b"]])

    async def test_rows_append_after_header(self):
        sheet_id, _ = await self.sheets.ensure_sheet("Investors", ["a", "b"])
        self.assertEqual(await self.sheets.append_row(sheet_id, ["1", "2"]), 2)
        self.assertEqual(await self.sheets.append_row(sheet_id, ["3", "4"]), 3)
        rows = await self.sheets.read_rows("Investors")
        self.assertEqual(rows, [["a", "b"], ["1", "2"], ["3", "4"]])

    async def test_unknown_sheet_reads_empty(self):
        self.assertEqual(await self.sheets.read_rows("Nope"), [])


class TestSubmissionRecord(unittest.TestCase):
    def _payload(self, **overrides):
        return SubmissionPayload.model_validate(valid_payload(**overrides))

    def test_row_follows_column_order(self):
        payload = self._payload(
            hasBeneficiaries=True,
            beneficiaries=[
                {"name": "Luis", "phone": "7111-2222", "instagramHandle": "@luis"},
                {"name": "Eva", "phone": "7333-4444"},
            ],
            isPoliticallyExposed=True,
            exposedPosition="Mayor",
        )
        locators = {kind: f"http://testserver/api/documents/{kind.value}" for kind in DOCUMENT_ORDER}
        received = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        row = SubmissionRecord.from_payload(payload, "abc123", received, locators).to_row()
        by_column = dict(zip(RECORD_COLUMNS, row))

        self.assertEqual(len(row), len(RECORD_COLUMNS))
        self.assertEqual(row[0], received.isoformat())
        self.assertEqual(row[1], "abc123")
        self.assertEqual(by_column["beneficiaryStatus"], "With beneficiaries")
        self.assertEqual(by_column["beneficiary1Instagram"], "@luis")
        self.assertEqual(by_column["beneficiary2Name"], "Eva")
        self.assertEqual(by_column["isPoliticallyExposed"], "Yes")
        self.assertEqual(by_column["exposedPosition"], "Mayor")
        self.assertEqual(by_column["investmentAmount"], "2500.00")
        self.assertTrue(by_column["utilityReceiptLocator"].endswith("/utility_receipt"))
        self.assertTrue(by_column["paymentReceiptLocator"].endswith("/payment_receipt"))

    def test_missing_locator_left_blank(self):
        locators = {kind: "" for kind in DOCUMENT_ORDER}
        locators[DocumentKind.ID_FRONT] = "http://x/1"
        row = SubmissionRecord.from_payload(self._payload(), "id", datetime.now(timezone.utc), locators).to_row()
        by_column = dict(zip(RECORD_COLUMNS, row))
        self.assertEqual(by_column["idFrontLocator"], "http://x/1")
        self.assertEqual(by_column["signatureLocator"], "")
        self.assertEqual(by_column["beneficiaryStatus"], "No beneficiaries")
        self.assertEqual(by_column["beneficiary1Name"], "")


class TestRecordStore(DatabaseTestCase):
    async def test_header_written_once(self):
        records = RecordStore(self.sheets, "Investors")
        await records.append_row(["x"] * len(RECORD_COLUMNS))
        await records.append_row(["y"] * len(RECORD_COLUMNS))
        rows = await self.sheets.read_rows("Investors")
        self.assertEqual(rows[0], list(RECORD_COLUMNS))
        self.assertEqual(len(rows), 3)


class FailingSheets:
    async def ensure_sheet(self, name, header):
        raise RuntimeError("sheet backend down")


class TestAuditLog(DatabaseTestCase):
    async def test_events_written_to_own_sheet(self):
        audit = AuditLog(self.sheets, "Logs")
        await audit.record("request_received", details="hello")
        await audit.record("document_stored", "sub-1", "loc-1", "id_front")
        rows = await self.sheets.read_rows("Logs")
        self.assertEqual(rows[0], list(AUDIT_COLUMNS))
        self.assertEqual([r[1] for r in rows[1:]], ["request_received", "document_stored"])
        self.assertEqual(rows[2][2:], ["sub-1", "loc-1", "id_front"])

    async def test_disabled_audit_writes_nothing(self):
        await AuditLog(self.sheets, "Logs", enabled=False).record("request_received")
        self.assertEqual(await self.sheets.read_rows("Logs"), [])

    async def test_audit_failure_is_not_raised(self):
        audit = AuditLog(FailingSheets(), "Logs")
        with self.assertLogs("services.audit_log", level="ERROR"):
            await audit.record("request_received")


class TestDecodeDataUrl(unittest.TestCase):
    def test_prefix_gives_mime_type(self):
        content, mime = decode_data_url(png_data_url())
        self.assertEqual(mime, "image/png")
        self.assertTrue(content.startswith(b"\x89PNG"))

    def test_bare_base64_defaults_to_jpeg(self):
        _, mime = decode_data_url(png_data_url().split(",", 1)[1])
        self.assertEqual(mime, "image/jpeg")

    def test_corrupt_content(self):
        with self.assertRaises(DocumentDecodeError):
            decode_data_url("data:image/jpeg;base64,@@not-base64@@")


class TestDocumentStore(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self._tmp = temp_storage()
        self.settings = make_settings(self._tmp.name)
        self.audit = AuditLog(self.sheets, "Logs")
        self.store = DocumentStore(self.settings, self.session_factory, self.audit)

    async def asyncTearDown(self):
        await super().asyncTearDown()
        self._tmp.cleanup()

    async def _count(self, model):
        async with self.session_factory() as session:
            return await session.scalar(select(func.count()).select_from(model))

    async def test_store_writes_file_and_metadata(self):
        result = await self.store.store(DocumentKind.ID_FRONT, png_data_url(), "sub1", "Ana López")
        self.assertEqual(result.mime_type, "image/png")
        self.assertEqual(result.url, f"http://testserver/api/documents/{result.locator}")

        async with self.session_factory() as session:
            doc, path = await self.store.open(session, result.locator)
        self.assertEqual(doc.file_name, "id_front_Ana_L_pez.png")
        self.assertEqual(doc.submission_id, "sub1")
        self.assertTrue(path.is_file())
        self.assertTrue(path.is_relative_to(Path(self._tmp.name)))
        self.assertEqual(path.stat().st_size, result.byte_size)

    async def test_submission_folder_reused(self):
        await self.store.store(DocumentKind.ID_FRONT, png_data_url(), "sub1", "Ana")
        await self.store.store(DocumentKind.ID_BACK, png_data_url(), "sub1", "Ana")
        self.assertEqual(await self._count(StorageFolder), 2)
        await self.store.store(DocumentKind.ID_FRONT, png_data_url(), "sub2", "Luis")
        self.assertEqual(await self._count(StorageFolder), 3)
        self.assertEqual(await self._count(StoredDocument), 3)

    async def test_failures_are_audited_and_raised(self):
        with self.assertRaises(DocumentDecodeError):
            await self.store.store(DocumentKind.SIGNATURE, "data:image/png;base64,!!!", "sub1", "Ana")
        with self.assertRaises(DocumentSizeError):
            await self.store.store(DocumentKind.SIGNATURE, "data:image/png;base64,AAAA", "sub1", "Ana")
        rows = await self.sheets.read_rows("Logs")
        self.assertEqual([r[1] for r in rows[1:]], ["document_failed", "document_failed"])
        self.assertEqual(await self._count(StoredDocument), 0)

    async def test_oversized_image_rejected(self):
        store = DocumentStore(make_settings(self._tmp.name, max_image_bytes=500), self.session_factory, self.audit)
        oversized = "data:image/png;base64," + base64.b64encode(b"\x00" * 600).decode("ascii")
        with self.assertRaises(DocumentSizeError) as ctx:
            await store.store(DocumentKind.ID_FRONT, oversized, "sub1", "Ana")
        self.assertIn("exceeds the maximum of 500", ctx.exception.detail)
        rows = await self.sheets.read_rows("Logs")
        self.assertEqual(rows[1][1], "document_failed")
        self.assertEqual(await self._count(StoredDocument), 0)

    async def test_database_failure_becomes_write_error(self):
        """Folder lookup against a database without tables is a document-level failure."""
        bare_engine = memory_engine()
        store = DocumentStore(self.settings, build_session_factory(bare_engine), self.audit)
        try:
            with self.assertRaises(DocumentWriteError):
                await store.store(DocumentKind.ID_FRONT, png_data_url(), "sub1", "Ana")
        finally:
            await bare_engine.dispose()
        rows = await self.sheets.read_rows("Logs")
        self.assertEqual([r[1] for r in rows[1:]], ["document_failed"])

    async def test_unknown_locator(self):
        async with self.session_factory() as session:
            self.assertIsNone(await self.store.open(session, "missing"))


if __name__ == "__main__":
    unittest.main()
