"""
HTTP surface: submission endpoint status codes, CORS answers and document links.
Run from repo root: python -m pytest tests/test_api.py -v
"""
import asyncio
import json
import unittest

from fastapi.testclient import TestClient

from api.cors import FALLBACK_ORIGIN
from main import create_app
from services.rate_limit import MemoryCounterStore
from services.record_store import RECORD_COLUMNS
from services.sheets import SheetStore
from tests.factories import TEST_ORIGIN, make_settings, memory_engine, temp_storage, valid_payload

SUBMISSIONS = "/api/submissions"


class ApiTestCase(unittest.TestCase):
    settings_overrides: dict = {}

    def setUp(self):
        self._tmp = temp_storage()
        self.settings = make_settings(self._tmp.name, **self.settings_overrides)
        self.app = create_app(self.settings, bind=memory_engine(), counter_store=MemoryCounterStore())
        self.client = TestClient(self.app)
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)
        self._tmp.cleanup()

    def _submit(self, payload=None, origin=TEST_ORIGIN, headers=None):
        return self.client.post(
            SUBMISSIONS,
            data={"formData": json.dumps(payload or valid_payload()), "origin": origin},
            headers={"Origin": origin, **(headers or {})},
        )

    def _rows(self, name="Investors"):
        sheets = SheetStore(self.app.state.session_factory)
        return self.client.portal.call(sheets.read_rows, name)


class TestSubmissionEndpoint(ApiTestCase):
    def test_successful_submission(self):
        response = self._submit()
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Data saved successfully")
        self.assertTrue(body["submissionId"])
        self.assertEqual(response.headers.get("access-control-allow-origin"), TEST_ORIGIN)

        rows = self._rows()
        self.assertEqual(len(rows), 2)
        self.assertEqual(dict(zip(RECORD_COLUMNS, rows[1]))["submissionId"], body["submissionId"])

    def test_plain_json_body(self):
        response = self.client.post(
            SUBMISSIONS,
            content=json.dumps(valid_payload()),
            headers={"Origin": TEST_ORIGIN, "Content-Type": "text/plain"},
        )
        self.assertEqual(response.status_code, 200)

    def test_wrong_secret(self):
        response = self._submit(valid_payload(secretToken="nope"))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"success": False, "message": "Invalid token, access denied"})
        self.assertEqual(self._rows(), [])

    def test_unknown_origin(self):
        response = self._submit(origin="https://evil.example")
        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.json()["success"])

    def test_empty_body(self):
        response = self.client.post(SUBMISSIONS, headers={"Origin": TEST_ORIGIN})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "No data received")

    def test_invalid_payload_message_is_generic(self):
        response = self._submit(valid_payload(investmentAmount="500"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"success": False, "message": "Invalid submission data"})

    def test_eleventh_request_rate_limited(self):
        for _ in range(10):
            self.assertEqual(self._submit().status_code, 200)
        response = self._submit()
        self.assertEqual(response.status_code, 429)
        self.assertEqual(len(self._rows()), 11)


class TestClientIdentity(ApiTestCase):
    settings_overrides = {"rate_limit_max_requests": 2}

    def test_forwarded_for_header_does_not_reset_counter(self):
        """The limit follows the connection peer, not a client-supplied X-Forwarded-For."""
        statuses = [
            self._submit(headers={"X-Forwarded-For": f"10.0.0.{i}"}).status_code
            for i in range(4)
        ]
        self.assertEqual(statuses, [200, 200, 429, 429])


class TestStalledPersistence(ApiTestCase):
    settings_overrides = {"stage_timeout_seconds": 0.2}

    def test_stalled_row_append_returns_500_and_releases_lock(self):
        pipeline = self.app.state.pipeline

        async def stalled_append(row):
            await asyncio.sleep(5)

        pipeline.records.append_row = stalled_append
        response = self._submit()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "message": "Error saving data"})
        self.assertEqual(response.headers.get("access-control-allow-origin"), TEST_ORIGIN)
        self.assertFalse(pipeline.lock.locked)
        self.assertIn("persistence_failed", [row[1] for row in self._rows("Logs")[1:]])


class TestPreflightAndInfo(ApiTestCase):
    def test_preflight_allowed_origin(self):
        response = self.client.options(
            SUBMISSIONS, headers={"Origin": TEST_ORIGIN, "Access-Control-Request-Method": "POST"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], TEST_ORIGIN)
        self.assertIn("POST", response.headers["access-control-allow-methods"])
        self.assertEqual(response.headers["access-control-max-age"], "86400")

    def test_preflight_unknown_origin_gets_generic_answer(self):
        response = self.client.options(
            SUBMISSIONS, headers={"Origin": "https://evil.example", "Access-Control-Request-Method": "POST"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], FALLBACK_ORIGIN)

    def test_plain_options(self):
        response = self.client.options(SUBMISSIONS)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "success"})
        self.assertEqual(response.headers["access-control-allow-origin"], FALLBACK_ORIGIN)

    def test_info_page(self):
        response = self.client.get(SUBMISSIONS)
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/html", response.headers["content-type"])
        self.assertIn("Investor onboarding", response.text)

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})


class TestDocumentLinks(ApiTestCase):
    def test_stored_document_served_by_link(self):
        self.assertEqual(self._submit().status_code, 200)
        row = dict(zip(RECORD_COLUMNS, self._rows()[1]))
        url = row["idFrontLocator"]
        self.assertTrue(url.startswith("http://testserver/api/documents/"))

        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "image/png")
        self.assertTrue(response.content.startswith(b"\x89PNG"))

    def test_unknown_locator(self):
        self.assertEqual(self.client.get("/api/documents/not-a-real-locator").status_code, 404)


if __name__ == "__main__":
    unittest.main()
