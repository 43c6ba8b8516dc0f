"""
Tests for the Telegram notification handler.
"""

import tempfile
from pathlib import Path

import httpx
from django.test import SimpleTestCase

from notifications.handlers.base import NotificationResult
from notifications.handlers.telegram import TelegramHandler

CONFIG = {"bot_token": "123:abc", "chat_id": "42", "api_url": "https://telegram.test"}


class TestTelegramHandler(SimpleTestCase):
    """Tests for TelegramHandler."""

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.path = Path(tmp.name) / "panel.db"
        self.path.write_bytes(b"sqlite-bytes")

    def _handler(self, handler) -> TelegramHandler:
        return TelegramHandler(transport=httpx.MockTransport(handler))

    def test_validate_config_valid(self):
        self.assertEqual(TelegramHandler().validate_config(CONFIG), [])

    def test_validate_config_errors(self):
        errors = TelegramHandler().validate_config({"bot_token": "no-colon"})
        self.assertIn("Bot token must look like '<id>:<secret>'", errors)
        self.assertIn("Chat ID is required", errors)
        self.assertIn("Bot token is required", TelegramHandler().validate_config({"chat_id": "1"}))

    def test_send_document_uploads_file(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append((str(request.url), request.read()))
            return httpx.Response(200, json={"ok": True})

        result = self._handler(handler).send_document(CONFIG, self.path, caption="Panel backup")

        self.assertTrue(result.success)
        url, body = bodies[0]
        self.assertTrue(url.endswith("/sendDocument"))
        self.assertIn(b'name="document"; filename="panel.db"', body)
        self.assertIn(b"sqlite-bytes", body)
        self.assertIn(b"Panel backup", body)

    def test_send_document_missing_file(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        result = self._handler(handler).send_document(CONFIG, "/nonexistent/panel.db")

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "FILE_ERROR")

    def test_error_mapping(self):
        cases = [
            (401, "UNAUTHORIZED"),
            (400, "BAD_REQUEST"),
            (403, "FORBIDDEN"),
            (429, "RATE_LIMITED"),
            (500, "API_ERROR"),
        ]
        for status_code, code in cases:
            with self.subTest(status_code=status_code):

                def handler(request: httpx.Request, status_code=status_code) -> httpx.Response:
                    return httpx.Response(status_code, json={"ok": False, "description": "nope"})

                result = self._handler(handler).send_document(CONFIG, self.path)
                self.assertFalse(result.success)
                self.assertEqual(result.error_code, code)

    def test_timeout_and_network_errors(self):
        def timeout(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("slow", request=request)

        def refused(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        self.assertEqual(self._handler(timeout).send_document(CONFIG, self.path).error_code, "TIMEOUT")
        self.assertEqual(self._handler(refused).send_document(CONFIG, self.path).error_code, "NETWORK_ERROR")


class TestNotificationResult(SimpleTestCase):
    def test_ok_and_error(self):
        self.assertTrue(NotificationResult.ok().success)
        result = NotificationResult.error("bad", code="X")
        self.assertEqual(result.as_dict(), {"success": False, "message": "bad", "error_code": "X"})

