from __future__ import annotations

from django.test import SimpleTestCase
from rest_framework.exceptions import NotAuthenticated
from rest_framework.exceptions import ValidationError as DrfValidationError

from config.exception_handler import custom_exception_handler
from integrations_github.releases import GitHubApiError, GitHubNotReachable
from proxy_core.manager import CoreNotConfigured, CoreStartError
from scheduler.errors import ScheduleConfigurationError, SchedulerClosedError


class _DummyView:
    pass


class ExceptionHandlerTests(SimpleTestCase):
    def _handle(self, exc: Exception):
        response = custom_exception_handler(exc, {"view": _DummyView()})
        self.assertIsNotNone(response)
        return response

    def test_drf_validation_error_includes_envelope(self):
        response = self._handle(DrfValidationError({"enabled": ["This field is required."]}))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"]["status"], "validation_error")
        self.assertEqual(response.data["error"]["message"], "This field is required.")
        self.assertIn("enabled", response.data["error"]["details"])

    def test_not_authenticated_maps_to_unauthorized(self):
        response = self._handle(NotAuthenticated())
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["error"]["status"], "unauthorized")

    def test_gateway_not_configured_maps_to_503(self):
        response = self._handle(CoreNotConfigured("missing config"))
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["error"]["status"], "service_unavailable")
        self.assertEqual(response.data["error"]["gateway"], "Proxy core")
        self.assertEqual(response.data["error"]["message"], "missing config")

    def test_gateway_not_reachable_maps_to_503(self):
        response = self._handle(GitHubNotReachable("Timed out."))
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["error"]["gateway"], "GitHub")
        self.assertEqual(response.data["error"]["error"], "Timed out.")

    def test_gateway_operation_error_includes_operation(self):
        response = self._handle(CoreStartError("process exited with code 1 right after start"))
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.data["error"]["status"], "gateway_error")
        self.assertEqual(response.data["error"]["operation"], "start")
        self.assertIn("exited with code 1", response.data["error"]["message"])

    def test_gateway_api_error_maps_to_502(self):
        response = self._handle(GitHubApiError("latest release lookup for a/b", 404, "Not Found"))
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.data["error"]["operation"], "latest release lookup for a/b")

    def test_schedule_configuration_error_maps_to_503(self):
        response = self._handle(ScheduleConfigurationError("Invalid cron expression: 'x'"))
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["error"]["status"], "configuration_error")

    def test_scheduler_closed_maps_to_conflict(self):
        response = self._handle(SchedulerClosedError("Scheduler has been shut down."))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["error"]["status"], "conflict")

    def test_unhandled_exception_returns_none(self):
        with self.assertLogs("config.exception_handler", level="ERROR"):
            self.assertIsNone(custom_exception_handler(RuntimeError("boom"), {"view": _DummyView()}))
