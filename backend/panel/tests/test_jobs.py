from __future__ import annotations

from unittest.mock import MagicMock

from django.test import SimpleTestCase

from integrations_github.releases import GitHubApiError, GitHubNotReachable, UpdateCheckResult
from panel.jobs import CoreRestartJob, UpdateCheckJob
from proxy_core.manager import CoreNotConfigured, CoreStartError


class UpdateCheckJobTests(SimpleTestCase):
    def _job(self, registry) -> UpdateCheckJob:
        return UpdateCheckJob(registry=registry, owner="AghayeCoder", project="tx-ui", current_version="1.2.0")

    def test_logs_available_update_with_download_location(self):
        registry = MagicMock()
        registry.check_for_update.return_value = UpdateCheckResult(
            update_available=True,
            current_version="1.2.0",
            latest_version="2.0.0",
            download_url="https://dl.test/tx-ui-linux-amd64.tar.gz",
        )

        with self.assertLogs("panel.jobs", level="INFO") as logs:
            self._job(registry).run()

        registry.check_for_update.assert_called_once_with(
            owner="AghayeCoder", project="tx-ui", current_version="1.2.0"
        )
        self.assertEqual(len(logs.records), 1)
        self.assertIn("Update available", logs.output[0])
        self.assertIn("2.0.0", logs.output[0])
        self.assertIn("https://dl.test/tx-ui-linux-amd64.tar.gz", logs.output[0])

    def test_logs_up_to_date(self):
        registry = MagicMock()
        registry.check_for_update.return_value = UpdateCheckResult(
            update_available=False, current_version="1.2.0", latest_version="v1.2.0"
        )

        with self.assertLogs("panel.jobs", level="INFO") as logs:
            self._job(registry).run()

        self.assertEqual(logs.records[0].levelname, "INFO")
        self.assertIn("up to date", logs.output[0])

    def test_registry_failure_is_logged_not_raised(self):
        for exc in [GitHubNotReachable("Timed out."), GitHubApiError("latest release lookup", 500, "oops")]:
            with self.subTest(exc=type(exc).__name__):
                registry = MagicMock()
                registry.check_for_update.side_effect = exc

                with self.assertLogs("panel.jobs", level="ERROR") as logs:
                    self._job(registry).run()

                registry.check_for_update.assert_called_once()
                self.assertIn("Error checking for update", logs.output[0])
                self.assertIn(str(exc), logs.output[0])

    def test_unexpected_errors_propagate_to_the_scheduler(self):
        registry = MagicMock()
        registry.check_for_update.side_effect = RuntimeError("bug")

        with self.assertRaises(RuntimeError):
            self._job(registry).run()


class CoreRestartJobTests(SimpleTestCase):
    def test_restart_success(self):
        supervisor = MagicMock()
        supervisor.restart.return_value = True

        with self.assertLogs("panel.jobs", level="INFO") as logs:
            CoreRestartJob(supervisor=supervisor).run()

        supervisor.restart.assert_called_once_with(force=True)
        self.assertIn("Restart proxy core success", logs.output[0])

    def test_restart_respects_force_flag(self):
        supervisor = MagicMock()
        supervisor.restart.return_value = False

        with self.assertLogs("panel.jobs", level="INFO") as logs:
            CoreRestartJob(supervisor=supervisor, force=False).run()

        supervisor.restart.assert_called_once_with(force=False)
        self.assertIn("skipped", logs.output[0])

    def test_restart_failure_is_logged_with_cause(self):
        for exc in [CoreStartError("process exited with code 1 right after start"), CoreNotConfigured("no binary")]:
            with self.subTest(exc=type(exc).__name__):
                supervisor = MagicMock()
                supervisor.restart.side_effect = exc

                with self.assertLogs("panel.jobs", level="ERROR") as logs:
                    CoreRestartJob(supervisor=supervisor).run()

                self.assertIn("Restart proxy core failed", logs.output[0])
                self.assertIn(str(exc), logs.output[0])

    def test_description(self):
        self.assertEqual(
            CoreRestartJob(supervisor=MagicMock()).description,
            "Asks the process supervisor to restart the proxy core.",
        )
