from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework.test import APIClient, APITestCase

from notifications.backup import BackupDelivery, BackupDeliveryError, BackupNotConfigured, BackupReport
from notifications.handlers.base import NotificationResult
from panel.jobs import CoreRestartJob
from proxy_core.manager import CoreNotConfigured, CoreProcessStatus, CoreStartError
from scheduler.runner import Scheduler
from scheduler.schedules import Every


class _PanelApiTestCase(APITestCase):
    def setUp(self):
        User = get_user_model()
        self.admin = User.objects.create_superuser(username="admin", email="admin@example.com", password="pass")
        self.user = User.objects.create_user(username="user", email="user@example.com", password="pass")
        self.client = APIClient()


class PermissionTests(_PanelApiTestCase):
    def test_all_routes_require_admin(self):
        routes = [
            ("get", reverse("panel-server-status")),
            ("get", reverse("panel-server-restart-core")),
            ("get", reverse("panel-inbounds-create-backup")),
            ("post", reverse("panel-server-auto-restart")),
        ]
        supervisor = MagicMock()
        backups = MagicMock()
        with (
            patch("panel.views.process_supervisor", supervisor),
            patch("panel.views.backup_gateway", backups),
        ):
            for method, url in routes:
                with self.subTest(url=url):
                    self.client.force_authenticate(None)
                    self.assertEqual(getattr(self.client, method)(url).status_code, 401)
                    self.client.force_authenticate(self.user)
                    self.assertEqual(getattr(self.client, method)(url).status_code, 403)

        supervisor.restart.assert_not_called()
        backups.send_backup_to_admins.assert_not_called()

    def test_routes_have_expected_paths(self):
        self.assertEqual(reverse("panel-server-status"), "/panel/api/server/status")
        self.assertEqual(reverse("panel-server-restart-core"), "/panel/api/server/restartCore")
        self.assertEqual(reverse("panel-inbounds-create-backup"), "/panel/api/inbounds/createbackup")


class ServerStatusViewTests(_PanelApiTestCase):
    def test_returns_core_status(self):
        supervisor = MagicMock()
        supervisor.get_status.return_value = CoreProcessStatus(state="running", pid=4321, version="1.8.4")
        self.client.force_authenticate(self.admin)

        with patch("panel.views.process_supervisor", supervisor):
            response = self.client.get(reverse("panel-server-status"))

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["core"]["state"], "running")
        self.assertEqual(data["core"]["pid"], 4321)
        self.assertIn("panel_version", data)
        self.assertIn("auto_restart", data)


class RestartCoreViewTests(_PanelApiTestCase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(self.admin)
        self.url = reverse("panel-server-restart-core")

    def test_forces_restart(self):
        supervisor = MagicMock()
        supervisor.restart.return_value = True

        with patch("panel.views.process_supervisor", supervisor):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"data": {"restarted": True}})
        supervisor.restart.assert_called_once_with(force=True)

    def test_start_failure_maps_to_502_with_cause(self):
        supervisor = MagicMock()
        supervisor.restart.side_effect = CoreStartError("process exited with code 1 right after start")

        with patch("panel.views.process_supervisor", supervisor):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, 502)
        error = response.json()["error"]
        self.assertEqual(error["status"], "gateway_error")
        self.assertIn("exited with code 1", error["message"])
        self.assertEqual(error["gateway"], "Proxy core")

    def test_not_configured_maps_to_503(self):
        supervisor = MagicMock()
        supervisor.restart.side_effect = CoreNotConfigured("Proxy core binary/config paths are not configured.")

        with patch("panel.views.process_supervisor", supervisor):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, 503)
        self.assertIn("not configured", response.json()["error"]["message"])

    def test_manual_restart_runs_while_scheduled_restart_is_in_flight(self):
        release = threading.Event()
        scheduled_started = threading.Event()
        calls: list[bool] = []

        class _Supervisor:
            def restart(self, *, force: bool) -> bool:
                calls.append(force)
                if len(calls) == 1:
                    scheduled_started.set()
                    release.wait(10)
                return True

        supervisor = _Supervisor()
        scheduler = Scheduler(drain_timeout_seconds=10)
        self.addCleanup(scheduler.shutdown)
        self.addCleanup(release.set)
        entry = scheduler.register("proxy_core_restart", CoreRestartJob(supervisor=supervisor), Every(seconds=3600))
        scheduler._fire(entry)
        self.assertTrue(scheduled_started.wait(10))

        with patch("panel.views.process_supervisor", supervisor):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(calls, [True, True])
        self.assertTrue(scheduler.is_firing("proxy_core_restart"))
        status = scheduler.get_status()["jobs"]["proxy_core_restart"]["status"]
        self.assertEqual(status["skipped_firings"], 0)

        release.set()
        self.assertEqual(scheduler.shutdown(), [])


class CreateBackupViewTests(_PanelApiTestCase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(self.admin)
        self.url = reverse("panel-inbounds-create-backup")

    def test_sends_backup(self):
        backups = MagicMock()
        backups.send_backup_to_admins.return_value = BackupReport(
            deliveries=[BackupDelivery(chat_id="1", file_name="panel.db", result=NotificationResult.ok())]
        )

        with patch("panel.views.backup_gateway", backups):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertTrue(data["success"])
        self.assertEqual(data["deliveries"][0]["file_name"], "panel.db")
        backups.send_backup_to_admins.assert_called_once_with()

    def test_not_configured_maps_to_503(self):
        backups = MagicMock()
        backups.send_backup_to_admins.side_effect = BackupNotConfigured("No Telegram admin chats are configured.")

        with patch("panel.views.backup_gateway", backups):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["error"]["gateway"], "Telegram")

    def test_delivery_failure_maps_to_502(self):
        report = BackupReport(
            deliveries=[
                BackupDelivery(
                    chat_id="1",
                    file_name="panel.db",
                    result=NotificationResult.error("Invalid bot token", code="UNAUTHORIZED"),
                )
            ]
        )
        backups = MagicMock()
        backups.send_backup_to_admins.side_effect = BackupDeliveryError(report)

        with patch("panel.views.backup_gateway", backups):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, 502)
        self.assertIn("Invalid bot token", response.json()["error"]["message"])
