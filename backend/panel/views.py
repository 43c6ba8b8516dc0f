from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminRole
from scheduler.registry import get_job
from scheduler.runner import get_scheduler_status
from scheduler.schedules import describe_schedule

from . import tasks
from .gateways.backups import BackupGateway, default_backup_gateway
from .gateways.process_supervisor import ProcessSupervisor, default_process_supervisor
from .serializers import AutoRestartSerializer

logger = logging.getLogger(__name__)

process_supervisor: ProcessSupervisor = default_process_supervisor
backup_gateway: BackupGateway = default_backup_gateway


def _auto_restart_payload() -> dict:
    declared = get_job(tasks.CORE_RESTART_JOB_NAME)
    live_jobs = get_scheduler_status().get("jobs") or {}
    return {
        "enabled": bool(declared and declared.enabled),
        "schedule": describe_schedule(declared.schedule) if declared else None,
        "scheduled": tasks.CORE_RESTART_JOB_NAME in live_jobs,
    }


class ServerStatusView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        """Return the proxy core process status and panel version (admin-only)."""
        core_status = process_supervisor.get_status()
        return Response(
            {
                "panel_version": str(getattr(settings, "PANEL_VERSION", "")),
                "core": core_status.as_dict(),
                "auto_restart": _auto_restart_payload(),
            },
            status=status.HTTP_200_OK,
        )


class RestartCoreView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        """Force a proxy core restart (admin-only); errors surface through the exception handler."""
        restarted = process_supervisor.restart(force=True)
        logger.info("Proxy core restarted on request of %s", request.user)
        return Response({"restarted": restarted}, status=status.HTTP_200_OK)


class CreateBackupView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        """Send the panel backup to every admin chat (admin-only)."""
        report = backup_gateway.send_backup_to_admins()
        return Response(report.as_dict(), status=status.HTTP_200_OK)


class AutoRestartView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        return Response(_auto_restart_payload(), status=status.HTTP_200_OK)

    def post(self, request):
        """Enable or disable the scheduled proxy core restart (admin-only)."""
        serializer = AutoRestartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        tasks.set_core_auto_restart(data["enabled"], schedule=data.get("schedule"))
        return Response(_auto_restart_payload(), status=status.HTTP_200_OK)
