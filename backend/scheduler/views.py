from __future__ import annotations

from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminRole
from scheduler.registry import get_jobs
from scheduler.runner import _compute_next_run, get_scheduler_status
from scheduler.schedules import describe_schedule


def _humanize_job_name(job_name: str) -> str:
    value = (job_name or "").strip().replace("-", "_").replace("__", "_")
    words = [w for w in value.split("_") if w]
    titled = " ".join(w.capitalize() for w in words) if words else job_name
    return titled.replace("Api", "API").replace("Github", "GitHub")


class SchedulerStatusView(APIView):
    """GET /api/scheduler/status/ - Declared jobs + live runtime state (admin-only)."""

    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        now = timezone.now()
        runtime = get_scheduler_status()
        live_jobs = runtime.get("jobs") or {}

        jobs = []
        for name, declared in get_jobs().items():
            live = live_jobs.get(name)
            job_status = dict((live or {}).get("status") or {})

            next_run_at = job_status.get("next_run_at")
            if next_run_at is None and declared.enabled:
                try:
                    next_run_at = _compute_next_run(declared.schedule, now).isoformat()
                except ValueError:
                    next_run_at = None

            derived_status = "ok"
            if live is None:
                derived_status = "disabled" if not declared.enabled else "not_scheduled"
            elif live.get("currently_running"):
                derived_status = "running"
            elif int(job_status.get("consecutive_failures") or 0) > 0:
                derived_status = "failing"
            elif not job_status.get("last_finished_at"):
                derived_status = "never_ran"

            jobs.append(
                {
                    "job_name": name,
                    "display_name": _humanize_job_name(name),
                    "description": declared.description,
                    "enabled": bool(declared.enabled),
                    "scheduled": live is not None,
                    "schedule": describe_schedule(declared.schedule),
                    "next_run_at": next_run_at,
                    "last_started_at": job_status.get("last_started_at"),
                    "last_finished_at": job_status.get("last_finished_at"),
                    "last_duration_seconds": job_status.get("last_duration_seconds"),
                    "last_error": job_status.get("last_error"),
                    "consecutive_failures": int(job_status.get("consecutive_failures") or 0),
                    "skipped_firings": int(job_status.get("skipped_firings") or 0),
                    "is_running": bool(live and live.get("currently_running")),
                    "status": derived_status,
                }
            )

        # Jobs registered directly with the runtime scheduler but never declared.
        declared_names = set(get_jobs())
        for name in sorted(set(live_jobs) - declared_names):
            live = live_jobs[name]
            job_status = dict(live.get("status") or {})
            jobs.append(
                {
                    "job_name": name,
                    "display_name": _humanize_job_name(name),
                    "description": job_status.get("description"),
                    "enabled": True,
                    "scheduled": True,
                    "schedule": job_status.get("schedule"),
                    "next_run_at": job_status.get("next_run_at"),
                    "last_started_at": job_status.get("last_started_at"),
                    "last_finished_at": job_status.get("last_finished_at"),
                    "last_duration_seconds": job_status.get("last_duration_seconds"),
                    "last_error": job_status.get("last_error"),
                    "consecutive_failures": int(job_status.get("consecutive_failures") or 0),
                    "skipped_firings": int(job_status.get("skipped_firings") or 0),
                    "is_running": bool(live.get("currently_running")),
                    "status": "running" if live.get("currently_running") else "ok",
                }
            )

        return Response(
            {
                "running": bool(runtime.get("running")),
                "jobs": jobs,
            },
            status=status.HTTP_200_OK,
        )
