"""Django app configuration for the scheduler."""

from __future__ import annotations

import os
import sys

from django.apps import AppConfig
from django.conf import settings


def _should_start() -> bool:
    """Determine if the scheduler should start in this process."""
    if not getattr(settings, "SCHEDULER_ENABLED", True):
        return False

    if getattr(settings, "IS_TESTING", False):
        return False

    # Server binaries pass flags as argv[1] (e.g. `gunicorn -b ...`), so argv[1]
    # must not be read as a management command for them.
    argv0 = os.path.basename(sys.argv[0] or "")
    if any(server in argv0 for server in ("gunicorn", "uvicorn", "daphne")):
        return True

    # Management commands (migrate, shell, run_task, ...) never run the timers.
    if len(sys.argv) > 1:
        return sys.argv[1] in {"runserver", "run"}

    return False


class SchedulerConfig(AppConfig):
    """Django app configuration for the job scheduler."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "scheduler"
    verbose_name = "Job Scheduler"

    def ready(self) -> None:
        """Start the scheduler once every app has declared its jobs in its own ready()."""
        if _should_start():
            from .runner import start_scheduler

            start_scheduler()
