"""Scheduled maintenance jobs for the panel."""

from __future__ import annotations

import logging
import threading

from django.conf import settings

from scheduler.registry import ScheduledJob, get_job, register_job
from scheduler.runner import get_scheduler, is_scheduler_started
from scheduler.schedules import describe_schedule, parse_schedule

from .gateways.process_supervisor import ProcessSupervisor, default_process_supervisor
from .gateways.update_registry import UpdateRegistryGateway, default_update_registry
from .jobs import CoreRestartJob, UpdateCheckJob

logger = logging.getLogger(__name__)

UPDATE_CHECK_JOB_NAME = "panel_update_check"
CORE_RESTART_JOB_NAME = "proxy_core_restart"

process_supervisor: ProcessSupervisor = default_process_supervisor
update_registry: UpdateRegistryGateway = default_update_registry

# Declaration and live registration change together.
_auto_restart_lock = threading.Lock()


def build_update_check_job() -> UpdateCheckJob:
    return UpdateCheckJob(
        registry=update_registry,
        owner=getattr(settings, "UPDATE_CHECK_OWNER", "AghayeCoder"),
        project=getattr(settings, "UPDATE_CHECK_PROJECT", "tx-ui"),
        current_version=str(getattr(settings, "PANEL_VERSION", "0")),
    )


def build_core_restart_job() -> CoreRestartJob:
    return CoreRestartJob(
        supervisor=process_supervisor,
        force=bool(getattr(settings, "CORE_AUTO_RESTART_FORCE", True)),
    )


def declare_jobs() -> dict[str, ScheduledJob]:
    """Declare the panel's jobs from settings; `start_scheduler()` schedules the enabled ones."""
    return {
        UPDATE_CHECK_JOB_NAME: register_job(
            UPDATE_CHECK_JOB_NAME,
            build_update_check_job(),
            getattr(settings, "UPDATE_CHECK_SCHEDULE", "@daily"),
            enabled=bool(getattr(settings, "UPDATE_CHECK_ENABLED", True)),
            description="Check GitHub for a newer panel release",
        ),
        CORE_RESTART_JOB_NAME: register_job(
            CORE_RESTART_JOB_NAME,
            build_core_restart_job(),
            getattr(settings, "CORE_AUTO_RESTART_SCHEDULE", "@every 6h"),
            enabled=bool(getattr(settings, "CORE_AUTO_RESTART_ENABLED", False)),
            description="Restart the proxy core",
        ),
    }


def set_core_auto_restart(enabled: bool, schedule: object | None = None) -> ScheduledJob:
    """
    Turn the scheduled proxy core restart on or off at runtime.

    Updates the declaration and, when the process scheduler is running,
    registers (or re-registers with the new cadence) or unregisters the job.
    Raises ScheduleConfigurationError for a malformed `schedule`.
    """
    with _auto_restart_lock:
        current = get_job(CORE_RESTART_JOB_NAME)
        if schedule is None:
            if current is not None:
                schedule = current.schedule
            else:
                schedule = getattr(settings, "CORE_AUTO_RESTART_SCHEDULE", "@every 6h")
        resolved = parse_schedule(schedule)

        declared = register_job(
            CORE_RESTART_JOB_NAME,
            current.job if current is not None else build_core_restart_job(),
            resolved,
            enabled=bool(enabled),
            description=current.description if current is not None else "Restart the proxy core",
            apply_overrides=False,
        )

        if is_scheduler_started():
            scheduler = get_scheduler()
            if declared.enabled:
                scheduler.register(
                    declared.name,
                    declared.job,
                    declared.schedule,
                    description=declared.description,
                )
            else:
                scheduler.unregister(declared.name)

    logger.info(
        "Proxy core auto-restart %s (%s)",
        "enabled" if declared.enabled else "disabled",
        describe_schedule(declared.schedule),
    )
    return declared


declare_jobs()
