"""Job declaration and discovery for the scheduler."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable

from django.conf import settings

from .errors import ScheduleConfigurationError
from .jobs import FunctionJob, Job, first_doc_line, is_job
from .schedules import Schedule, parse_schedule

_jobs: dict[str, "ScheduledJob"] = {}
_lock = threading.Lock()

MAX_JOB_NAME_LENGTH = 128


@dataclass
class ScheduledJob:
    """A declared job: what to run, how often, and whether it is enabled."""

    name: str
    job: Job
    schedule: Schedule
    enabled: bool = True
    description: str | None = None


def validate_job_name(name: object) -> str:
    """Return the stripped job name or raise ScheduleConfigurationError."""
    if not isinstance(name, str) or not name.strip():
        raise ScheduleConfigurationError("Job name must be a non-empty string.")
    name = name.strip()
    if len(name) > MAX_JOB_NAME_LENGTH:
        raise ScheduleConfigurationError(f"Job name must be at most {MAX_JOB_NAME_LENGTH} characters.")
    return name


def _get_override(name: str) -> dict:
    overrides = getattr(settings, "SCHEDULER_JOB_OVERRIDES", {}) or {}
    override = overrides.get(name) if isinstance(overrides, dict) else None
    return override if isinstance(override, dict) else {}


def register_job(
    name: str,
    job: Job,
    schedule: object,
    enabled: bool = True,
    description: str | None = None,
    *,
    apply_overrides: bool = True,
) -> ScheduledJob:
    """
    Declare a job so `start_scheduler()` picks it up.

    `SCHEDULER_JOB_OVERRIDES[name]` may override `enabled` and `schedule`
    unless `apply_overrides` is False (runtime changes made by an admin).
    Declaring an existing name replaces the previous declaration.
    """
    name = validate_job_name(name)
    if not is_job(job):
        raise ScheduleConfigurationError(f"Job {name!r} does not expose a callable run().")

    override = _get_override(name) if apply_overrides else {}

    resolved_schedule = parse_schedule(override["schedule"] if "schedule" in override else schedule)

    resolved_enabled = enabled
    if "enabled" in override:
        resolved_enabled = bool(override.get("enabled"))

    resolved_description = description or getattr(job, "description", None) or first_doc_line(type(job))

    declared = ScheduledJob(
        name=name,
        job=job,
        schedule=resolved_schedule,
        enabled=resolved_enabled,
        description=resolved_description,
    )
    with _lock:
        _jobs[name] = declared
    return declared


def register(
    name: str,
    schedule: object,
    enabled: bool = True,
    description: str | None = None,
) -> Callable[[Callable[[], None]], Callable[[], None]]:
    """Decorator to declare a plain function as a scheduled job.

    Usage:
        @register("cleanup_old_logs", schedule=DailyAt(hour=3, minute=0))
        def cleanup_old_logs() -> None:
            ...
    """

    def decorator(func: Callable[[], None]) -> Callable[[], None]:
        register_job(
            name,
            FunctionJob(func),
            schedule,
            enabled=enabled,
            description=description or first_doc_line(func),
        )
        return func

    return decorator


def unregister_job(name: str) -> bool:
    """Remove a declaration. Returns False if the name was not declared."""
    with _lock:
        return _jobs.pop(name, None) is not None


def get_jobs() -> dict[str, ScheduledJob]:
    """Return a copy of all declared jobs, in declaration order."""
    with _lock:
        return _jobs.copy()


def get_job(name: str) -> ScheduledJob | None:
    """Return a specific declared job, or None if not found."""
    with _lock:
        return _jobs.get(name)
