"""In-process job scheduler.

Runs named maintenance jobs on independent timers inside the panel process,
without external infrastructure.

Usage:
    from scheduler import Job, get_scheduler

    class PruneLogs(Job):
        def run(self) -> None:
            ...

    get_scheduler().register("prune_logs", PruneLogs(), "@every 6h")

Jobs declared with `register_job()` / `@register` are scheduled by
`start_scheduler()` when the server starts.
"""

from .errors import ScheduleConfigurationError, SchedulerClosedError
from .jobs import FunctionJob, Job
from .registry import ScheduledJob, get_job, get_jobs, register, register_job, unregister_job
from .runner import Scheduler, get_scheduler, get_scheduler_status, start_scheduler, stop_scheduler
from .schedules import Cron, DailyAt, Every, Schedule, parse_schedule

__all__ = [
    # Job contract
    "Job",
    "FunctionJob",
    # Schedule types
    "Schedule",
    "DailyAt",
    "Every",
    "Cron",
    "parse_schedule",
    # Declaration
    "register",
    "register_job",
    "unregister_job",
    "ScheduledJob",
    "get_jobs",
    "get_job",
    # Runner
    "Scheduler",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
    "get_scheduler_status",
    # Errors
    "ScheduleConfigurationError",
    "SchedulerClosedError",
]
