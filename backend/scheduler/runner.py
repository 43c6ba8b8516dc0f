"""Job runner: one independent timer thread per registered job."""

from __future__ import annotations

import atexit
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from django.conf import settings
from django.utils import timezone

from .errors import ScheduleConfigurationError, SchedulerClosedError
from .jobs import Job, is_job
from .registry import get_jobs, validate_job_name
from .schedules import Every, Schedule, describe_schedule, next_slot, parse_schedule

logger = logging.getLogger(__name__)

_DEFAULT_DRAIN_TIMEOUT_SECONDS = 10.0
_TIMER_RETRY_SECONDS = 60.0


def _jitter_seconds(schedule: Schedule) -> int:
    if isinstance(schedule, Every) and schedule.jitter > 0:
        return random.randint(-schedule.jitter, schedule.jitter)
    return 0


def _compute_next_run(schedule: Schedule, now: datetime) -> datetime:
    """Compute next run time for a schedule."""
    return next_slot(schedule, now) + timedelta(seconds=_jitter_seconds(schedule))


@dataclass
class ScheduleEntry:
    """A registered job with its cadence and cancellable timer."""

    name: str
    job: Job
    schedule: Schedule
    description: str | None = None
    stop_event: threading.Event = field(default_factory=threading.Event)
    thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self.stop_event.is_set()


class Scheduler:
    """
    Runs each registered job on its own cadence until shut down.

    - Every entry owns one daemon timer thread and a stop event.
    - Each firing runs on a fresh worker thread so a slow job never delays
      its own timer or anybody else's.
    - A firing that is still running when the job's next slot comes up causes
      that slot to be skipped (never queued).
    - Failures are caught per firing, logged, and never cancel future firings.
    """

    def __init__(
        self,
        *,
        drain_timeout_seconds: float | None = None,
        timer_retry_seconds: float = _TIMER_RETRY_SECONDS,
    ) -> None:
        if drain_timeout_seconds is None:
            drain_timeout_seconds = _DEFAULT_DRAIN_TIMEOUT_SECONDS
        self.drain_timeout_seconds = float(drain_timeout_seconds)
        self.timer_retry_seconds = float(timer_retry_seconds)
        self._lock = threading.Lock()
        self._entries: dict[str, ScheduleEntry] = {}
        self._running: dict[str, threading.Thread] = {}
        self._status: dict[str, dict[str, object]] = {}
        self._closed = False

    def __enter__(self) -> "Scheduler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def names(self) -> list[str]:
        """Return registered job names in registration order."""
        with self._lock:
            return list(self._entries)

    def is_firing(self, name: str) -> bool:
        """Return True while a firing of `name` is in flight."""
        with self._lock:
            return name in self._running

    def register(
        self,
        name: str,
        job: Job,
        cadence: object,
        *,
        description: str | None = None,
    ) -> ScheduleEntry:
        """
        Register `job` under `name` and start its timer.

        Re-registering an existing name cancels the previous timer first; the
        name keeps its position in the registry.
        """
        name = validate_job_name(name)
        if not is_job(job):
            raise ScheduleConfigurationError(f"Job {name!r} does not expose a callable run().")
        schedule = parse_schedule(cadence)

        entry = ScheduleEntry(
            name=name,
            job=job,
            schedule=schedule,
            description=description or getattr(job, "description", None),
        )
        thread = threading.Thread(
            target=self._run_timer,
            kwargs={"entry": entry},
            name=f"scheduler-{name}",
            daemon=True,
        )
        entry.thread = thread

        with self._lock:
            if self._closed:
                raise SchedulerClosedError("Scheduler has been shut down.")
            previous = self._entries.get(name)
            if previous is not None:
                previous.stop_event.set()
            self._entries[name] = entry
            status = self._status.setdefault(name, {})
            status.update(
                {
                    "schedule": describe_schedule(schedule),
                    "description": entry.description,
                    "registered_at": timezone.now().isoformat(),
                }
            )
            status.setdefault("consecutive_failures", 0)
            status.setdefault("skipped_firings", 0)
            thread.start()

        if previous is not None:
            logger.info("Job %s re-registered; previous timer cancelled", name)
        logger.info("Registered job %s (%s)", name, describe_schedule(schedule))
        return entry

    def unregister(self, name: str) -> bool:
        """Stop the job's timer. Returns False when `name` is not registered."""
        with self._lock:
            entry = self._entries.pop(name, None)
            if entry is None:
                return False
            entry.stop_event.set()
            self._status.pop(name, None)
        logger.info("Unregistered job %s", name)
        return True

    def shutdown(self, *, drain_timeout_seconds: float | None = None) -> list[str]:
        """
        Stop every timer, then wait for in-flight firings up to the drain timeout.

        Returns the names of firings abandoned at the deadline. Safe to call
        more than once.
        """
        timeout = self.drain_timeout_seconds if drain_timeout_seconds is None else float(drain_timeout_seconds)

        with self._lock:
            already_closed = self._closed
            self._closed = True
            entries = list(self._entries.values())
            self._entries.clear()
            for entry in entries:
                entry.stop_event.set()
            in_flight = dict(self._running)

        if already_closed and not in_flight:
            return []

        deadline = time.monotonic() + max(0.0, timeout)
        current = threading.current_thread()
        for worker in in_flight.values():
            if worker is not current:
                worker.join(timeout=max(0.0, deadline - time.monotonic()))

        abandoned = sorted(name for name, worker in in_flight.items() if worker.is_alive())
        for name in abandoned:
            logger.warning(
                "Job %s did not finish within the %.1fs drain timeout; abandoning it",
                name,
                timeout,
            )

        for entry in entries:
            if entry.thread is not None and entry.thread is not current:
                entry.thread.join(timeout=max(0.0, deadline - time.monotonic()))

        logger.info("Scheduler shut down (%d job(s), %d abandoned)", len(entries), len(abandoned))
        return abandoned

    def get_status(self) -> dict:
        """Return an in-memory snapshot of scheduler state for monitoring endpoints."""
        with self._lock:
            return {
                "running": not self._closed,
                "drain_timeout_seconds": self.drain_timeout_seconds,
                "jobs": {
                    name: {
                        "timer_alive": entry.thread is not None and entry.thread.is_alive(),
                        "currently_running": name in self._running,
                        "status": dict(self._status.get(name) or {}),
                    }
                    for name, entry in self._entries.items()
                },
            }

    def _update_status(self, entry: ScheduleEntry, **values: object) -> None:
        """Record status for `entry` unless it has been unregistered or replaced."""
        with self._lock:
            if self._entries.get(entry.name) is entry:
                self._status.setdefault(entry.name, {}).update(values)

    def _run_timer(self, *, entry: ScheduleEntry) -> None:
        """Fire `entry` on its schedule until its stop event is set."""
        slot: datetime | None = None
        while not entry.cancelled:
            try:
                now = timezone.now()
                slot = next_slot(entry.schedule, slot or now)
                missed = 0
                while slot <= now:
                    missed += 1
                    slot = next_slot(entry.schedule, slot)
                if missed:
                    logger.warning("Job %s missed %d slot(s); skipping to the next one", entry.name, missed)

                fire_at = slot + timedelta(seconds=_jitter_seconds(entry.schedule))
                sleep_seconds = max(0.0, (fire_at - timezone.now()).total_seconds())
                self._update_status(entry, next_run_at=fire_at.isoformat())
                logger.debug("Job %s scheduled for %s (in %.0fs)", entry.name, fire_at.isoformat(), sleep_seconds)

                if entry.stop_event.wait(timeout=sleep_seconds):
                    break
                self._fire(entry)
            except Exception as exc:
                logger.exception(
                    "Job %s timer failed; retrying in %.1fs",
                    entry.name,
                    self.timer_retry_seconds,
                )
                self._update_status(entry, next_run_at=None, last_error=str(exc)[:4000] or exc.__class__.__name__)
                slot = None
                if entry.stop_event.wait(timeout=self.timer_retry_seconds):
                    break

        logger.debug("Job %s timer stopped", entry.name)

    def _fire(self, entry: ScheduleEntry) -> None:
        """Start one firing on a worker thread unless the previous one is still running."""
        with self._lock:
            if entry.cancelled or self._entries.get(entry.name) is not entry:
                return
            status = self._status.setdefault(entry.name, {})
            if entry.name in self._running:
                status["skipped_firings"] = int(status.get("skipped_firings") or 0) + 1
                logger.warning("Job %s still running, skipping this firing", entry.name)
                return
            worker = threading.Thread(
                target=self._execute,
                kwargs={"entry": entry},
                name=f"job-{entry.name}",
                daemon=True,
            )
            self._running[entry.name] = worker
            status.update({"last_started_at": timezone.now().isoformat(), "last_error": None})
            worker.start()

    def _execute(self, *, entry: ScheduleEntry) -> None:
        """Run one firing; the error boundary for the job."""
        start_time = time.monotonic()
        try:
            logger.info("Job %s starting", entry.name)
            entry.job.run()
            duration = time.monotonic() - start_time
            logger.info("Job %s completed in %.2fs", entry.name, duration)
            self._update_status(
                entry,
                last_finished_at=timezone.now().isoformat(),
                last_duration_seconds=round(duration, 6),
                consecutive_failures=0,
            )
        except Exception as exc:
            duration = time.monotonic() - start_time
            logger.exception("Job %s failed after %.2fs", entry.name, duration)
            with self._lock:
                # A firing that outlives its registration leaves no status behind.
                if self._entries.get(entry.name) is entry:
                    status = self._status.setdefault(entry.name, {})
                    status.update(
                        {
                            "last_finished_at": timezone.now().isoformat(),
                            "last_duration_seconds": round(duration, 6),
                            "last_error": str(exc)[:4000] or exc.__class__.__name__,
                            "consecutive_failures": int(status.get("consecutive_failures") or 0) + 1,
                        }
                    )
        finally:
            with self._lock:
                if self._running.get(entry.name) is threading.current_thread():
                    del self._running[entry.name]


_scheduler: Scheduler | None = None
_scheduler_lock = threading.Lock()
_started = False


def get_scheduler() -> Scheduler:
    """Return the process-wide scheduler, creating it on first use."""
    global _scheduler
    with _scheduler_lock:
        if _scheduler is None:
            _scheduler = Scheduler(
                drain_timeout_seconds=getattr(
                    settings, "SCHEDULER_DRAIN_TIMEOUT_SECONDS", _DEFAULT_DRAIN_TIMEOUT_SECONDS
                )
            )
        return _scheduler


def start_scheduler() -> None:
    """Register every enabled declared job with the process scheduler."""
    global _started

    with _scheduler_lock:
        if _started:
            return
        _started = True

    scheduler = get_scheduler()
    for name, declared in get_jobs().items():
        if not declared.enabled:
            logger.info("Job %s is disabled; not scheduling", name)
            continue
        scheduler.register(name, declared.job, declared.schedule, description=declared.description)

    atexit.register(stop_scheduler)
    logger.info("Scheduler started with %d job(s)", len(scheduler.names()))


def stop_scheduler() -> list[str]:
    """Shut down the process scheduler, if one was created."""
    with _scheduler_lock:
        scheduler = _scheduler
    if scheduler is None:
        return []
    return scheduler.shutdown()


def is_scheduler_started() -> bool:
    with _scheduler_lock:
        return _started


def get_scheduler_status() -> dict:
    """Return scheduler health for monitoring endpoints."""
    with _scheduler_lock:
        scheduler = _scheduler
        started = _started
    if scheduler is None:
        return {"running": False, "started": started, "jobs": {}}
    status = scheduler.get_status()
    status["started"] = started
    status["running"] = bool(status["running"] and started)
    return status
