"""Schedule type definitions for the job scheduler."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from croniter import CroniterBadDateError, croniter
from django.utils import timezone

from .errors import ScheduleConfigurationError

_EVERY_PREFIX = "@every"
_DURATION_PART = re.compile(r"(\d+)([dhms])")
_DURATION_UNITS = {"d": 86400, "h": 3600, "m": 60, "s": 1}

MAX_INTERVAL_SECONDS = 366 * 86400


def _whole_number(value: object, label: str) -> int:
    """Return `value` as an int or raise ScheduleConfigurationError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScheduleConfigurationError(f"{label} must be a whole number, got {value!r}.")
    return value


class Schedule:
    """Base class for schedules."""

    def validate(self) -> None:
        """Raise ScheduleConfigurationError if the schedule cannot produce a next fire time."""
        try:
            next_slot(self, timezone.now())
        except (CroniterBadDateError, OverflowError, ValueError) as exc:
            raise ScheduleConfigurationError(f"Cadence never resolves to a next fire time: {exc}") from exc


@dataclass
class DailyAt(Schedule):
    """Run once daily at specified time (uses Django TIME_ZONE setting)."""

    hour: int = 3
    minute: int = 0

    def validate(self) -> None:
        if not 0 <= _whole_number(self.hour, "DailyAt hour") <= 23:
            raise ScheduleConfigurationError(f"DailyAt hour must be 0-23, got {self.hour}.")
        if not 0 <= _whole_number(self.minute, "DailyAt minute") <= 59:
            raise ScheduleConfigurationError(f"DailyAt minute must be 0-59, got {self.minute}.")


@dataclass
class Every(Schedule):
    """Run at fixed intervals."""

    seconds: int = 3600  # Default: hourly
    jitter: int = 0  # Optional random jitter in seconds to avoid thundering herd

    def validate(self) -> None:
        seconds = _whole_number(self.seconds, "Interval")
        if seconds < 1:
            raise ScheduleConfigurationError(f"Interval must be at least 1 second, got {self.seconds}.")
        if seconds > MAX_INTERVAL_SECONDS:
            raise ScheduleConfigurationError(
                f"Interval must be at most {MAX_INTERVAL_SECONDS} seconds, got {self.seconds}."
            )
        jitter = _whole_number(self.jitter, "Jitter")
        if jitter < 0 or jitter >= seconds:
            raise ScheduleConfigurationError(
                f"Jitter must be between 0 and the interval ({self.seconds}s), got {self.jitter}."
            )


@dataclass
class Cron(Schedule):
    """Run on a cron expression (5 fields, or an alias such as @daily)."""

    expression: str = "@daily"

    def validate(self) -> None:
        if not isinstance(self.expression, str) or not self.expression.strip():
            raise ScheduleConfigurationError("Cron expression must be a non-empty string.")
        if not croniter.is_valid(self.expression.strip()):
            raise ScheduleConfigurationError(f"Invalid cron expression: {self.expression!r}")
        # February 30th and friends parse but never fire.
        super().validate()


def next_slot(schedule: Schedule, after: datetime) -> datetime:
    """Return the first un-jittered fire time strictly after `after`."""
    if isinstance(schedule, Every):
        return after + timedelta(seconds=schedule.seconds)
    if isinstance(schedule, DailyAt):
        local_after = timezone.localtime(after)
        next_run = local_after.replace(
            hour=schedule.hour,
            minute=schedule.minute,
            second=0,
            microsecond=0,
        )
        if next_run <= local_after:
            next_run += timedelta(days=1)
        return next_run
    if isinstance(schedule, Cron):
        return croniter(schedule.expression.strip(), timezone.localtime(after)).get_next(datetime)
    raise ValueError(f"Unknown schedule type: {type(schedule)}")


def parse_duration(value: str) -> int:
    """
    Parse a compact duration such as "6h", "1h30m" or "45s" into seconds.

    Raises ScheduleConfigurationError for anything else.
    """
    text = (value or "").strip().lower()
    if not text:
        raise ScheduleConfigurationError("Duration is empty.")
    if text.isdigit():
        return int(text)

    total = 0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += int(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ScheduleConfigurationError(f"Invalid duration: {value!r}")
    return total


def parse_schedule(value: object) -> Schedule:
    """
    Resolve a cadence description into a validated Schedule.

    Accepts a Schedule, a number of seconds, a timedelta, "@every <duration>",
    or a cron expression/alias.
    """
    if isinstance(value, Schedule):
        schedule = value
    elif isinstance(value, bool):
        raise ScheduleConfigurationError(f"Invalid cadence: {value!r}")
    elif isinstance(value, int):
        schedule = Every(seconds=value)
    elif isinstance(value, float):
        if not math.isfinite(value) or value != int(value):
            raise ScheduleConfigurationError(f"Interval must be a whole number of seconds, got {value}.")
        schedule = Every(seconds=int(value))
    elif isinstance(value, timedelta):
        if value % timedelta(seconds=1):
            raise ScheduleConfigurationError(f"Interval must be a whole number of seconds, got {value}.")
        schedule = Every(seconds=int(value.total_seconds()))
    elif isinstance(value, str):
        text = value.strip()
        if text.lower().startswith(_EVERY_PREFIX):
            schedule = Every(seconds=parse_duration(text[len(_EVERY_PREFIX):]))
        else:
            schedule = Cron(expression=text)
    else:
        raise ScheduleConfigurationError(f"Unsupported cadence type: {type(value).__name__}")

    schedule.validate()
    return schedule


def describe_schedule(schedule: Schedule) -> str:
    """Format a schedule for display."""
    if isinstance(schedule, DailyAt):
        return f"Daily at {schedule.hour:02d}:{schedule.minute:02d}"
    if isinstance(schedule, Every):
        if schedule.seconds >= 3600:
            hours = schedule.seconds / 3600
            interval = f"{hours:.1f} hours" if hours != int(hours) else f"{int(hours)} hours"
        elif schedule.seconds >= 60:
            minutes = schedule.seconds / 60
            interval = f"{minutes:.1f} minutes" if minutes != int(minutes) else f"{int(minutes)} minutes"
        else:
            interval = f"{schedule.seconds} seconds"
        jitter_str = f" (±{schedule.jitter}s jitter)" if schedule.jitter > 0 else ""
        return f"Every {interval}{jitter_str}"
    if isinstance(schedule, Cron):
        return f"Cron {schedule.expression}"
    return str(schedule)
