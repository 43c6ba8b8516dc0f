"""Management command to show next scheduled runs for declared jobs."""

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.utils import timezone

from scheduler import get_jobs
from scheduler.runner import _compute_next_run
from scheduler.schedules import describe_schedule


class Command(BaseCommand):
    """Show the next scheduled run time for all jobs."""

    help = "Show the next scheduled run time for all declared jobs"

    def handle(self, *args, **options) -> None:
        jobs = get_jobs()

        if not jobs:
            self.stdout.write(self.style.WARNING("No jobs registered."))
            return

        now = timezone.now()
        self.stdout.write(f"Current time: {now.isoformat()}")
        self.stdout.write("")
        self.stdout.write(self.style.SUCCESS("Upcoming job runs:"))
        self.stdout.write("")

        upcoming = sorted(
            (
                (_compute_next_run(declared.schedule, now), name, declared)
                for name, declared in jobs.items()
                if declared.enabled
            ),
            key=lambda item: item[0],
        )

        for next_run, name, declared in upcoming:
            hours, remainder = divmod(int((next_run - now).total_seconds()), 3600)
            minutes, seconds = divmod(remainder, 60)

            if hours > 0:
                time_str = f"{hours}h {minutes}m"
            elif minutes > 0:
                time_str = f"{minutes}m {seconds}s"
            else:
                time_str = f"{seconds}s"

            self.stdout.write(f"  {name}")
            self.stdout.write(f"    Next run: {next_run.isoformat()} (in {time_str})")
            self.stdout.write(f"    Schedule: {describe_schedule(declared.schedule)}")
            self.stdout.write("")

        disabled = [name for name, declared in jobs.items() if not declared.enabled]
        if disabled:
            self.stdout.write(self.style.WARNING("Disabled jobs:"))
            for name in sorted(disabled):
                self.stdout.write(f"  {name}")
