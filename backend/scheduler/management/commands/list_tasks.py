"""Management command to list declared scheduled jobs."""

from __future__ import annotations

from django.core.management.base import BaseCommand

from scheduler import get_jobs
from scheduler.schedules import describe_schedule


class Command(BaseCommand):
    """List all declared scheduled jobs."""

    help = "List all declared scheduled jobs"

    def handle(self, *args, **options) -> None:
        jobs = get_jobs()

        if not jobs:
            self.stdout.write(self.style.WARNING("No jobs registered."))
            return

        self.stdout.write(self.style.SUCCESS(f"Registered jobs ({len(jobs)}):"))
        self.stdout.write("")

        for name, declared in sorted(jobs.items()):
            status = self.style.SUCCESS("enabled") if declared.enabled else self.style.ERROR("disabled")
            self.stdout.write(f"  {name}")
            self.stdout.write(f"    Schedule: {describe_schedule(declared.schedule)}")
            self.stdout.write(f"    Status:   {status}")
            if declared.description:
                self.stdout.write(f"    About:    {declared.description}")
            self.stdout.write(f"    Job:      {declared.job!r}")
            self.stdout.write("")
