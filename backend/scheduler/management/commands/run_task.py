"""Management command to run a declared job once, outside the scheduler."""

from __future__ import annotations

import time

from django.core.management.base import BaseCommand, CommandError

from scheduler import get_job, get_jobs


class Command(BaseCommand):
    """Run a declared job manually."""

    help = "Run a declared job once, synchronously"

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "task_name",
            type=str,
            help="Name of the job to run",
        )

    def handle(self, *args, **options) -> None:
        task_name = options["task_name"]
        declared = get_job(task_name)

        if declared is None:
            available = ", ".join(sorted(get_jobs().keys()))
            raise CommandError(
                f"Job '{task_name}' not found. Available jobs: {available or 'none'}"
            )

        self.stdout.write(f"Running job: {task_name}")
        start_time = time.monotonic()

        try:
            declared.job.run()
        except Exception as e:
            duration = time.monotonic() - start_time
            raise CommandError(f"Job failed after {duration:.2f}s: {e}") from e

        duration = time.monotonic() - start_time
        self.stdout.write(self.style.SUCCESS(f"Job completed in {duration:.2f}s"))
