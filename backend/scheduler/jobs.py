"""
Job contract for the scheduler.

A job is a unit of schedulable work with a single entry point, `run()`. The
scheduler knows nothing about what a job does: it calls `run()` on each
firing and treats anything raised as a failure of that firing only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable


class Job(ABC):
    """
    Abstract base class for scheduled jobs.

    Implementations perform their work synchronously from the scheduler's
    point of view and return nothing. Expected collaborator failures should be
    caught and logged inside `run()`; anything that escapes is caught and
    logged at the scheduler's per-firing boundary.
    """

    @abstractmethod
    def run(self) -> None:
        """Perform one firing of the job."""
        pass

    @property
    def description(self) -> str | None:
        """First line of the class docstring, used for listings and status."""
        return first_doc_line(type(self))


class FunctionJob(Job):
    """Adapter that turns a zero-argument callable into a Job."""

    def __init__(self, func: Callable[[], object]) -> None:
        self.func = func

    def run(self) -> None:
        self.func()

    @property
    def description(self) -> str | None:
        return first_doc_line(self.func)

    def __repr__(self) -> str:
        return f"FunctionJob({getattr(self.func, '__qualname__', self.func)!r})"


def first_doc_line(obj: object) -> str | None:
    """Return the first non-empty docstring line of `obj`, truncated to 500 chars."""
    doc = getattr(obj, "__doc__", None)
    if not isinstance(doc, str):
        return None
    for line in doc.strip().splitlines():
        line = line.strip()
        if line:
            return line[:500]
    return None


def is_job(obj: object) -> bool:
    """Return True if `obj` exposes a callable `run` entry point."""
    return callable(getattr(obj, "run", None))
