from __future__ import annotations

from config.domain_exceptions import ConfigurationError, ConflictError


class ScheduleConfigurationError(ConfigurationError):
    """Malformed cadence or invalid job registration."""


class SchedulerClosedError(ConflictError):
    """Raised when registering with a scheduler that has already been shut down."""
