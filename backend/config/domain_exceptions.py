from __future__ import annotations


class DomainError(Exception):
    """
    Base class for predictable, user-facing panel errors.
    """


class ConflictError(DomainError):
    pass


class ConfigurationError(DomainError):
    """
    Missing/invalid server-side configuration required to perform an operation.
    """


class GatewayError(DomainError):
    """
    Base exception for external collaborator failures (proxy core, release registry, Telegram).

    Subclasses set `gateway_name`; they may also set `operation` and `error`
    to describe what was attempted and the low-level cause.
    """

    gateway_name: str | None = None
    operation: str | None = None
    error: str | None = None
