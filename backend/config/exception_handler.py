from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from config import domain_exceptions as domain

logger = logging.getLogger(__name__)

# First match wins, so subclasses must come before their bases.
_DOMAIN_ERRORS: tuple[tuple[type[domain.DomainError], str, int], ...] = (
    (domain.ConfigurationError, "configuration_error", status.HTTP_503_SERVICE_UNAVAILABLE),
    (domain.ConflictError, "conflict", status.HTTP_409_CONFLICT),
    (domain.DomainError, "bad_request", status.HTTP_400_BAD_REQUEST),
)

_DRF_ERRORS: tuple[tuple[type[Exception] | tuple[type[Exception], ...], str], ...] = (
    (drf_exceptions.ValidationError, "validation_error"),
    ((drf_exceptions.ParseError, drf_exceptions.UnsupportedMediaType), "bad_request"),
    ((drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed), "unauthorized"),
    (drf_exceptions.PermissionDenied, "forbidden"),
    (drf_exceptions.NotFound, "not_found"),
    (drf_exceptions.MethodNotAllowed, "method_not_allowed"),
)


def _error_response(error_status: str, message: str, http_status: int, **extra: Any) -> Response:
    """Build the `{"error": {...}}` body; empty extras are left out."""
    error: dict[str, Any] = {"status": error_status, "message": message}
    error.update({key: value for key, value in extra.items() if value})
    return Response({"error": error}, status=http_status)


def _first_message(data: Any) -> str | None:
    if isinstance(data, str):
        return data or None
    if isinstance(data, Mapping):
        for key, value in data.items():
            message = _first_message(value)
            if message:
                return message if key in {"detail", "non_field_errors"} else f"{key}: {message}"
        return None
    if isinstance(data, Sequence) and not isinstance(data, (bytes, bytearray)):
        for item in data:
            message = _first_message(item)
            if message:
                return message
    return None


def _field_errors(data: Any, path: str = "") -> dict[str, list[str]]:
    """Flatten nested DRF validation errors into {"field.sub": [messages]}."""
    out: dict[str, list[str]] = {}
    if isinstance(data, Mapping):
        for key, value in data.items():
            for field, messages in _field_errors(value, f"{path}.{key}" if path else str(key)).items():
                out.setdefault(field, []).extend(messages)
    elif isinstance(data, Sequence) and not isinstance(data, (str, bytes, bytearray)):
        for item in data:
            for field, messages in _field_errors(item, path).items():
                out.setdefault(field, []).extend(messages)
    else:
        out.setdefault(path or "non_field_errors", []).append(str(data))
    return out


def _wrap_drf_error(exc: Exception, response: Response) -> Response:
    error_status = "server_error" if response.status_code >= 500 else "bad_request"
    for exc_types, candidate in _DRF_ERRORS:
        if isinstance(exc, exc_types):
            error_status = candidate
            break

    message = _first_message(response.data) or "Request failed."
    details = None
    if isinstance(exc, drf_exceptions.ValidationError):
        details = _field_errors(response.data)
        messages = next(iter(details.values())) if len(details) == 1 else []
        message = messages[0] if messages else "One or more fields failed validation."

    return _error_response(error_status, message, response.status_code, details=details)


def _is_unavailable(exc: domain.GatewayError) -> bool:
    """Not configured / not reachable collaborators are a 503, anything else a 502."""
    if getattr(exc, "not_configured", False) or getattr(exc, "not_reachable", False):
        return True
    return type(exc).__name__.endswith(("NotConfigured", "NotReachable"))


def _gateway_response(exc: domain.GatewayError) -> Response:
    unavailable = _is_unavailable(exc)
    logger.warning(
        "%s: %s - %s",
        "Gateway unavailable" if unavailable else "Gateway error",
        exc.gateway_name or "unknown",
        exc,
    )
    return _error_response(
        "service_unavailable" if unavailable else "gateway_error",
        str(exc),
        status.HTTP_503_SERVICE_UNAVAILABLE if unavailable else status.HTTP_502_BAD_GATEWAY,
        gateway=exc.gateway_name,
        operation=exc.operation,
        error=exc.error,
    )


def custom_exception_handler(exc: Exception, context):
    """
    Translate exceptions raised by Control API views into error responses.

    Views call one collaborator and let its failure surface here; every body
    carries the cause in `error.message`. Unknown exceptions are logged and
    left to Django (500).
    """
    response = drf_exception_handler(exc, context)
    if response is not None:
        return _wrap_drf_error(exc, response)

    if isinstance(exc, domain.GatewayError):
        return _gateway_response(exc)

    for exc_type, error_status, http_status in _DOMAIN_ERRORS:
        if isinstance(exc, exc_type):
            return _error_response(error_status, str(exc), http_status)

    view = context.get("view")
    logger.exception(
        "Unhandled exception in API view: %s",
        type(view).__name__ if view is not None else "unknown",
        exc_info=exc,
    )
    return None
