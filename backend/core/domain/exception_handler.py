"""
core.domain.exception_handler — DRF-compatible global exception handler.

Maps domain exceptions from ``core.domain.exceptions`` to proper
DRF ``Response`` objects so that views don't need per-endpoint
try/except boilerplate.

Registered in ``settings.py``::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    ConfigurationError,
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Domain exception → HTTP status code
_STATUS_MAP: dict[type, int] = {
    PermissionDenied:   403,
    NotFound:           404,
    InvalidTransition:  409,
    Conflict:           409,
    ConfigurationError: 503,
    ValidationError:    400,
    DomainError:        400,  # catch-all base class last
}

# Context is withheld from these so a caller learns nothing beyond the
# status code about resources outside their visibility.
_OPAQUE = (PermissionDenied, NotFound)


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler that also handles ``core.domain.exceptions``.

    The default DRF handler is called first.  If it returns ``None``
    (meaning DRF doesn't recognise the exception), we check whether
    it's one of our domain exceptions and return an appropriate response.
    """
    # Let DRF handle its own exceptions (ValidationError, AuthN, etc.)
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    # Most specific first
    for exc_class, status_code in _STATUS_MAP.items():
        if not isinstance(exc, exc_class):
            continue

        if isinstance(exc, ConfigurationError):
            logger.error(
                "Configuration error in %s: %s context=%s",
                context.get("view", "unknown"),
                exc,
                exc.context,
            )
            return Response(
                {"detail": ConfigurationError.default_message},
                status=status_code,
            )

        logger.warning(
            "Domain exception [%s] in %s: %s context=%s",
            exc_class.__name__,
            context.get("view", "unknown"),
            exc,
            exc.context,
        )
        if isinstance(exc, _OPAQUE):
            return Response({"detail": exc.default_message}, status=status_code)

        body = {"detail": str(exc)}
        if exc.context:
            body["context"] = {k: str(v) for k, v in exc.context.items()}
        return Response(body, status=status_code)

    # Not ours; let it propagate
    return None
