"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  The global DRF exception handler in
``core.domain.exception_handler`` maps them to HTTP responses.

Mapping cheatsheet
------------------
┌──────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception     │ Meaning                      │ Code │
├──────────────────────┼──────────────────────────────┼──────┤
│ DomainError          │ generic business-rule error  │ 400  │
│ ValidationError      │ malformed / missing input    │ 400  │
│ PermissionDenied     │ principal lacks rights       │ 403  │
│ NotFound             │ absent or hidden resource    │ 404  │
│ Conflict             │ stale version / state clash  │ 409  │
│ InvalidTransition    │ non-adjacent / terminal move │ 409  │
│ ConfigurationError   │ operator-fixable setup issue │ 503  │
│ DeliveryError        │ never leaves the dispatcher  │  —   │
└──────────────────────┴──────────────────────────────┴──────┘

Every exception accepts a ``context`` mapping (complaint id, attempted
transition, ...) so that logs carry enough detail for auditing without
re-fetching the entity.

Recommended usage inside a service::

    from core.domain.exceptions import InvalidTransition

    if target != successor:
        raise InvalidTransition(
            current=complaint.status,
            target=target,
            context={"complaint_id": complaint.pk},
        )
"""

from __future__ import annotations

from typing import Any, Mapping


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    default_message = "A business rule was violated."

    def __init__(
        self,
        message: str | None = None,
        *,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.context: dict[str, Any] = dict(context or {})
        super().__init__(self.message)


class ValidationError(DomainError):
    """
    Input is malformed, incomplete, or references entities that do not
    exist / are inactive.  User-correctable.

    Maps to HTTP 400.
    """

    default_message = "The submitted data is invalid."

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if field:
            ctx.setdefault("field", field)
        super().__init__(message, context=ctx)
        self.field = field


class PermissionDenied(DomainError):
    """
    The authenticated principal does not have the required rights for
    this operation.  The message never reveals anything beyond
    "forbidden".

    Maps to HTTP 403.
    """

    default_message = "You do not have permission to perform this action."


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting principal given their role scope).

    Maps to HTTP 404.
    """

    default_message = "The requested resource was not found."


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: optimistic-lock failure (stale ``expected_version``).
    Maps to HTTP 409.
    """

    default_message = "The operation conflicts with the current state."


class InvalidTransition(Conflict):
    """
    A state-machine transition that is not allowed from the current status.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="New",
            target="Completed",
            reason="Only the immediate successor 'Assigned' is allowed.",
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"— {reason}")
            message = " ".join(parts) + "."
        ctx = dict(context or {})
        if current is not None:
            ctx.setdefault("current", current)
        if target is not None:
            ctx.setdefault("target", target)
        super().__init__(message, context=ctx)
        self.current = current
        self.target = target
        self.reason = reason


class ConfigurationError(DomainError):
    """
    The system is configured in a way that prevents the operation
    (e.g. a department without an active default assignee).

    Operator-fixable, not user-facing.  Maps to HTTP 503 with a generic
    body; the detail only goes to the logs.
    """

    default_message = "The system is not configured to handle this request."


class ImmutableRecordError(DomainError):
    """An attempt was made to update or delete a write-once audit record."""

    default_message = "Audit records are append-only."


class DeliveryError(DomainError):
    """
    A notification could not be handed to its transport.

    Raised by delivery backends and always handled inside the
    notification delivery service — never propagated to the operation
    that triggered the notification.
    """

    default_message = "The notification could not be delivered."


class TransientDeliveryError(DeliveryError):
    """Network / timeout / upstream-overload failure; worth retrying."""


class PermanentDeliveryError(DeliveryError):
    """The transport rejected the message for good (e.g. invalid destination)."""
