"""
core.domain.transactions — Helpers for safe state transitions.

Wraps ``transaction.atomic`` and ``select_for_update`` into reusable
patterns so that every service follows the same concurrency-safe
approach:

* state-transition reads always lock the row first
  (``select_for_update``) so that two writers on the same complaint
  are serialised;
* side records that must share the caller's unit of work (audit rows,
  queued notifications) assert they are running inside one.

Usage::

    from core.domain.transactions import lock_for_update, require_atomic

    with transaction.atomic():
        complaint = lock_for_update(Complaint, complaint_id)
        ...
"""

from __future__ import annotations

from typing import Any, TypeVar

from django.db import models, transaction

from core.domain.exceptions import NotFound

M = TypeVar("M", bound=models.Model)


def lock_for_update(
    model_class: type[M],
    pk: Any,
    *,
    select_related: tuple[str, ...] = (),
) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class:    The Django model class.
        pk:             Primary key value.
        select_related: Optional relations to join in the same query.
                        Only the base row is locked (``of=("self",)``).

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    qs = model_class.objects.all()
    if select_related:
        qs = qs.select_related(*select_related)
    try:
        return qs.select_for_update(of=("self",)).get(pk=pk)
    except (model_class.DoesNotExist, ValueError, TypeError):
        raise NotFound(
            f"{model_class.__name__} with pk={pk} does not exist.",
            context={"model": model_class.__name__, "pk": pk},
        )


def require_atomic(operation: str, using: str | None = None) -> None:
    """
    Raise ``RuntimeError`` unless the current connection is inside an
    ``atomic()`` block.

    Used by write paths whose records must commit or roll back together
    with the caller's mutation.
    """
    if not transaction.get_connection(using).in_atomic_block:
        raise RuntimeError(
            f"{operation} must run inside the caller's transaction.atomic() block."
        )
