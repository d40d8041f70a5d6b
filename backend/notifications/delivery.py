"""
notifications.delivery — Drives notifications from ``pending`` to a
terminal state.

A *stream* is the set of notifications sharing (recipient, complaint,
channel).  Streams are drained in ``id`` order: the head must be sent or
permanently failed before the next one is attempted, so a recipient
never sees "Closed" before "In Progress".

Retry policy
------------
* success                    → ``sent`` (terminal), continue with the next row
* ``PermanentDeliveryError`` → ``failed``, continue with the next row
* ``TransientDeliveryError`` → ``attempts += 1``; after ``MAX_ATTEMPTS``
  the row is ``failed``; otherwise it stays ``pending`` with
  ``next_attempt_at = now + BACKOFF_SECONDS * 2 ** (attempts - 1)`` and
  draining stops until then.
* any other backend exception → ``failed`` with the exception recorded in
  ``last_error``, continue with the next row

All state lives in the ``Notification`` rows, so a restarted worker
resumes exactly where the previous one stopped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from complaints.conf import get_setting
from core.domain.exceptions import (
    Conflict,
    PermanentDeliveryError,
    TransientDeliveryError,
)
from core.domain.transactions import lock_for_update

from . import messages
from .backends import BackendRegistry, load_backends
from .dispatcher import Stream
from .models import DeliveryStatus, Notification

logger = logging.getLogger(__name__)


@dataclass
class DrainResult:
    sent: int = 0
    failed: int = 0
    retry_in: float | None = None


class NotificationDeliveryService:

    def __init__(self, backends: BackendRegistry | None = None) -> None:
        self._backends = backends

    @property
    def backends(self) -> BackendRegistry:
        if self._backends is None:
            self._backends = load_backends()
        return self._backends

    # ── Draining ────────────────────────────────────────────────────

    def drain_stream(
        self,
        recipient_id: int,
        complaint_id: int,
        channel: str,
        *,
        now: datetime | None = None,
    ) -> DrainResult:
        """Deliver the stream's pending notifications in FIFO order."""
        result = DrainResult()
        now = now or timezone.now()

        while True:
            with transaction.atomic():
                head = (
                    Notification.objects.select_for_update()
                    .filter(
                        recipient_id=recipient_id,
                        complaint_id=complaint_id,
                        channel=channel,
                        status=DeliveryStatus.PENDING,
                    )
                    .order_by("id")
                    .first()
                )
                if head is None:
                    break
                if head.next_attempt_at is not None and head.next_attempt_at > now:
                    result.retry_in = (head.next_attempt_at - now).total_seconds()
                    break
                if not self._attempt(head, now, result):
                    break

        return result

    def _attempt(self, notification: Notification, now: datetime, result: DrainResult) -> bool:
        """
        Try the head of a stream once.  Returns ``True`` if draining may
        continue with the next notification.
        """
        notification.attempts += 1
        try:
            backend = self.backends.for_channel(notification.channel)
            backend.send(
                notification.destination,
                notification.channel,
                notification.message,
                subject=messages.subject_for(notification.event_type),
            )
        except PermanentDeliveryError as exc:
            self._mark_failed(notification, str(exc))
            logger.warning(
                "Notification #%s permanently failed on %s: %s",
                notification.pk, notification.channel, exc,
            )
            result.failed += 1
            return True
        except TransientDeliveryError as exc:
            max_attempts = get_setting("MAX_ATTEMPTS")
            if notification.attempts >= max_attempts:
                self._mark_failed(notification, str(exc))
                logger.error(
                    "Notification #%s failed after %d attempts: %s",
                    notification.pk, notification.attempts, exc,
                )
                result.failed += 1
                return True

            delay = get_setting("BACKOFF_SECONDS") * 2 ** (notification.attempts - 1)
            notification.last_error = str(exc)
            notification.next_attempt_at = now + timedelta(seconds=delay)
            notification.save(
                update_fields=["attempts", "last_error", "next_attempt_at", "updated_at"]
            )
            logger.warning(
                "Notification #%s attempt %d failed, retrying in %ss: %s",
                notification.pk, notification.attempts, delay, exc,
            )
            result.retry_in = float(delay)
            return False
        except DatabaseError:
            raise
        except Exception as exc:
            self._mark_failed(notification, f"{type(exc).__name__}: {exc}")
            logger.exception(
                "Notification #%s failed with an unexpected error on %s",
                notification.pk, notification.channel,
            )
            result.failed += 1
            return True

        notification.status = DeliveryStatus.SENT
        notification.sent_at = now
        notification.last_error = ""
        notification.next_attempt_at = None
        notification.save(
            update_fields=[
                "status", "attempts", "sent_at", "last_error",
                "next_attempt_at", "updated_at",
            ]
        )
        result.sent += 1
        return True

    @staticmethod
    def _mark_failed(notification: Notification, error: str) -> None:
        notification.status = DeliveryStatus.FAILED
        notification.last_error = error
        notification.next_attempt_at = None
        notification.save(
            update_fields=["status", "attempts", "last_error", "next_attempt_at", "updated_at"]
        )

    # ── Recovery ────────────────────────────────────────────────────

    @staticmethod
    def due_streams(now: datetime | None = None) -> list[Stream]:
        """Streams with at least one pending notification that is due."""
        now = now or timezone.now()
        rows = (
            Notification.objects.filter(status=DeliveryStatus.PENDING)
            .filter(Q(next_attempt_at__isnull=True) | Q(next_attempt_at__lte=now))
            .order_by()
            .values_list("recipient_id", "complaint_id", "channel")
            .distinct()
        )
        return sorted(rows)

    # ── Administration ──────────────────────────────────────────────

    @staticmethod
    @transaction.atomic
    def retry(notification_id: int, *, on_commit=None) -> Notification:
        """
        Move a ``failed`` notification back to ``pending`` with a fresh
        attempt budget.  ``on_commit`` receives the stream to re-drain.

        Raises
        ------
        NotFound
            If the notification does not exist.
        Conflict
            If it is not currently ``failed``.
        """
        notification = lock_for_update(Notification, notification_id)
        if notification.status != DeliveryStatus.FAILED:
            raise Conflict(
                f"Only failed notifications can be retried "
                f"(notification #{notification.pk} is {notification.status}).",
                context={"notification_id": notification.pk, "status": notification.status},
            )

        notification.status = DeliveryStatus.PENDING
        notification.attempts = 0
        notification.last_error = ""
        notification.next_attempt_at = None
        notification.save(
            update_fields=["status", "attempts", "last_error", "next_attempt_at", "updated_at"]
        )
        logger.info("Notification #%s re-queued by administrator", notification.pk)

        if on_commit is not None:
            stream = (notification.recipient_id, notification.complaint_id, notification.channel)
            transaction.on_commit(lambda: on_commit(stream))
        return notification
