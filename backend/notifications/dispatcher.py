"""
notifications.dispatcher — Fan-out of complaint transitions.

Turns a committed-to-be ``TransitionOutcome`` into ``pending``
``Notification`` rows, one per (recipient, enabled channel) with a known
destination, and schedules delivery once the surrounding transaction
commits.

Architecture
------------
    Workflow service ──dispatch(outcome)──▶ NotificationDispatcher
                                                 │ rows (same tx, savepoint)
                                                 ▼
                                     transaction.on_commit
                                                 │
                                                 ▼
                          Celery: deliver_notification_stream(...)

Nothing here can fail the workflow operation: errors while building rows
roll back to a savepoint and are logged, and a broker outage while
scheduling only delays delivery until ``resume_pending_notifications``
picks the rows up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from django.db import transaction

from complaints.conf import get_setting
from core.models import SystemSettings

from . import messages
from .models import Notification, NotificationChannel

logger = logging.getLogger(__name__)

Stream = tuple[int, int, str]  # (recipient_id, complaint_id, channel)


@dataclass(frozen=True)
class TransitionOutcome:
    """Everything the dispatcher needs to know about one transition."""

    complaint: object
    event_type: str
    history: object
    actor: object = None
    old_status: str | None = None
    new_status: str | None = None
    old_assignee: object = None
    new_assignee: object = None
    old_department: object = None
    new_department: object = None


# channel → user attribute holding the destination
_DESTINATION_ATTR = {
    NotificationChannel.EMAIL: "email",
    NotificationChannel.WHATSAPP: "phone_number",
}


def _schedule_with_celery(stream: Stream) -> None:
    from .tasks import deliver_notification_stream

    deliver_notification_stream.delay(*stream)


class NotificationDispatcher:

    def __init__(self, scheduler: Callable[[Stream], None] | None = None) -> None:
        self._schedule = scheduler or _schedule_with_celery

    # ── Public API ──────────────────────────────────────────────────

    def dispatch(self, outcome: TransitionOutcome) -> list[Notification]:
        """
        Enqueue notifications for ``outcome``.  Must be called inside the
        workflow operation's transaction; returns the created rows (empty
        on failure).
        """
        try:
            with transaction.atomic():
                created = self._enqueue(outcome)
        except Exception:
            logger.exception(
                "Notification dispatch failed for complaint #%s (%s)",
                outcome.complaint.pk, outcome.event_type,
            )
            return []

        streams = sorted({(n.recipient_id, n.complaint_id, n.channel) for n in created})
        if streams:
            transaction.on_commit(lambda: self.schedule_streams(streams))

        logger.info(
            "Queued %d notification(s) [%s] for complaint #%s",
            len(created), outcome.event_type, outcome.complaint.pk,
        )
        return created

    def schedule_streams(self, streams: Iterable[Stream]) -> None:
        for stream in streams:
            try:
                self._schedule(stream)
            except Exception:
                # Rows stay pending; the periodic resume task retries them.
                logger.exception("Could not schedule delivery for stream %s", stream)

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def recipients_for(outcome: TransitionOutcome) -> list:
        """
        Old and new assignee, the client, and the managers of the old and
        new department; deduplicated, active only, never the actor.
        """
        candidates = [
            outcome.old_assignee,
            outcome.new_assignee,
            outcome.complaint.client,
        ]
        for department in (outcome.old_department, outcome.new_department):
            if department is not None:
                candidates.append(department.manager)

        actor_id = getattr(outcome.actor, "pk", None)
        seen: set[int] = set()
        result = []
        for user in candidates:
            if user is None or user.pk in seen:
                continue
            seen.add(user.pk)
            if not user.is_active or user.pk == actor_id:
                continue
            result.append(user)
        return result

    @staticmethod
    def enabled_channels() -> list[str]:
        return [
            channel
            for channel in get_setting("NOTIFICATION_CHANNELS")
            if channel in _DESTINATION_ATTR and SystemSettings.channel_enabled(channel)
        ]

    def _enqueue(self, outcome: TransitionOutcome) -> list[Notification]:
        recipients = self.recipients_for(outcome)
        channels = self.enabled_channels()
        if not recipients or not channels:
            return []

        body = messages.render(outcome)
        rows = []
        for user in recipients:
            for channel in channels:
                destination = (getattr(user, _DESTINATION_ATTR[channel], "") or "").strip()
                if not destination:
                    logger.debug(
                        "User %s has no %s destination; skipping", user.pk, channel,
                    )
                    continue
                rows.append(
                    Notification(
                        recipient=user,
                        complaint=outcome.complaint,
                        history=outcome.history,
                        event_type=outcome.event_type,
                        message=body,
                        channel=channel,
                        destination=destination,
                    )
                )
        # Saved one by one so ids are populated on every backend.
        for row in rows:
            row.save()
        return rows
