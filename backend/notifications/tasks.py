"""
Celery tasks for notification delivery.

``deliver_notification_stream`` is queued by the dispatcher on commit and
re-queues itself with a countdown while the stream's head is backing off.
``resume_pending_notifications`` runs on the beat schedule and re-drains
every stream with due work, so nothing is lost if a worker or the broker
was down when a transition committed.
"""

from __future__ import annotations

import logging

from celery import shared_task

from .delivery import NotificationDeliveryService

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="notifications.deliver_notification_stream", ignore_result=True)
def deliver_notification_stream(self, recipient_id: int, complaint_id: int, channel: str) -> dict:
    result = NotificationDeliveryService().drain_stream(recipient_id, complaint_id, channel)

    # Eager execution ignores countdowns; leave the retry to the beat task.
    if result.retry_in is not None and not self.request.is_eager:
        deliver_notification_stream.apply_async(
            args=(recipient_id, complaint_id, channel),
            countdown=result.retry_in,
        )

    logger.debug(
        "Stream (%s, %s, %s) drained: sent=%d failed=%d retry_in=%s",
        recipient_id, complaint_id, channel, result.sent, result.failed, result.retry_in,
    )
    return {"sent": result.sent, "failed": result.failed, "retry_in": result.retry_in}


@shared_task(name="notifications.resume_pending_notifications", ignore_result=True)
def resume_pending_notifications() -> int:
    streams = NotificationDeliveryService.due_streams()
    for stream in streams:
        deliver_notification_stream.delay(*stream)
    if streams:
        logger.info("Resumed delivery for %d notification stream(s)", len(streams))
    return len(streams)
