"""
Management command: dispatch_notifications
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Re-drains every notification stream that has due ``pending`` work.

By default the streams are drained in-process, which is useful when no
Celery worker is running; ``--enqueue`` hands them to the worker
instead.

Usage::

    python manage.py dispatch_notifications
    python manage.py dispatch_notifications --enqueue
"""

from django.core.management.base import BaseCommand

from notifications.delivery import NotificationDeliveryService
from notifications.tasks import deliver_notification_stream


class Command(BaseCommand):
    help = "Deliver pending notifications whose next attempt is due."

    def add_arguments(self, parser):
        parser.add_argument(
            "--enqueue",
            action="store_true",
            help="Queue each stream on Celery instead of draining it here.",
        )

    def handle(self, *args, **options):
        streams = NotificationDeliveryService.due_streams()
        if not streams:
            self.stdout.write("  No pending notifications are due.")
            return

        if options["enqueue"]:
            for stream in streams:
                deliver_notification_stream.delay(*stream)
            self.stdout.write(self.style.SUCCESS(
                f"  ✔  Queued {len(streams)} stream(s) for delivery."
            ))
            return

        service = NotificationDeliveryService()
        sent = failed = waiting = 0
        for recipient_id, complaint_id, channel in streams:
            result = service.drain_stream(recipient_id, complaint_id, channel)
            sent += result.sent
            failed += result.failed
            if result.retry_in is not None:
                waiting += 1

        self.stdout.write(self.style.SUCCESS(
            f"  Done!  {sent} sent, {failed} failed, "
            f"{waiting} stream(s) backing off."
        ))
