"""
Notifications app models.

A ``Notification`` is one message to one recipient over one channel,
created ``pending`` by the dispatcher when a complaint transition
commits, and driven to ``sent`` or ``failed`` by the delivery service.
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class NotificationEvent(models.TextChoices):
    CREATED = "created", "Complaint Created"
    STATUS_CHANGED = "status_changed", "Status Changed"
    REASSIGNED = "reassigned", "Reassigned"


class NotificationChannel(models.TextChoices):
    EMAIL = "email", "Email"
    WHATSAPP = "whatsapp", "WhatsApp"


class DeliveryStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


class Notification(TimeStampedModel):
    """
    Delivery record for one (recipient, channel) pair of one complaint
    transition.

    Lifecycle: ``pending → sent`` (terminal) or ``pending → failed``;
    ``failed → pending`` only via the administrative retry.  Within a
    stream (same recipient, complaint and channel) notifications are
    delivered in ``id`` order.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    complaint = models.ForeignKey(
        "complaints.Complaint",
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Complaint",
    )
    history = models.ForeignKey(
        "complaints.ComplaintHistory",
        on_delete=models.PROTECT,
        related_name="notifications",
        verbose_name="Triggering Transition",
    )
    event_type = models.CharField(
        max_length=20,
        choices=NotificationEvent.choices,
        verbose_name="Event Type",
    )
    message = models.TextField(verbose_name="Message")
    channel = models.CharField(
        max_length=20,
        choices=NotificationChannel.choices,
        verbose_name="Channel",
    )
    destination = models.CharField(
        max_length=255,
        verbose_name="Destination",
        help_text="Email address or phone number at the time of dispatch.",
    )
    status = models.CharField(
        max_length=10,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
        db_index=True,
        verbose_name="Delivery Status",
    )
    attempts = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Attempts",
    )
    last_error = models.TextField(
        blank=True,
        default="",
        verbose_name="Last Error",
    )
    next_attempt_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Next Attempt At",
    )
    sent_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Sent At",
    )

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["recipient", "complaint", "channel", "history"],
                name="uniq_notification_per_transition_channel",
            ),
        ]
        indexes = [
            models.Index(
                fields=["recipient", "complaint", "channel", "status"],
                name="notification_stream_idx",
            ),
            models.Index(fields=["status", "next_attempt_at"], name="notification_due_idx"),
        ]

    def __str__(self):
        return f"[{self.channel}] {self.recipient} #{self.complaint_id} ({self.status})"
