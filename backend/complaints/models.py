"""
Complaints app models.

Covers the complaint aggregate and its fixed resolution workflow —
from client submission, through assignment and work, to closure — plus
the append-only history every workflow operation writes.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.domain.exceptions import ImmutableRecordError
from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class ComplaintStatus(models.TextChoices):
    """
    Linear resolution workflow.  Declaration order **is** the workflow
    order; a complaint may only move to the member declared right after
    its current one.
    """

    NEW = "New", "New"
    ASSIGNED = "Assigned", "Assigned"
    IN_PROGRESS = "In Progress", "In Progress"
    COMPLETED = "Completed", "Completed"
    DONE = "Done", "Done"
    CLOSED = "Closed", "Closed"


STATUS_SEQUENCE: tuple[str, ...] = tuple(ComplaintStatus.values)


def successor_of(status: str) -> str | None:
    """Return the status that follows ``status``, or ``None`` at the end."""
    idx = STATUS_SEQUENCE.index(status)
    if idx + 1 < len(STATUS_SEQUENCE):
        return STATUS_SEQUENCE[idx + 1]
    return None


# ────────────────────────────────────────────────────────────────────
# Reference data
# ────────────────────────────────────────────────────────────────────

class NatureType(TimeStampedModel):
    """
    Administrator-managed category describing what a complaint is about
    (e.g. "Billing", "Outage").  Only active types can be chosen for new
    complaints.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        verbose_name="Active",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_nature_types",
        verbose_name="Created By",
    )

    class Meta:
        verbose_name = "Nature Type"
        verbose_name_plural = "Nature Types"
        ordering = ["name"]

    def __str__(self):
        return self.name


# ────────────────────────────────────────────────────────────────────
# Aggregate
# ────────────────────────────────────────────────────────────────────

class Complaint(TimeStampedModel):
    """
    A client-submitted complaint.

    ``status``, ``current_assignee`` and ``department`` are only ever
    changed by ``ComplaintWorkflowService``, which writes a matching
    ``ComplaintHistory`` row in the same transaction.  ``version`` is
    bumped on every such change.
    """

    title = models.CharField(
        max_length=255,
        verbose_name="Title",
    )
    description = models.TextField(
        verbose_name="Description",
    )
    error_type = models.CharField(
        max_length=100,
        verbose_name="Error Type",
    )
    error_screen = models.CharField(
        max_length=255,
        verbose_name="Error Screen",
        help_text="Screen or module where the problem occurred.",
    )
    nature_type = models.ForeignKey(
        NatureType,
        on_delete=models.PROTECT,
        related_name="complaints",
        verbose_name="Nature Type",
    )
    remark = models.TextField(
        blank=True,
        default="",
        verbose_name="Remark",
    )
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="filed_complaints",
        verbose_name="Client",
    )
    status = models.CharField(
        max_length=20,
        choices=ComplaintStatus.choices,
        default=ComplaintStatus.NEW,
        verbose_name="Status",
    )
    department = models.ForeignKey(
        "accounts.Department",
        on_delete=models.PROTECT,
        related_name="complaints",
        verbose_name="Department",
    )
    current_assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="assigned_complaints",
        verbose_name="Current Assignee",
    )
    first_assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="first_assigned_complaints",
        verbose_name="First Assignee",
    )
    version = models.PositiveIntegerField(
        default=1,
        verbose_name="Version",
        help_text="Incremented on every workflow change.",
    )

    class Meta:
        verbose_name = "Complaint"
        verbose_name_plural = "Complaints"
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["status"], name="complaint_status_idx"),
            models.Index(fields=["department", "status"], name="complaint_dept_status_idx"),
        ]

    def __str__(self):
        return f"Complaint #{self.pk}: {self.title}"

    @property
    def is_closed(self) -> bool:
        return self.status == ComplaintStatus.CLOSED


class ComplaintAttachment(models.Model):
    """
    Metadata for a file attached to a complaint.  The bytes live in
    external storage; only the URL and descriptive fields are kept here.
    """

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="attachments",
        verbose_name="Complaint",
    )
    filename = models.CharField(max_length=255, verbose_name="Stored Filename")
    original_name = models.CharField(max_length=255, verbose_name="Original Name")
    mime_type = models.CharField(max_length=100, verbose_name="MIME Type")
    size = models.PositiveBigIntegerField(verbose_name="Size (bytes)")
    url = models.URLField(max_length=500, verbose_name="URL")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="+",
        verbose_name="Uploaded By",
    )
    uploaded_at = models.DateTimeField(
        default=timezone.now,
        verbose_name="Uploaded At",
    )

    class Meta:
        verbose_name = "Complaint Attachment"
        verbose_name_plural = "Complaint Attachments"
        ordering = ["uploaded_at", "id"]

    def __str__(self):
        return self.original_name


# ────────────────────────────────────────────────────────────────────
# Audit trail
# ────────────────────────────────────────────────────────────────────

class ComplaintHistoryQuerySet(models.QuerySet):
    """Refuses bulk mutation of history rows."""

    def update(self, **kwargs):
        raise ImmutableRecordError(context={"model": "ComplaintHistory", "op": "update"})

    def delete(self):
        raise ImmutableRecordError(context={"model": "ComplaintHistory", "op": "delete"})


class ComplaintHistory(models.Model):
    """
    Append-only record of one workflow operation on a complaint.

    Stores the *resulting* status, department and assignee, so replaying
    the rows of a complaint in ``(timestamp, id)`` order reproduces its
    current state.  Rows are never updated or deleted.
    """

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.PROTECT,
        related_name="history",
        verbose_name="Complaint",
    )
    status = models.CharField(
        max_length=20,
        choices=ComplaintStatus.choices,
        verbose_name="Resulting Status",
    )
    assigned_from = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Assigned From",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Assigned To",
    )
    department = models.ForeignKey(
        "accounts.Department",
        on_delete=models.PROTECT,
        related_name="+",
        verbose_name="Resulting Department",
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="complaint_changes",
        verbose_name="Changed By",
    )
    notes = models.TextField(
        blank=True,
        default="",
        verbose_name="Notes",
    )
    timestamp = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        verbose_name="Timestamp",
    )

    objects = ComplaintHistoryQuerySet.as_manager()

    class Meta:
        verbose_name = "Complaint History"
        verbose_name_plural = "Complaint History"
        ordering = ["timestamp", "id"]
        indexes = [
            models.Index(fields=["complaint", "timestamp", "id"], name="history_replay_idx"),
        ]

    def __str__(self):
        return f"Complaint #{self.complaint_id} → {self.status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError(
                context={"model": "ComplaintHistory", "pk": self.pk, "op": "update"}
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError(
            context={"model": "ComplaintHistory", "pk": self.pk, "op": "delete"}
        )
