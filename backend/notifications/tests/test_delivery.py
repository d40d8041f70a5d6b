"""
Delivery tests: FIFO draining per stream, transient back-off,
permanent failure, the retry budget and the administrative retry.

Every test drives the in-memory backend, scripting failures per
destination.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.core.management import call_command
from django.test import override_settings
from django.utils import timezone

from accounts.models import UserRole
from complaints.models import Complaint, ComplaintHistory, ComplaintStatus
from core.domain.exceptions import (
    Conflict,
    NotFound,
    PermanentDeliveryError,
    TransientDeliveryError,
)
from notifications.backends import BackendRegistry, LocmemDeliveryBackend
from notifications.delivery import NotificationDeliveryService
from notifications.models import DeliveryStatus, Notification, NotificationEvent
from notifications.tasks import deliver_notification_stream, resume_pending_notifications

pytestmark = pytest.mark.django_db

ADDRESS = "alice@test.local"


@pytest.fixture()
def service():
    backend = LocmemDeliveryBackend()
    return NotificationDeliveryService(
        backends=BackendRegistry({"email": backend, "whatsapp": backend}),
    )


@pytest.fixture()
def stream(make_user, make_department, make_nature_type):
    """
    Return a factory appending pending email notifications to one
    (recipient, complaint, channel) stream, one history row each.
    """
    dept = make_department()
    agent = make_user(role=UserRole.EMPLOYEE, department=dept)
    client = make_user(username="alice", email=ADDRESS)
    complaint = Complaint.objects.create(
        title="Broken", description="d", error_type="e", error_screen="s",
        nature_type=make_nature_type(), client=client, department=dept,
        current_assignee=agent, first_assignee=agent,
    )

    def _add(message: str) -> Notification:
        history = ComplaintHistory.objects.create(
            complaint=complaint, status=ComplaintStatus.NEW,
            department=dept, notes=message,
        )
        return Notification.objects.create(
            recipient=client, complaint=complaint, history=history,
            event_type=NotificationEvent.STATUS_CHANGED, message=message,
            channel="email", destination=ADDRESS,
        )

    _add.key = (client.pk, complaint.pk, "email")
    return _add


def _drain(service, stream, **kwargs):
    return service.drain_stream(*stream.key, **kwargs)


class TestDrain:

    def test_success_is_terminal_and_fifo(self, service, stream, locmem_outbox):
        first, second, third = stream("one"), stream("two"), stream("three")

        result = _drain(service, stream)

        assert result.sent == 3
        assert result.retry_in is None
        assert [m.body for m in locmem_outbox] == ["one", "two", "three"]
        for n in (first, second, third):
            n.refresh_from_db()
            assert n.status == DeliveryStatus.SENT
            assert n.attempts == 1
            assert n.sent_at is not None

        # Draining again sends nothing twice.
        assert _drain(service, stream).sent == 0
        assert len(locmem_outbox) == 3

    def test_subject_follows_event_type(self, service, stream, locmem_outbox):
        stream("one")
        _drain(service, stream)
        assert locmem_outbox[0].subject == "Complaint Status Updated"

    def test_permanent_failure_fails_head_and_continues(self, service, stream, locmem_outbox):
        first, second = stream("one"), stream("two")
        LocmemDeliveryBackend.script(ADDRESS, [PermanentDeliveryError("mailbox gone")])

        result = _drain(service, stream)

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.status == DeliveryStatus.FAILED
        assert "mailbox gone" in first.last_error
        assert second.status == DeliveryStatus.SENT
        assert (result.sent, result.failed) == (1, 1)

    def test_unexpected_backend_error_fails_head_and_continues(self, service, stream, locmem_outbox):
        first, second = stream("one"), stream("two")
        LocmemDeliveryBackend.script(ADDRESS, [ValueError("bad header")])

        result = _drain(service, stream)

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.status == DeliveryStatus.FAILED
        assert first.attempts == 1
        assert "ValueError: bad header" in first.last_error
        assert second.status == DeliveryStatus.SENT
        assert (result.sent, result.failed) == (1, 1)
        assert _drain(service, stream).sent == 0

    @override_settings(COMPLAINTS={"BACKOFF_SECONDS": 30, "MAX_ATTEMPTS": 5})
    def test_transient_failure_backs_off_and_blocks_the_stream(self, service, stream, locmem_outbox):
        first, second = stream("one"), stream("two")
        LocmemDeliveryBackend.script(ADDRESS, [TransientDeliveryError("timeout")])
        now = timezone.now()

        result = _drain(service, stream, now=now)

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.status == DeliveryStatus.PENDING
        assert first.attempts == 1
        assert first.next_attempt_at == now + timedelta(seconds=30)
        assert second.status == DeliveryStatus.PENDING
        assert second.attempts == 0
        assert result.retry_in == 30
        assert locmem_outbox == []

        # Not yet due: nothing happens.
        early = _drain(service, stream, now=now + timedelta(seconds=10))
        assert early.sent == 0
        assert early.retry_in == pytest.approx(20)

        # Due: the head goes out first, then the rest.
        later = _drain(service, stream, now=now + timedelta(seconds=31))
        assert later.sent == 2
        assert [m.body for m in locmem_outbox] == ["one", "two"]

    @override_settings(COMPLAINTS={"BACKOFF_SECONDS": 10, "MAX_ATTEMPTS": 3})
    def test_backoff_doubles_until_attempts_are_exhausted(self, service, stream, locmem_outbox):
        head = stream("one")
        LocmemDeliveryBackend.script(ADDRESS, [TransientDeliveryError("503")] * 3)
        now = timezone.now()

        assert _drain(service, stream, now=now).retry_in == 10
        now += timedelta(seconds=11)
        assert _drain(service, stream, now=now).retry_in == 20
        now += timedelta(seconds=21)
        result = _drain(service, stream, now=now)

        head.refresh_from_db()
        assert head.status == DeliveryStatus.FAILED
        assert head.attempts == 3
        assert result.failed == 1
        assert result.retry_in is None

    def test_streams_are_independent(self, service, stream, make_user, locmem_outbox):
        stream("one")
        other = make_user(email="bob@test.local")
        blocked = Notification.objects.first()
        Notification.objects.create(
            recipient=other, complaint=blocked.complaint, history=blocked.history,
            event_type=NotificationEvent.STATUS_CHANGED, message="for bob",
            channel="email", destination="bob@test.local",
        )
        LocmemDeliveryBackend.script(ADDRESS, [TransientDeliveryError("slow")])

        _drain(service, stream)
        service.drain_stream(other.pk, blocked.complaint_id, "email")

        assert [m.body for m in locmem_outbox] == ["for bob"]

    def test_unknown_channel_fails_permanently(self, stream):
        stream("one")
        service = NotificationDeliveryService(backends=BackendRegistry({}))
        assert _drain(service, stream).failed == 1


class TestRecovery:

    def test_due_streams_skip_backing_off_and_finished_rows(self, service, stream):
        stream("one")
        assert NotificationDeliveryService.due_streams() == [stream.key]

        Notification.objects.update(next_attempt_at=timezone.now() + timedelta(minutes=5))
        assert NotificationDeliveryService.due_streams() == []

        Notification.objects.update(next_attempt_at=None, status=DeliveryStatus.SENT)
        assert NotificationDeliveryService.due_streams() == []

    def test_resume_task_drains_due_streams(self, stream, locmem_outbox):
        stream("one")
        stream("two")

        assert resume_pending_notifications() == 1

        assert [m.body for m in locmem_outbox] == ["one", "two"]
        assert not Notification.objects.filter(status=DeliveryStatus.PENDING).exists()

    def test_eager_task_does_not_reschedule_itself(self, stream, locmem_outbox):
        stream("one")
        LocmemDeliveryBackend.script(ADDRESS, [TransientDeliveryError("slow")])

        result = deliver_notification_stream.delay(*stream.key).get()

        assert result["sent"] == 0
        assert result["retry_in"] is not None
        assert Notification.objects.get().status == DeliveryStatus.PENDING

    def test_dispatch_notifications_command(self, stream, locmem_outbox):
        stream("one")
        call_command("dispatch_notifications")
        assert [m.body for m in locmem_outbox] == ["one"]


class TestAdministrativeRetry:

    def test_failed_goes_back_to_pending_with_fresh_budget(
        self, service, stream, locmem_outbox, django_capture_on_commit_callbacks,
    ):
        head = stream("one")
        LocmemDeliveryBackend.script(ADDRESS, [PermanentDeliveryError("bounced")])
        _drain(service, stream)
        head.refresh_from_db()
        assert head.status == DeliveryStatus.FAILED

        requeued = []
        with django_capture_on_commit_callbacks(execute=True):
            retried = NotificationDeliveryService.retry(head.pk, on_commit=requeued.append)

        assert retried.status == DeliveryStatus.PENDING
        assert retried.attempts == 0
        assert retried.last_error == ""
        assert requeued == [stream.key]

    def test_only_failed_notifications_can_be_retried(self, stream):
        head = stream("one")
        with pytest.raises(Conflict):
            NotificationDeliveryService.retry(head.pk)

    def test_missing_notification(self):
        with pytest.raises(NotFound):
            NotificationDeliveryService.retry(123456)
