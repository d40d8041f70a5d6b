"""
Endpoint tests for ``/api/notifications/``: the administrative
delivery-status list, the retry action and ``mine/``.
"""

from __future__ import annotations

import pytest
from django.urls import reverse
from rest_framework import status

from accounts.models import UserRole
from complaints.models import Complaint, ComplaintHistory, ComplaintStatus
from notifications.models import DeliveryStatus, Notification, NotificationEvent

pytestmark = pytest.mark.django_db


@pytest.fixture()
def rows(make_user, make_department, make_nature_type):
    dept = make_department()
    agent = make_user(username="agent", role=UserRole.EMPLOYEE, department=dept)
    alice = make_user(username="alice")
    bob = make_user(username="bob")
    complaint = Complaint.objects.create(
        title="Broken", description="d", error_type="e", error_screen="s",
        nature_type=make_nature_type(), client=alice, department=dept,
        current_assignee=agent, first_assignee=agent,
    )
    history = ComplaintHistory.objects.create(
        complaint=complaint, status=ComplaintStatus.NEW, department=dept,
    )

    def _note(recipient, channel="email", status=DeliveryStatus.PENDING, **extra):
        return Notification.objects.create(
            recipient=recipient, complaint=complaint, history=history,
            event_type=NotificationEvent.CREATED, message="hello",
            channel=channel, destination=recipient.email, status=status, **extra,
        )

    return {
        "agent": agent,
        "alice": alice,
        "bob": bob,
        "complaint": complaint,
        "sent": _note(alice, status=DeliveryStatus.SENT),
        "failed": _note(alice, channel="whatsapp", status=DeliveryStatus.FAILED, attempts=5, last_error="boom"),
        "pending": _note(agent),
    }


@pytest.fixture()
def admin(make_user):
    return make_user(username="root", role=UserRole.ADMIN)


class TestAdminList:

    def test_non_admin_is_forbidden(self, api_client, rows):
        api_client.force_authenticate(rows["agent"])
        response = api_client.get(reverse("notification-list"))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_sees_everything(self, api_client, rows, admin):
        api_client.force_authenticate(admin)
        response = api_client.get(reverse("notification-list"))
        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 3
        failed = next(r for r in response.data["results"] if r["id"] == rows["failed"].pk)
        assert failed["last_error"] == "boom"
        assert failed["recipient_username"] == "alice"

    @pytest.mark.parametrize(
        ("params", "expected"),
        [
            ({"status": "failed"}, {"failed"}),
            ({"channel": "email"}, {"sent", "pending"}),
            ({"status": "pending", "channel": "email"}, {"pending"}),
        ],
    )
    def test_filters(self, api_client, rows, admin, params, expected):
        api_client.force_authenticate(admin)
        response = api_client.get(reverse("notification-list"), params)
        ids = {r["id"] for r in response.data["results"]}
        assert ids == {rows[name].pk for name in expected}

    def test_filter_by_recipient(self, api_client, rows, admin):
        api_client.force_authenticate(admin)
        response = api_client.get(reverse("notification-list"), {"recipient": rows["agent"].pk})
        assert [r["id"] for r in response.data["results"]] == [rows["pending"].pk]

    def test_invalid_filter_is_rejected(self, api_client, rows, admin):
        api_client.force_authenticate(admin)
        response = api_client.get(reverse("notification-list"), {"status": "lost"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestRetry:

    def test_failed_notification_is_requeued(self, api_client, rows, admin):
        api_client.force_authenticate(admin)
        url = reverse("notification-retry", args=[rows["failed"].pk])

        response = api_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == DeliveryStatus.PENDING
        assert response.data["attempts"] == 0
        rows["failed"].refresh_from_db()
        assert rows["failed"].status == DeliveryStatus.PENDING

    def test_pending_notification_conflicts(self, api_client, rows, admin):
        api_client.force_authenticate(admin)
        response = api_client.post(reverse("notification-retry", args=[rows["pending"].pk]))
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_missing_notification(self, api_client, rows, admin):
        api_client.force_authenticate(admin)
        response = api_client.post(reverse("notification-retry", args=[999999]))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_non_admin_cannot_retry(self, api_client, rows):
        api_client.force_authenticate(rows["alice"])
        response = api_client.post(reverse("notification-retry", args=[rows["failed"].pk]))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        rows["failed"].refresh_from_db()
        assert rows["failed"].status == DeliveryStatus.FAILED


class TestMine:

    def test_only_own_rows_without_delivery_internals(self, api_client, rows):
        api_client.force_authenticate(rows["alice"])
        response = api_client.get(reverse("notification-mine"))

        assert response.status_code == status.HTTP_200_OK
        ids = {r["id"] for r in response.data["results"]}
        assert ids == {rows["sent"].pk, rows["failed"].pk}
        assert "last_error" not in response.data["results"][0]
        assert "destination" not in response.data["results"][0]

    def test_nothing_for_uninvolved_user(self, api_client, rows):
        api_client.force_authenticate(rows["bob"])
        response = api_client.get(reverse("notification-mine"))
        assert response.data["count"] == 0

    def test_requires_authentication(self, api_client):
        response = api_client.get(reverse("notification-mine"))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
