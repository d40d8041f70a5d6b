"""
Service-level tests for ``ComplaintWorkflowService``.

The service is assembled by hand with a dispatcher whose scheduler only
records streams, so no Celery task runs here.
"""

from __future__ import annotations

import threading

import pytest
from django.db import connection

from accounts.models import UserRole
from complaints.audit import AuditTrailRecorder
from complaints.models import Complaint, ComplaintAttachment, ComplaintHistory, ComplaintStatus
from complaints.routing import RoutingResolver
from complaints.services import ComplaintWorkflowService
from core.domain.exceptions import (
    Conflict,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from core.models import SystemSettings
from notifications.dispatcher import NotificationDispatcher
from notifications.models import Notification, NotificationEvent

pytestmark = pytest.mark.django_db

ORDER = ["New", "Assigned", "In Progress", "Completed", "Done", "Closed"]


@pytest.fixture()
def scheduled():
    return []


@pytest.fixture()
def workflow(scheduled):
    return ComplaintWorkflowService(
        recorder=AuditTrailRecorder(),
        dispatcher=NotificationDispatcher(scheduler=scheduled.append),
        resolver=RoutingResolver(),
    )


@pytest.fixture()
def org(make_user, make_department, make_nature_type):
    """
    Two departments.  Support: manager ``boss``, default assignee
    ``agent``, plus ``peer``.  Billing: default assignee ``biller``.
    Routing defaults to Support.
    """
    support = make_department(name="Support")
    billing = make_department(name="Billing")
    agent = make_user(username="agent", role=UserRole.EMPLOYEE, department=support)
    peer = make_user(username="peer", role=UserRole.EMPLOYEE, department=support)
    boss = make_user(username="boss", role=UserRole.MANAGER, department=support)
    biller = make_user(username="biller", role=UserRole.EMPLOYEE, department=billing)
    make_department.staff(support, default_assignee=agent, manager=boss)
    make_department.staff(billing, default_assignee=biller)
    settings_row = SystemSettings.ensure_system_settings()
    settings_row.default_department = support
    settings_row.save()
    return {
        "support": support,
        "billing": billing,
        "agent": agent,
        "peer": peer,
        "boss": boss,
        "biller": biller,
        "alice": make_user(username="alice"),
        "bob": make_user(username="bob"),
        "admin": make_user(username="root", role=UserRole.ADMIN),
        "nature": make_nature_type(name="Outage"),
    }


def _fields(org, **overrides):
    data = {
        "title": "Cannot log in",
        "description": "The login page spins forever.",
        "error_type": "Timeout",
        "error_screen": "Login",
        "nature_type_id": org["nature"].pk,
    }
    data.update(overrides)
    return data


@pytest.fixture()
def filed(workflow, org, principal):
    return workflow.create(_fields(org), principal(org["alice"]))


# ═══════════════════════════════════════════════════════════════════
#  Create
# ═══════════════════════════════════════════════════════════════════

class TestCreate:

    def test_new_complaint_goes_to_default_assignee(self, filed, org):
        assert filed.status == ComplaintStatus.NEW
        assert filed.department == org["support"]
        assert filed.current_assignee == org["agent"]
        assert filed.first_assignee == org["agent"]
        assert filed.client == org["alice"]
        assert filed.version == 1

    def test_creation_writes_one_history_row(self, filed, org):
        rows = list(ComplaintHistory.objects.filter(complaint=filed))
        assert len(rows) == 1
        assert rows[0].status == ComplaintStatus.NEW
        assert rows[0].assigned_to == org["agent"]
        assert rows[0].changed_by == org["alice"]
        assert rows[0].notes == "Complaint created (default)"

    def test_creation_notifies_assignee_and_manager_but_not_the_filer(self, filed, org):
        recipients = set(
            Notification.objects.filter(complaint=filed).values_list("recipient__username", flat=True)
        )
        assert recipients == {"agent", "boss"}
        assert set(
            Notification.objects.filter(complaint=filed).values_list("event_type", flat=True)
        ) == {NotificationEvent.CREATED}

    def test_delivery_is_scheduled_only_on_commit(
        self, workflow, org, principal, scheduled, django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            complaint = workflow.create(_fields(org), principal(org["alice"]))
        assert scheduled
        assert {stream[1] for stream in scheduled} == {complaint.pk}

    def test_employee_cannot_file(self, workflow, org, principal):
        with pytest.raises(PermissionDenied):
            workflow.create(_fields(org), principal(org["agent"]))
        assert not Complaint.objects.exists()

    @pytest.mark.parametrize("field", ["title", "description", "error_type", "error_screen"])
    def test_required_text_fields(self, workflow, org, principal, field):
        with pytest.raises(ValidationError) as excinfo:
            workflow.create(_fields(org, **{field: "   "}), principal(org["alice"]))
        assert excinfo.value.field == field

    def test_inactive_nature_type_is_rejected(self, workflow, org, principal, make_nature_type):
        retired = make_nature_type(name="Retired", is_active=False)
        with pytest.raises(ValidationError):
            workflow.create(_fields(org, nature_type_id=retired.pk), principal(org["alice"]))

    def test_client_cannot_file_for_someone_else(self, workflow, org, principal):
        with pytest.raises(PermissionDenied):
            workflow.create(_fields(org, client_id=org["bob"].pk), principal(org["alice"]))

    def test_manager_files_on_behalf_of_client(self, workflow, org, principal):
        complaint = workflow.create(_fields(org, client_id=org["bob"].pk), principal(org["boss"]))
        assert complaint.client == org["bob"]
        assert complaint.history.get().changed_by == org["boss"]

    def test_client_cannot_pick_the_department(self, workflow, org, principal):
        with pytest.raises(PermissionDenied):
            workflow.create(
                _fields(org, department_id=org["billing"].pk), principal(org["alice"]),
            )
        assert not Complaint.objects.exists()

    def test_manager_files_into_a_department_they_cannot_read(self, workflow, org, principal):
        boss = principal(org["boss"])
        complaint = workflow.create(
            _fields(org, client_id=org["bob"].pk, department_id=org["billing"].pk), boss,
        )

        assert complaint.department == org["billing"]
        assert complaint.current_assignee == org["biller"]
        assert complaint.history.get().notes == "Complaint created (requested)"
        assert list(complaint.attachments.all()) == []
        with pytest.raises(NotFound):
            workflow.get(complaint.pk, boss)

    def test_enabled_auto_routing_overrides_the_requested_department(self, workflow, org, principal):
        row = SystemSettings.ensure_system_settings()
        row.auto_routing_enabled = True
        row.save()
        row.auto_routing_departments.set([org["billing"]])

        complaint = workflow.create(
            _fields(org, department_id=org["support"].pk), principal(org["admin"]),
        )

        assert complaint.department == org["billing"]
        assert complaint.history.get().notes.startswith("Complaint created (auto:")

    def test_attachments_are_stored(self, workflow, org, principal):
        attachment = {
            "filename": "a1b2.png",
            "original_name": "screenshot.png",
            "mime_type": "image/png",
            "size": 2048,
            "url": "https://files.example.com/a1b2.png",
        }
        complaint = workflow.create(_fields(org, attachments=[attachment]), principal(org["alice"]))
        stored = ComplaintAttachment.objects.get(complaint=complaint)
        assert stored.original_name == "screenshot.png"
        assert stored.uploaded_by == org["alice"]


# ═══════════════════════════════════════════════════════════════════
#  Advance
# ═══════════════════════════════════════════════════════════════════

class TestAdvance:

    def test_full_walk_to_closed(self, workflow, filed, org, principal):
        boss = principal(org["boss"])
        for target in ORDER[1:]:
            complaint = workflow.advance(filed.pk, target, boss)
            assert complaint.status == target

        assert complaint.version == len(ORDER)
        statuses = list(
            ComplaintHistory.objects.filter(complaint=filed).values_list("status", flat=True)
        )
        assert statuses == ORDER
        assert AuditTrailRecorder().replay(filed.pk).status == ComplaintStatus.CLOSED

    @pytest.mark.parametrize("target", ["New", "In Progress", "Completed", "Done", "Closed"])
    def test_only_the_immediate_successor_is_allowed(self, workflow, filed, org, principal, target):
        with pytest.raises(InvalidTransition):
            workflow.advance(filed.pk, target, principal(org["boss"]))
        filed.refresh_from_db()
        assert filed.status == ComplaintStatus.NEW
        assert ComplaintHistory.objects.filter(complaint=filed).count() == 1

    def test_unknown_status_is_a_validation_error(self, workflow, filed, org, principal):
        with pytest.raises(ValidationError):
            workflow.advance(filed.pk, "Escalated", principal(org["boss"]))

    def test_closed_complaint_cannot_move(self, workflow, filed, org, principal):
        boss = principal(org["boss"])
        for target in ORDER[1:]:
            workflow.advance(filed.pk, target, boss)

        for target in ORDER:
            with pytest.raises(InvalidTransition):
                workflow.advance(filed.pk, target, boss)
        with pytest.raises(InvalidTransition):
            workflow.reassign(filed.pk, org["peer"].pk, boss)

    def test_client_never_advances(self, workflow, filed, org, principal):
        with pytest.raises(PermissionDenied):
            workflow.advance(filed.pk, "Assigned", principal(org["alice"]))
        with pytest.raises(PermissionDenied):
            workflow.advance(filed.pk, "Assigned", principal(org["bob"]))

    def test_unassigned_employee_does_not_see_the_complaint(self, workflow, filed, org, principal):
        with pytest.raises(NotFound):
            workflow.advance(filed.pk, "Assigned", principal(org["peer"]))

    def test_manager_of_another_department_does_not_see_it(
        self, workflow, filed, org, principal, make_user,
    ):
        other_boss = make_user(role=UserRole.MANAGER, department=org["billing"])
        with pytest.raises(NotFound):
            workflow.advance(filed.pk, "Assigned", principal(other_boss))

    def test_assignee_advances(self, workflow, filed, org, principal):
        complaint = workflow.advance(filed.pk, "Assigned", principal(org["agent"]), notes="on it")
        assert complaint.status == ComplaintStatus.ASSIGNED
        latest = ComplaintHistory.objects.filter(complaint=filed).last()
        assert latest.notes == "on it"
        assert latest.changed_by == org["agent"]

    def test_missing_complaint_is_not_found(self, workflow, org, principal):
        with pytest.raises(NotFound):
            workflow.advance(999999, "Assigned", principal(org["admin"]))

    def test_stale_expected_version_conflicts(self, workflow, filed, org, principal):
        boss = principal(org["boss"])
        workflow.advance(filed.pk, "Assigned", boss, expected_version=1)
        with pytest.raises(Conflict) as excinfo:
            workflow.advance(filed.pk, "In Progress", boss, expected_version=1)
        assert not isinstance(excinfo.value, InvalidTransition)

    def test_second_identical_advance_fails_after_first_commits(self, workflow, filed, org, principal):
        workflow.advance(filed.pk, "Assigned", principal(org["boss"]))
        with pytest.raises(InvalidTransition):
            workflow.advance(filed.pk, "Assigned", principal(org["agent"]))
        assert ComplaintHistory.objects.filter(complaint=filed, status="Assigned").count() == 1

    @pytest.mark.django_db(transaction=True)
    def test_concurrent_identical_advances_only_one_succeeds(self, workflow, org, principal):
        if not connection.features.has_select_for_update:
            pytest.skip("database has no row-level locks")

        complaint = workflow.create(_fields(org), principal(org["alice"]))
        boss = principal(org["boss"])
        barrier = threading.Barrier(2)
        outcomes: list[str] = []

        def _advance():
            try:
                barrier.wait(timeout=10)
                workflow.advance(complaint.pk, "Assigned", boss)
                outcomes.append("ok")
            except Exception as exc:
                outcomes.append(type(exc).__name__)
            finally:
                connection.close()

        threads = [threading.Thread(target=_advance) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(outcomes) == ["InvalidTransition", "ok"]
        complaint.refresh_from_db()
        assert complaint.status == ComplaintStatus.ASSIGNED
        assert complaint.version == 2
        assert ComplaintHistory.objects.filter(complaint=complaint, status="Assigned").count() == 1

    def test_status_change_notifies_assignee_and_client(self, workflow, filed, org, principal):
        complaint = workflow.advance(filed.pk, "Assigned", principal(org["boss"]), notes="acknowledged")
        history = ComplaintHistory.objects.filter(complaint=complaint).last()
        recipients = set(
            Notification.objects.filter(history=history).values_list("recipient__username", flat=True)
        )
        assert recipients == {"agent", "alice"}
        assert "acknowledged" in Notification.objects.filter(history=history).first().message


# ═══════════════════════════════════════════════════════════════════
#  Reassign
# ═══════════════════════════════════════════════════════════════════

class TestReassign:

    def test_manager_reassigns_within_department(self, workflow, filed, org, principal):
        complaint = workflow.reassign(filed.pk, org["peer"].pk, principal(org["boss"]), notes="cover")
        assert complaint.current_assignee == org["peer"]
        assert complaint.first_assignee == org["agent"]
        assert complaint.status == ComplaintStatus.NEW
        assert complaint.version == 2

        latest = ComplaintHistory.objects.filter(complaint=filed).last()
        assert latest.assigned_from == org["agent"]
        assert latest.assigned_to == org["peer"]
        assert latest.status == ComplaintStatus.NEW

    def test_reassignment_notifies_old_and_new_assignee(self, workflow, filed, org, principal):
        workflow.reassign(filed.pk, org["peer"].pk, principal(org["boss"]))
        latest = ComplaintHistory.objects.filter(complaint=filed).last()
        recipients = set(
            Notification.objects.filter(history=latest).values_list("recipient__username", flat=True)
        )
        assert recipients == {"agent", "peer", "alice"}

    def test_manager_cannot_move_complaint_to_another_department(self, workflow, filed, org, principal):
        with pytest.raises(PermissionDenied):
            workflow.reassign(
                filed.pk, org["biller"].pk, principal(org["boss"]),
                new_department_id=org["billing"].pk,
            )

    def test_admin_moves_complaint_across_departments(self, workflow, filed, org, principal):
        complaint = workflow.reassign(
            filed.pk, org["biller"].pk, principal(org["admin"]),
            new_department_id=org["billing"].pk,
        )
        assert complaint.department == org["billing"]
        assert AuditTrailRecorder().replay(filed.pk).department_id == org["billing"].pk

    def test_employee_needs_hand_off_grant(self, workflow, filed, org, principal):
        with pytest.raises(PermissionDenied):
            workflow.reassign(filed.pk, org["peer"].pk, principal(org["agent"]))

    def test_employee_with_grant_hands_off_within_department(
        self, workflow, filed, org, principal, make_user,
    ):
        from django.contrib.auth.models import Permission

        from accounts.models import User
        from core.permissions_constants import AccountsPerms

        org["agent"].user_permissions.add(
            Permission.objects.get(codename=AccountsPerms.CAN_HAND_OFF_WITHIN_DEPARTMENT)
        )
        agent = User.objects.get(pk=org["agent"].pk)
        p = principal(agent)
        assert p.can_hand_off

        complaint = workflow.reassign(filed.pk, org["peer"].pk, p)
        assert complaint.current_assignee == org["peer"]

        # After handing off, the former assignee no longer sees it.
        with pytest.raises(NotFound):
            workflow.reassign(filed.pk, agent.pk, p)

    def test_client_cannot_be_assignee(self, workflow, filed, org, principal):
        with pytest.raises(ValidationError):
            workflow.reassign(filed.pk, org["bob"].pk, principal(org["admin"]))

    def test_reassigning_to_current_target_is_rejected(self, workflow, filed, org, principal):
        with pytest.raises(ValidationError):
            workflow.reassign(filed.pk, org["agent"].pk, principal(org["boss"]))

    def test_stale_version_conflicts(self, workflow, filed, org, principal):
        with pytest.raises(Conflict):
            workflow.reassign(filed.pk, org["peer"].pk, principal(org["boss"]), expected_version=7)


# ═══════════════════════════════════════════════════════════════════
#  Reads and dispatch isolation
# ═══════════════════════════════════════════════════════════════════

class TestReads:

    def test_get_hides_other_clients_complaints(self, workflow, filed, org, principal):
        assert workflow.get(filed.pk, principal(org["alice"])) == filed
        with pytest.raises(NotFound):
            workflow.get(filed.pk, principal(org["bob"]))

    def test_list_is_scoped_and_filterable(self, workflow, filed, org, principal):
        other = workflow.create(
            _fields(
                org, title="Invoice wrong",
                client_id=org["bob"].pk, department_id=org["billing"].pk,
            ),
            principal(org["admin"]),
        )
        workflow.advance(filed.pk, "Assigned", principal(org["boss"]))

        admin = principal(org["admin"])
        assert set(workflow.list(admin)) == {filed, other}
        assert list(workflow.list(admin, {"status": "Assigned"})) == [filed]
        assert list(workflow.list(admin, {"department": org["billing"].pk})) == [other]
        assert list(workflow.list(admin, {"search": "invoice"})) == [other]
        assert list(workflow.list(principal(org["bob"]))) == [other]
        assert list(workflow.list(principal(org["boss"]))) == [filed]


class _ExplodingDispatcher(NotificationDispatcher):
    def _enqueue(self, outcome):
        raise RuntimeError("template exploded")


def test_dispatch_failure_does_not_undo_the_transition(org, principal):
    workflow = ComplaintWorkflowService(
        recorder=AuditTrailRecorder(),
        dispatcher=_ExplodingDispatcher(scheduler=lambda stream: None),
        resolver=RoutingResolver(),
    )
    complaint = workflow.create(_fields(org), principal(org["alice"]))
    complaint = workflow.advance(complaint.pk, "Assigned", principal(org["boss"]))

    complaint.refresh_from_db()
    assert complaint.status == ComplaintStatus.ASSIGNED
    assert ComplaintHistory.objects.filter(complaint=complaint).count() == 2
    assert not Notification.objects.exists()
