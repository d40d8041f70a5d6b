"""
Integration tests for the core endpoints: system constants, routing
settings and the role-aware dashboard.
"""

from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Department, User, UserRole
from complaints.models import Complaint, ComplaintHistory, ComplaintStatus, NatureType
from core.models import RoutingPolicy, SystemSettings


class TestSystemConstants(TestCase):

    def test_constants_are_public_and_in_workflow_order(self):
        response = APIClient().get(reverse("core:system-constants"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        statuses = [item["value"] for item in response.data["complaint_statuses"]]
        self.assertEqual(
            statuses,
            ["New", "Assigned", "In Progress", "Completed", "Done", "Closed"],
        )
        roles = {item["value"] for item in response.data["roles"]}
        self.assertEqual(roles, {"client", "employee", "manager", "admin"})
        channels = {item["value"] for item in response.data["notification_channels"]}
        self.assertEqual(channels, {"email", "whatsapp"})
        policies = {item["value"] for item in response.data["routing_policies"]}
        self.assertEqual(policies, {"random", "round_robin", "least_loaded"})


class TestRoutingSettings(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(username="root", password="x", role=UserRole.ADMIN)
        cls.client_user = User.objects.create_user(username="cust", password="x")
        cls.support = Department.objects.create(name="Support")
        cls.billing = Department.objects.create(name="Billing")
        cls.closed = Department.objects.create(name="Closed Office", is_active=False)

    def setUp(self):
        self.client = APIClient()
        self.url = reverse("core:routing-settings")

    def test_non_admin_is_forbidden(self):
        self.client.force_authenticate(self.client_user)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.put(self.url, {"auto_routing_enabled": True}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_reads_defaults(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertFalse(response.data["auto_routing_enabled"])
        self.assertEqual(response.data["auto_routing_department_ids"], [])
        self.assertIsNone(response.data["default_department_id"])
        self.assertEqual(response.data["routing_policy"], RoutingPolicy.RANDOM)

    def test_admin_updates_configuration(self):
        self.client.force_authenticate(self.admin)
        response = self.client.put(
            self.url,
            {
                "auto_routing_enabled": True,
                "auto_routing_department_ids": [self.support.pk, self.billing.pk],
                "default_department_id": self.support.pk,
                "routing_policy": RoutingPolicy.ROUND_ROBIN,
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)

        row = SystemSettings.ensure_system_settings()
        self.assertTrue(row.auto_routing_enabled)
        self.assertEqual(row.routing_policy, RoutingPolicy.ROUND_ROBIN)
        self.assertEqual(row.default_department_id, self.support.pk)
        self.assertEqual(
            set(row.auto_routing_departments.values_list("pk", flat=True)),
            {self.support.pk, self.billing.pk},
        )

    def test_inactive_department_is_rejected(self):
        self.client.force_authenticate(self.admin)
        response = self.client.put(
            self.url,
            {"auto_routing_department_ids": [self.support.pk, self.closed.pk]},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(SystemSettings.ensure_system_settings().auto_routing_departments.exists())

    def test_unknown_policy_is_rejected(self):
        self.client.force_authenticate(self.admin)
        response = self.client.put(self.url, {"routing_policy": "alphabetical"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TestDashboard(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.support = Department.objects.create(name="Support")
        cls.billing = Department.objects.create(name="Billing")
        cls.agent = User.objects.create_user(
            username="agent", password="x", role=UserRole.EMPLOYEE, department=cls.support,
        )
        cls.manager = User.objects.create_user(
            username="boss", password="x", role=UserRole.MANAGER, department=cls.support,
        )
        cls.biller = User.objects.create_user(
            username="biller", password="x", role=UserRole.EMPLOYEE, department=cls.billing,
        )
        cls.customer = User.objects.create_user(username="cust", password="x")
        nature = NatureType.objects.create(name="Outage")

        def file(department, assignee, state):
            complaint = Complaint.objects.create(
                title=f"{department.name} {state}", description="d",
                error_type="e", error_screen="s", nature_type=nature,
                client=cls.customer, department=department, status=state,
                current_assignee=assignee, first_assignee=assignee,
            )
            ComplaintHistory.objects.create(
                complaint=complaint, status=state, assigned_to=assignee,
                department=department, changed_by=cls.customer,
            )
            return complaint

        file(cls.support, cls.agent, ComplaintStatus.NEW)
        file(cls.support, cls.agent, ComplaintStatus.CLOSED)
        file(cls.billing, cls.biller, ComplaintStatus.IN_PROGRESS)

    def _stats(self, user):
        client = APIClient()
        client.force_authenticate(user)
        response = client.get(reverse("core:dashboard-stats"))
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        return response.data

    def test_manager_sees_only_their_department(self):
        data = self._stats(self.manager)
        self.assertEqual(data["total_complaints"], 2)
        self.assertEqual(data["open_complaints"], 1)
        self.assertEqual(data["closed_complaints"], 1)
        self.assertEqual(
            [row["department"] for row in data["complaints_by_department"]],
            ["Support"],
        )

    def test_client_sees_own_complaints_with_full_status_breakdown(self):
        data = self._stats(self.customer)
        self.assertEqual(data["total_complaints"], 3)
        by_status = {row["status"]: row["count"] for row in data["complaints_by_status"]}
        self.assertEqual(len(by_status), 6)
        self.assertEqual(by_status["New"], 1)
        self.assertEqual(by_status["Done"], 0)
        self.assertEqual(len(data["recent_activity"]), 3)

    def test_dashboard_requires_authentication(self):
        response = APIClient().get(reverse("core:dashboard-stats"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
