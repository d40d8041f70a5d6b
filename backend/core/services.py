"""
Core app services — **Service Layer**.

Contains cross-app aggregation, the system constants catalogue and the
routing-settings administration.  Views delegate all business logic to
the service classes defined here, keeping views thin and ensuring
testability.

╔══════════════════════════════════════════════════════════════════════╗
║  CROSS-APP IMPORT RULEBOOK                                         ║
║                                                                    ║
║  The core app is imported by every other app, so it must never     ║
║  import their models at the **module level**.                      ║
║                                                                    ║
║  1. Import other apps' models inside the method that needs them,   ║
║     preferably via ``apps.get_model("complaints", "Complaint")``.   ║
║                                                                    ║
║  2. Choice/enum classes (e.g. ComplaintStatus) live in the         ║
║     respective app's ``models.py``; import them lazily too.        ║
║                                                                    ║
║  3. For aggregations, prefer ``.aggregate()`` and                  ║
║     ``.values().annotate()`` over Python-side loops.               ║
╚══════════════════════════════════════════════════════════════════════╝
"""

from __future__ import annotations

import logging
from typing import Any

from django.apps import apps
from django.db import transaction
from django.db.models import Count, Q

from core.domain.access import Principal, scope_complaints
from core.domain.exceptions import PermissionDenied, ValidationError
from core.models import SystemSettings

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════
#  Dashboard Aggregation Service
# ════════════════════════════════════════════════════════════════════

class DashboardAggregationService:
    """
    Produces an aggregated statistics dict consumed by
    ``DashboardStatsSerializer``.

    The statistics are **role-aware** because they are computed over the
    same visible set as the complaint list:

    * **Admin**: every complaint.
    * **Manager**: complaints in their department.
    * **Employee**: complaints currently assigned to them.
    * **Client**: their own complaints.
    """

    #: Maximum number of recent activity items to return.
    RECENT_ACTIVITY_LIMIT: int = 20

    def __init__(self, principal: Principal) -> None:
        self.principal = principal

    # ── Public API ──────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Return the full dashboard statistics dictionary."""
        from complaints.models import ComplaintStatus

        qs = self._get_complaint_queryset()

        # Single aggregate query for scalar counts
        aggregates = qs.aggregate(
            total_complaints=Count("id"),
            open_complaints=Count("id", filter=~Q(status=ComplaintStatus.CLOSED)),
            closed_complaints=Count("id", filter=Q(status=ComplaintStatus.CLOSED)),
        )

        return {
            **aggregates,
            "complaints_by_status": self._get_complaints_by_status(qs),
            "complaints_by_department": self._get_complaints_by_department(qs),
            "recent_activity": self._get_recent_activity(qs),
        }

    # ── Private helpers ─────────────────────────────────────────────

    def _get_complaint_queryset(self):
        Complaint = apps.get_model("complaints", "Complaint")
        return scope_complaints(Complaint.objects.all(), self.principal)

    @staticmethod
    def _get_complaints_by_status(qs) -> list[dict[str, Any]]:
        """Counts per status, in workflow order, including empty ones."""
        from complaints.models import ComplaintStatus

        counts = dict(
            qs.order_by().values("status").annotate(count=Count("id")).values_list("status", "count")
        )
        return [
            {"status": value, "label": str(label), "count": counts.get(value, 0)}
            for value, label in ComplaintStatus.choices
        ]

    @staticmethod
    def _get_complaints_by_department(qs) -> list[dict[str, Any]]:
        rows = (
            qs.order_by()
            .values("department_id", "department__name")
            .annotate(count=Count("id"))
            .order_by("department__name")
        )
        return [
            {
                "department_id": row["department_id"],
                "department": row["department__name"],
                "count": row["count"],
            }
            for row in rows
        ]

    def _get_recent_activity(self, qs) -> list[dict[str, Any]]:
        """Latest history rows across the visible complaints."""
        ComplaintHistory = apps.get_model("complaints", "ComplaintHistory")
        rows = (
            ComplaintHistory.objects.filter(complaint__in=qs.values("pk"))
            .select_related("complaint", "changed_by")
            .order_by("-timestamp", "-id")[: self.RECENT_ACTIVITY_LIMIT]
        )
        return [
            {
                "timestamp": row.timestamp,
                "complaint_id": row.complaint_id,
                "title": row.complaint.title,
                "status": row.status,
                "actor": row.changed_by.display_name if row.changed_by else None,
                "notes": row.notes,
            }
            for row in rows
        ]


# ════════════════════════════════════════════════════════════════════
#  System Constants Service
# ════════════════════════════════════════════════════════════════════

class SystemConstantsService:
    """
    Gathers all system-wide choice enumerations into a single dict for
    the frontend.

    This service is **stateless** — it does not depend on the requesting
    user.  All constants are public information needed by the frontend
    to render dropdowns and labels.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        """Return all system constants as a dict."""
        from accounts.models import UserRole
        from complaints.models import ComplaintStatus
        from core.models import RoutingPolicy
        from notifications.models import (
            DeliveryStatus,
            NotificationChannel,
            NotificationEvent,
        )

        to_list = SystemConstantsService._choices_to_list

        return {
            # Declaration order is workflow order.
            "complaint_statuses": to_list(ComplaintStatus),
            "roles": to_list(UserRole),
            "notification_channels": to_list(NotificationChannel),
            "notification_events": to_list(NotificationEvent),
            "delivery_statuses": to_list(DeliveryStatus),
            "routing_policies": to_list(RoutingPolicy),
        }

    @staticmethod
    def _choices_to_list(
        choices_class: type,
    ) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` or ``IntegerChoices`` class to
        a list of ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]


# ════════════════════════════════════════════════════════════════════
#  Routing Settings Service
# ════════════════════════════════════════════════════════════════════

class RoutingSettingsService:
    """
    Read and update the auto-routing configuration stored on the
    ``system`` ``SystemSettings`` row.  Administrators only.
    """

    @staticmethod
    def _require_admin(principal: Principal) -> None:
        from accounts.models import UserRole

        if principal.role != UserRole.ADMIN:
            raise PermissionDenied(context={"action": "manage_routing"})

    @staticmethod
    def get(principal: Principal) -> SystemSettings:
        RoutingSettingsService._require_admin(principal)
        return SystemSettings.ensure_system_settings()

    @staticmethod
    @transaction.atomic
    def update(principal: Principal, data: dict[str, Any]) -> SystemSettings:
        """
        Apply ``data`` (any of ``auto_routing_enabled``,
        ``auto_routing_department_ids``, ``default_department_id``,
        ``routing_policy``) to the system settings row.

        Raises
        ------
        PermissionDenied
            Caller is not an admin.
        ValidationError
            A referenced department does not exist or is inactive.
        """
        RoutingSettingsService._require_admin(principal)
        Department = apps.get_model("accounts", "Department")

        row = SystemSettings.ensure_system_settings()
        row = SystemSettings.objects.select_for_update().get(pk=row.pk)
        update_fields = ["updated_at"]

        if "auto_routing_enabled" in data:
            row.auto_routing_enabled = data["auto_routing_enabled"]
            update_fields.append("auto_routing_enabled")

        if "routing_policy" in data:
            row.routing_policy = data["routing_policy"]
            update_fields.append("routing_policy")

        if "default_department_id" in data:
            dept_id = data["default_department_id"]
            if dept_id is not None and not Department.objects.filter(pk=dept_id, is_active=True).exists():
                raise ValidationError(
                    f"Department {dept_id} does not exist or is inactive.",
                    field="default_department_id",
                )
            row.default_department_id = dept_id
            update_fields.append("default_department")

        row.save(update_fields=update_fields)

        if "auto_routing_department_ids" in data:
            ids = list(dict.fromkeys(data["auto_routing_department_ids"]))
            found = list(Department.objects.filter(pk__in=ids, is_active=True))
            if len(found) != len(ids):
                raise ValidationError(
                    "Every auto-routing department must exist and be active.",
                    field="auto_routing_department_ids",
                )
            row.auto_routing_departments.set(found)

        logger.info(
            "Routing settings updated by %s: enabled=%s policy=%s default=%s",
            principal.id, row.auto_routing_enabled, row.routing_policy,
            row.default_department_id,
        )
        return row
