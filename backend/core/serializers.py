"""
Core app serializers.

**Response** serializers for the aggregated endpoints served by the
core app (dashboard, system constants) plus the request/response pair
for the routing settings.

Architectural note
------------------
The dashboard and constants serializers never touch models from other
apps.  They work exclusively with plain Python dicts / lists produced by
the service layer, keeping the core app decoupled from ``complaints``,
``notifications`` and ``accounts``.
"""

from __future__ import annotations

from rest_framework import serializers

from core.models import RoutingPolicy, SystemSettings


# ════════════════════════════════════════════════════════════════════
#  Dashboard Statistics
# ════════════════════════════════════════════════════════════════════

class ComplaintsByStatusSerializer(serializers.Serializer):
    """
    Example::

        {"status": "In Progress", "label": "In Progress", "count": 12}
    """

    status = serializers.CharField()
    label = serializers.CharField()
    count = serializers.IntegerField()


class ComplaintsByDepartmentSerializer(serializers.Serializer):
    department_id = serializers.IntegerField()
    department = serializers.CharField()
    count = serializers.IntegerField()


class RecentActivitySerializer(serializers.Serializer):
    timestamp = serializers.DateTimeField()
    complaint_id = serializers.IntegerField()
    title = serializers.CharField()
    status = serializers.CharField()
    actor = serializers.CharField(allow_null=True)
    notes = serializers.CharField(allow_blank=True)


class DashboardStatsSerializer(serializers.Serializer):
    """
    Top-level response serializer for ``GET /api/core/dashboard/``.

    Computed over the caller's visible complaints, so a manager sees
    their department and a client sees their own complaints.

    Response shape::

        {
            "total_complaints": 150,
            "open_complaints": 42,
            "closed_complaints": 108,
            "complaints_by_status": [...],
            "complaints_by_department": [...],
            "recent_activity": [...]
        }
    """

    total_complaints = serializers.IntegerField()
    open_complaints = serializers.IntegerField()
    closed_complaints = serializers.IntegerField()
    complaints_by_status = ComplaintsByStatusSerializer(many=True)
    complaints_by_department = ComplaintsByDepartmentSerializer(many=True)
    recent_activity = RecentActivitySerializer(many=True)


# ════════════════════════════════════════════════════════════════════
#  System Constants
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """A single ``{"value": ..., "label": ...}`` pair."""

    value = serializers.CharField()
    label = serializers.CharField()


class SystemConstantsSerializer(serializers.Serializer):
    """
    Top-level response serializer for ``GET /api/core/constants/``.

    Response shape::

        {
            "complaint_statuses": [{"value": "New", "label": "New"}, ...],
            "roles": [...],
            "notification_channels": [...],
            "notification_events": [...],
            "delivery_statuses": [...],
            "routing_policies": [...]
        }
    """

    complaint_statuses = ChoiceItemSerializer(
        many=True,
        help_text="Complaint statuses in workflow order.",
    )
    roles = ChoiceItemSerializer(many=True)
    notification_channels = ChoiceItemSerializer(many=True)
    notification_events = ChoiceItemSerializer(many=True)
    delivery_statuses = ChoiceItemSerializer(many=True)
    routing_policies = ChoiceItemSerializer(many=True)


# ════════════════════════════════════════════════════════════════════
#  Routing Settings
# ════════════════════════════════════════════════════════════════════

class RoutingSettingsSerializer(serializers.ModelSerializer):
    """Current auto-routing configuration."""

    auto_routing_department_ids = serializers.PrimaryKeyRelatedField(
        source="auto_routing_departments",
        many=True,
        read_only=True,
    )
    default_department_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = SystemSettings
        fields = [
            "auto_routing_enabled",
            "auto_routing_department_ids",
            "default_department_id",
            "routing_policy",
            "updated_at",
        ]
        read_only_fields = fields


class RoutingSettingsUpdateSerializer(serializers.Serializer):
    """
    Request body for ``PUT /api/core/settings/routing/``.  Every field is
    optional; omitted fields keep their current value.
    """

    auto_routing_enabled = serializers.BooleanField(required=False)
    auto_routing_department_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
    )
    default_department_id = serializers.IntegerField(
        required=False,
        allow_null=True,
        min_value=1,
    )
    routing_policy = serializers.ChoiceField(
        choices=RoutingPolicy.choices,
        required=False,
    )
