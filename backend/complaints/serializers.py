"""
Complaints app serializers.

Serializers handle field definitions, read/write constraints, and field-level
validation only.  **No workflow transitions or permission decisions live
here** — those belong in ``services.py`` and ``core.domain.access``.

Structure
---------
1. Filter / query-param serializers
2. Complaint read serializers (list, detail)
3. Write / workflow action serializers (create, advance, reassign)
4. Sub-resource serializers (history, attachments, nature types)
"""

from __future__ import annotations

from rest_framework import serializers

from accounts.serializers import DepartmentSerializer, UserSummarySerializer

from .models import (
    Complaint,
    ComplaintAttachment,
    ComplaintHistory,
    ComplaintStatus,
    NatureType,
    successor_of,
)


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintFilterSerializer(serializers.Serializer):
    """
    Validates query-parameter filters for ``GET /api/complaints/``.

    All fields are optional.  The view passes the validated dict directly
    to ``ComplaintWorkflowService.list``.
    """

    status = serializers.ChoiceField(
        choices=ComplaintStatus.choices,
        required=False,
        help_text="Filter by status. Options: " + ", ".join(ComplaintStatus.values) + ".",
    )
    department = serializers.IntegerField(required=False, min_value=1, help_text="Department PK.")
    nature_type = serializers.IntegerField(required=False, min_value=1, help_text="Nature type PK.")
    search = serializers.CharField(
        required=False,
        max_length=200,
        help_text="Free-text search against title, description and error type.",
    )


# ═══════════════════════════════════════════════════════════════════
#  2. Complaint Read Serializers
# ═══════════════════════════════════════════════════════════════════


class NatureTypeSerializer(serializers.ModelSerializer):

    class Meta:
        model = NatureType
        fields = ["id", "name", "description", "is_active"]
        read_only_fields = fields


class ComplaintAttachmentSerializer(serializers.ModelSerializer):

    class Meta:
        model = ComplaintAttachment
        fields = ["id", "filename", "original_name", "mime_type", "size", "url", "uploaded_at"]
        read_only_fields = ["id", "uploaded_at"]


class ComplaintListSerializer(serializers.ModelSerializer):
    """Compact row for the complaint list."""

    nature_type = serializers.CharField(source="nature_type.name", read_only=True)
    department = serializers.CharField(source="department.name", read_only=True)
    current_assignee = UserSummarySerializer(read_only=True)

    class Meta:
        model = Complaint
        fields = [
            "id",
            "title",
            "status",
            "nature_type",
            "department",
            "current_assignee",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComplaintDetailSerializer(serializers.ModelSerializer):
    """Full complaint representation including attachments."""

    nature_type = NatureTypeSerializer(read_only=True)
    department = DepartmentSerializer(read_only=True)
    client = UserSummarySerializer(read_only=True)
    current_assignee = UserSummarySerializer(read_only=True)
    first_assignee = UserSummarySerializer(read_only=True)
    attachments = ComplaintAttachmentSerializer(many=True, read_only=True)
    next_status = serializers.SerializerMethodField()

    class Meta:
        model = Complaint
        fields = [
            "id",
            "title",
            "description",
            "error_type",
            "error_screen",
            "remark",
            "nature_type",
            "status",
            "next_status",
            "department",
            "client",
            "current_assignee",
            "first_assignee",
            "attachments",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_next_status(self, obj: Complaint) -> str | None:
        return successor_of(obj.status)


# ═══════════════════════════════════════════════════════════════════
#  3. Write / Workflow Action Serializers
# ═══════════════════════════════════════════════════════════════════


class AttachmentInputSerializer(serializers.Serializer):
    """Metadata of a file already uploaded to external storage."""

    filename = serializers.CharField(max_length=255)
    original_name = serializers.CharField(max_length=255)
    mime_type = serializers.CharField(max_length=100)
    size = serializers.IntegerField(min_value=0)
    url = serializers.URLField(max_length=500)


class ComplaintCreateSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/complaints/``.

    ``department_id`` lets a manager or admin target a department when
    auto-routing does not apply; ``client_id`` lets them file on behalf
    of a client.
    """

    title = serializers.CharField(max_length=255)
    description = serializers.CharField()
    error_type = serializers.CharField(max_length=100)
    error_screen = serializers.CharField(max_length=255)
    nature_type_id = serializers.IntegerField(min_value=1)
    remark = serializers.CharField(required=False, allow_blank=True, default="")
    department_id = serializers.IntegerField(required=False, min_value=1)
    client_id = serializers.IntegerField(required=False, min_value=1)
    attachments = AttachmentInputSerializer(many=True, required=False)


class ComplaintAdvanceSerializer(serializers.Serializer):
    """
    Request body for ``POST /api/complaints/{id}/advance/``.

    Adjacency is enforced in ``ComplaintWorkflowService.advance``.
    """

    target_status = serializers.ChoiceField(
        choices=ComplaintStatus.choices,
        help_text="Must be the immediate successor of the current status.",
    )
    notes = serializers.CharField(
        required=False,
        allow_blank=True,
        default="",
        max_length=2000,
    )
    expected_version = serializers.IntegerField(
        required=False,
        min_value=1,
        help_text="Version the caller last saw; a mismatch yields 409.",
    )


class ComplaintReassignSerializer(serializers.Serializer):
    """Request body for ``POST /api/complaints/{id}/reassign/``."""

    assignee_id = serializers.IntegerField(min_value=1)
    department_id = serializers.IntegerField(required=False, min_value=1)
    notes = serializers.CharField(
        required=False,
        allow_blank=True,
        default="",
        max_length=2000,
    )
    expected_version = serializers.IntegerField(required=False, min_value=1)


# ═══════════════════════════════════════════════════════════════════
#  4. Sub-resource Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintHistorySerializer(serializers.ModelSerializer):
    """Read-only audit trail entry."""

    assigned_from = UserSummarySerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)
    changed_by = UserSummarySerializer(read_only=True)
    department = serializers.CharField(source="department.name", read_only=True)

    class Meta:
        model = ComplaintHistory
        fields = [
            "id",
            "status",
            "assigned_from",
            "assigned_to",
            "department",
            "changed_by",
            "notes",
            "timestamp",
        ]
        read_only_fields = fields
