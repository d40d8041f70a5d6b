"""
Accounts app serializers.

Covers token issuance (with role claims), the current-user profile and
the read-only department listing.
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.domain.access import HAND_OFF_PERMISSION

from .models import Department, User


# ═══════════════════════════════════════════════════════════════════
#  Token Serializers
# ═══════════════════════════════════════════════════════════════════


class RoleClaimsTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    SimpleJWT serializer that accepts username **or** email in the
    ``username`` field (resolved by ``UsernameOrEmailBackend``) and
    injects ``role`` and ``department_id`` claims into the token so the
    frontend can render role-specific screens without a second call.
    """

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = user.role
        token["department_id"] = user.department_id
        return token


# ═══════════════════════════════════════════════════════════════════
#  Department Serializers
# ═══════════════════════════════════════════════════════════════════


class DepartmentSerializer(serializers.ModelSerializer):
    """Compact department representation."""

    class Meta:
        model = Department
        fields = ["id", "name", "description", "is_active"]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  User Serializers
# ═══════════════════════════════════════════════════════════════════


class UserSummarySerializer(serializers.ModelSerializer):
    """Minimal user block nested in complaint / notification payloads."""

    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "username", "display_name", "role"]
        read_only_fields = fields


class MeSerializer(serializers.ModelSerializer):
    """
    Profile of the authenticated user, including whether they hold the
    department hand-off grant.
    """

    department = DepartmentSerializer(read_only=True)
    display_name = serializers.CharField(read_only=True)
    can_hand_off = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "display_name",
            "email",
            "phone_number",
            "role",
            "department",
            "can_hand_off",
        ]
        read_only_fields = fields

    def get_can_hand_off(self, obj: User) -> bool:
        return obj.has_perm(HAND_OFF_PERMISSION)
