"""
Notifications app service layer.

Read-side queries for the delivery-status endpoints.  Creation and
delivery live in ``dispatcher`` and ``delivery``; this module only
decides who may see which rows.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db.models import QuerySet

from accounts.models import UserRole
from core.domain.access import Principal
from core.domain.exceptions import PermissionDenied

from .models import Notification

logger = logging.getLogger(__name__)


class NotificationQueryService:

    _RELATED = ("recipient", "complaint")

    @staticmethod
    def require_admin(principal: Principal) -> None:
        if principal.role != UserRole.ADMIN:
            raise PermissionDenied(
                context={"action": "notifications", "role": principal.role},
            )

    @classmethod
    def list_all(cls, principal: Principal, filters: dict[str, Any]) -> QuerySet:
        """
        Every notification, for administrators.

        Parameters
        ----------
        filters : dict
            Optional ``status``, ``channel``, ``complaint`` and
            ``recipient`` keys; absent keys are ignored.
        """
        cls.require_admin(principal)
        qs = Notification.objects.select_related(*cls._RELATED)

        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("channel"):
            qs = qs.filter(channel=filters["channel"])
        if filters.get("complaint"):
            qs = qs.filter(complaint_id=filters["complaint"])
        if filters.get("recipient"):
            qs = qs.filter(recipient_id=filters["recipient"])
        return qs

    @classmethod
    def list_mine(cls, principal: Principal) -> QuerySet:
        return Notification.objects.select_related(*cls._RELATED).filter(
            recipient_id=principal.id,
        )
