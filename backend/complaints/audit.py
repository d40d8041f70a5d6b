"""
complaints.audit — Audit trail recorder.

Writes exactly one ``ComplaintHistory`` row per successful workflow
operation and reads the trail back.

The recorder refuses to write outside an ``atomic()`` block: a history
row is only meaningful as part of the same unit of work as the complaint
mutation it describes, so it can never be retried on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from django.db.models import QuerySet

from core.domain.access import Action, Principal, authorize
from core.domain.exceptions import NotFound
from core.domain.transactions import require_atomic

from .models import Complaint, ComplaintHistory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayState:
    """State reconstructed by folding a complaint's history."""

    status: str | None = None
    assignee_id: int | None = None
    department_id: int | None = None

    @classmethod
    def of(cls, complaint: Complaint) -> ReplayState:
        return cls(
            status=complaint.status,
            assignee_id=complaint.current_assignee_id,
            department_id=complaint.department_id,
        )


class AuditTrailRecorder:

    def record(
        self,
        complaint: Complaint,
        *,
        resulting_status: str,
        assigned_from=None,
        assigned_to=None,
        notes: str = "",
        changed_by=None,
    ) -> ComplaintHistory:
        """
        Append a history row describing ``complaint`` *after* the
        operation.  The department is taken from the complaint, which the
        caller has already updated.

        Raises
        ------
        RuntimeError
            If called outside ``transaction.atomic()``.
        """
        require_atomic("AuditTrailRecorder.record")
        entry = ComplaintHistory.objects.create(
            complaint=complaint,
            status=resulting_status,
            assigned_from=assigned_from,
            assigned_to=assigned_to,
            department_id=complaint.department_id,
            changed_by=changed_by,
            notes=notes or "",
        )
        logger.debug(
            "History #%s recorded for complaint #%s (%s)",
            entry.pk, complaint.pk, resulting_status,
        )
        return entry

    def list_for(self, complaint_id: int, principal: Principal) -> QuerySet[ComplaintHistory]:
        """
        Return the complaint's history, newest first, after checking the
        principal may read the complaint.
        """
        complaint = Complaint.objects.filter(pk=complaint_id).first()
        if complaint is None:
            raise NotFound(
                f"Complaint with id {complaint_id} not found.",
                context={"complaint_id": complaint_id},
            )
        authorize(principal, Action.READ, complaint)
        return (
            ComplaintHistory.objects.filter(complaint_id=complaint.pk)
            .select_related("assigned_from", "assigned_to", "department", "changed_by")
            .order_by("-timestamp", "-id")
        )

    def replay(self, complaint_id: int) -> ReplayState:
        """Fold the history of ``complaint_id`` in ascending order."""
        state = ReplayState()
        rows = (
            ComplaintHistory.objects.filter(complaint_id=complaint_id)
            .order_by("timestamp", "id")
            .values_list("status", "assigned_to_id", "department_id")
        )
        for status, assignee_id, department_id in rows:
            state = ReplayState(
                status=status,
                assignee_id=assignee_id if assignee_id is not None else state.assignee_id,
                department_id=department_id,
            )
        return state

    def find_divergent(
        self, queryset: QuerySet[Complaint] | None = None
    ) -> Iterator[tuple[Complaint, ReplayState]]:
        """
        Yield ``(complaint, replayed_state)`` for every complaint whose
        stored status / assignee / department disagree with its history.
        """
        if queryset is None:
            queryset = Complaint.objects.all()
        for complaint in queryset.order_by("pk").iterator():
            replayed = self.replay(complaint.pk)
            if replayed != ReplayState.of(complaint):
                yield complaint, replayed
