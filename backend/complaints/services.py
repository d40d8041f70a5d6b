"""
Complaints app Service Layer.

This module is the **single source of truth** for all business logic
in the ``complaints`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``ComplaintWorkflowService`` — create / advance / reassign plus the
  visibility-checked reads.  Collaborators are injected:

      recorder   — ``complaints.audit.AuditTrailRecorder``
      dispatcher — ``notifications.dispatcher.NotificationDispatcher``
      resolver   — ``complaints.routing.RoutingResolver``

  One instance is assembled in ``ComplaintsConfig.ready()``.
- ``NatureTypeService`` — active nature types for the submission form.

Every mutating operation follows the same unit of work::

    atomic()
      ├─ lock complaint row (select_for_update)
      ├─ authorize(principal, action, complaint)   ← fresh every call
      ├─ validate + apply the change, bump version
      ├─ recorder.record(...)                      ← same transaction
      └─ dispatcher.dispatch(...)                  ← rows now, delivery on commit
"""

from __future__ import annotations

import logging
from typing import Any

from django.db import transaction
from django.db.models import Q, QuerySet

from accounts.models import User, UserRole
from accounts.services import DepartmentService
from core.domain.access import (
    Action,
    Principal,
    authorize,
    can_reassign_to,
    scope_complaints,
)
from core.domain.exceptions import (
    Conflict,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from core.domain.transactions import lock_for_update
from notifications.dispatcher import NotificationDispatcher, TransitionOutcome
from notifications.models import NotificationEvent

from .audit import AuditTrailRecorder
from .models import (
    Complaint,
    ComplaintAttachment,
    ComplaintStatus,
    NatureType,
    successor_of,
)
from .routing import RoutingConfig, RoutingResolver

logger = logging.getLogger(__name__)

_REQUIRED_TEXT_FIELDS = ("title", "description", "error_type", "error_screen")
_ATTACHMENT_FIELDS = ("filename", "original_name", "mime_type", "size", "url")
_RELATED = ("client", "department", "department__manager", "current_assignee", "first_assignee", "nature_type")


class ComplaintWorkflowService:

    def __init__(
        self,
        *,
        recorder: AuditTrailRecorder,
        dispatcher: NotificationDispatcher,
        resolver: RoutingResolver,
    ) -> None:
        self.recorder = recorder
        self.dispatcher = dispatcher
        self.resolver = resolver

    # ═══════════════════════════════════════════════════════════════
    #  Create
    # ═══════════════════════════════════════════════════════════════

    @transaction.atomic
    def create(self, fields: dict[str, Any], principal: Principal) -> Complaint:
        """
        File a new complaint in ``New``.

        Parameters
        ----------
        fields : dict
            ``title``, ``description``, ``error_type``, ``error_screen``,
            ``nature_type_id`` (required); ``remark``, ``department_id``
            (managers and admins only), ``client_id``, ``attachments``
            (optional).
        principal : Principal
            Client filing for themselves, or a manager / admin, who may
            file on behalf of a client through ``client_id``.

        Returns
        -------
        Complaint
            Reloaded with its relations and attachments, ready to
            serialize even when the filer cannot read it afterwards.

        Raises
        ------
        PermissionDenied
            Employees cannot file complaints; clients can neither file for
            someone else nor pick the department.
        ValidationError
            Missing/blank text fields, unknown or inactive nature type,
            department or client.
        ConfigurationError
            Routing found no usable department / default assignee.
        """
        authorize(principal, Action.CREATE)

        # ── Validate input ───────────────────────────────────────────
        cleaned: dict[str, str] = {}
        for name in _REQUIRED_TEXT_FIELDS:
            value = (fields.get(name) or "").strip()
            if not value:
                raise ValidationError(f"'{name}' is required.", field=name)
            cleaned[name] = value

        nature_type = NatureType.objects.filter(
            pk=fields.get("nature_type_id"), is_active=True,
        ).first()
        if nature_type is None:
            raise ValidationError(
                "Nature type does not exist or is inactive.", field="nature_type_id",
            )

        actor = self._actor(principal)
        client = self._resolve_client(fields.get("client_id"), principal, actor)
        if fields.get("department_id") is not None and principal.role == UserRole.CLIENT:
            raise PermissionDenied(context={"action": "choose_department"})

        # ── Route ────────────────────────────────────────────────────
        decision = self.resolver.resolve(
            RoutingConfig.load(),
            requested_department_id=fields.get("department_id"),
        )

        # ── Persist ──────────────────────────────────────────────────
        complaint = Complaint.objects.create(
            **cleaned,
            nature_type=nature_type,
            remark=(fields.get("remark") or "").strip(),
            client=client,
            status=ComplaintStatus.NEW,
            department=decision.department,
            current_assignee=decision.assignee,
            first_assignee=decision.assignee,
        )
        attachments = fields.get("attachments") or []
        if attachments:
            ComplaintAttachment.objects.bulk_create(
                ComplaintAttachment(
                    complaint=complaint,
                    uploaded_by=actor,
                    **{k: item[k] for k in _ATTACHMENT_FIELDS},
                )
                for item in attachments
            )

        history = self.recorder.record(
            complaint,
            resulting_status=ComplaintStatus.NEW,
            assigned_to=decision.assignee,
            notes=f"Complaint created ({decision.reason})",
            changed_by=actor,
        )
        self.dispatcher.dispatch(
            TransitionOutcome(
                complaint=complaint,
                event_type=NotificationEvent.CREATED,
                history=history,
                actor=actor,
                new_status=ComplaintStatus.NEW,
                new_assignee=decision.assignee,
                new_department=decision.department,
            )
        )

        logger.info(
            "Complaint #%s created by %s → department %s, assignee %s (%s)",
            complaint.pk, principal.id, decision.department.pk,
            decision.assignee.pk, decision.reason,
        )
        return self._load(complaint.pk)

    # ═══════════════════════════════════════════════════════════════
    #  Advance
    # ═══════════════════════════════════════════════════════════════

    @transaction.atomic
    def advance(
        self,
        complaint_id: int,
        target_status: str,
        principal: Principal,
        notes: str = "",
        expected_version: int | None = None,
    ) -> Complaint:
        """
        Move the complaint to the immediate successor of its status.

        Raises
        ------
        NotFound
            Complaint absent or outside the principal's visibility.
        PermissionDenied
            Role or relationship does not allow advancing.
        Conflict
            ``expected_version`` is given and stale.
        InvalidTransition
            ``target_status`` is not the immediate successor (including
            any move out of ``Closed``).
        ValidationError
            ``target_status`` is not a known status.
        """
        if target_status not in ComplaintStatus.values:
            raise ValidationError(
                f"Unknown status '{target_status}'.", field="target_status",
            )

        # ── Fetch complaint with row lock ────────────────────────────
        complaint = lock_for_update(Complaint, complaint_id, select_related=_RELATED)

        # ── Authorize ────────────────────────────────────────────────
        authorize(principal, Action.ADVANCE, complaint)
        self._check_version(complaint, expected_version)

        # ── Validate transition ──────────────────────────────────────
        current = complaint.status
        successor = successor_of(current)
        if successor is None:
            raise InvalidTransition(
                current=current,
                target=target_status,
                reason="the complaint is closed",
                context={"complaint_id": complaint.pk},
            )
        if target_status != successor:
            raise InvalidTransition(
                current=current,
                target=target_status,
                reason=f"only '{successor}' may follow '{current}'",
                context={"complaint_id": complaint.pk},
            )

        # ── Apply ────────────────────────────────────────────────────
        complaint.status = target_status
        complaint.version += 1
        complaint.save(update_fields=["status", "version", "updated_at"])

        actor = self._actor(principal)
        history = self.recorder.record(
            complaint,
            resulting_status=target_status,
            assigned_to=complaint.current_assignee,
            notes=notes,
            changed_by=actor,
        )
        self.dispatcher.dispatch(
            TransitionOutcome(
                complaint=complaint,
                event_type=NotificationEvent.STATUS_CHANGED,
                history=history,
                actor=actor,
                old_status=current,
                new_status=target_status,
                old_assignee=complaint.current_assignee,
                new_assignee=complaint.current_assignee,
                old_department=complaint.department,
                new_department=complaint.department,
            )
        )

        logger.info(
            "Complaint #%s status: %s → %s by %s",
            complaint.pk, current, target_status, principal.id,
        )
        return complaint

    # ═══════════════════════════════════════════════════════════════
    #  Reassign
    # ═══════════════════════════════════════════════════════════════

    @transaction.atomic
    def reassign(
        self,
        complaint_id: int,
        new_assignee_id: int,
        principal: Principal,
        new_department_id: int | None = None,
        notes: str = "",
        expected_version: int | None = None,
    ) -> Complaint:
        """
        Hand the complaint to another assignee (and optionally another
        department) without changing its status.

        Raises
        ------
        NotFound, PermissionDenied, Conflict
            As for ``advance``; ``PermissionDenied`` also when the target
            assignee / department is outside the principal's reach.
        InvalidTransition
            The complaint is ``Closed``.
        ValidationError
            Unknown, inactive or non-staff assignee; unknown or inactive
            department; or the target equals the current assignment.
        """
        # ── Fetch complaint with row lock ────────────────────────────
        complaint = lock_for_update(Complaint, complaint_id, select_related=_RELATED)

        # ── Authorize ────────────────────────────────────────────────
        authorize(principal, Action.REASSIGN, complaint)
        self._check_version(complaint, expected_version)

        if complaint.is_closed:
            raise InvalidTransition(
                current=complaint.status,
                target=complaint.status,
                reason="closed complaints cannot be reassigned",
                context={"complaint_id": complaint.pk},
            )

        # ── Validate target ──────────────────────────────────────────
        assignee = User.objects.filter(pk=new_assignee_id).first()
        if assignee is None or not assignee.is_active or assignee.role == UserRole.CLIENT:
            raise ValidationError(
                "Assignee must be an active staff member.", field="assignee_id",
            )

        if new_department_id is None or new_department_id == complaint.department_id:
            department = complaint.department
        else:
            department = DepartmentService.get_active(new_department_id)

        if assignee.pk == complaint.current_assignee_id and department.pk == complaint.department_id:
            raise ValidationError(
                "The complaint is already assigned there.",
                context={"complaint_id": complaint.pk},
            )

        if not can_reassign_to(principal, complaint, assignee, department):
            raise PermissionDenied(
                context={"action": Action.REASSIGN.value, "complaint_id": complaint.pk},
            )

        # ── Apply ────────────────────────────────────────────────────
        old_assignee = complaint.current_assignee
        old_department = complaint.department
        complaint.current_assignee = assignee
        complaint.department = department
        complaint.version += 1
        complaint.save(update_fields=["current_assignee", "department", "version", "updated_at"])

        actor = self._actor(principal)
        history = self.recorder.record(
            complaint,
            resulting_status=complaint.status,
            assigned_from=old_assignee,
            assigned_to=assignee,
            notes=notes,
            changed_by=actor,
        )
        self.dispatcher.dispatch(
            TransitionOutcome(
                complaint=complaint,
                event_type=NotificationEvent.REASSIGNED,
                history=history,
                actor=actor,
                old_status=complaint.status,
                new_status=complaint.status,
                old_assignee=old_assignee,
                new_assignee=assignee,
                old_department=old_department,
                new_department=department,
            )
        )

        logger.info(
            "Complaint #%s reassigned: %s/%s → %s/%s by %s",
            complaint.pk, old_assignee.pk, old_department.pk,
            assignee.pk, department.pk, principal.id,
        )
        return complaint

    # ═══════════════════════════════════════════════════════════════
    #  Reads
    # ═══════════════════════════════════════════════════════════════

    def get(self, complaint_id: int, principal: Principal) -> Complaint:
        complaint = self._load(complaint_id)
        if complaint is None:
            raise NotFound(
                f"Complaint with id {complaint_id} not found.",
                context={"complaint_id": complaint_id},
            )
        authorize(principal, Action.READ, complaint)
        return complaint

    def list(self, principal: Principal, filters: dict[str, Any] | None = None) -> QuerySet[Complaint]:
        """
        Role-scoped complaints, newest activity first.

        Supported filters: ``status``, ``department``, ``nature_type``,
        ``search`` (title / description / error type).
        """
        filters = filters or {}
        qs = scope_complaints(Complaint.objects.select_related(*_RELATED), principal)

        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("department"):
            qs = qs.filter(department_id=filters["department"])
        if filters.get("nature_type"):
            qs = qs.filter(nature_type_id=filters["nature_type"])
        if filters.get("search"):
            term = filters["search"]
            qs = qs.filter(
                Q(title__icontains=term)
                | Q(description__icontains=term)
                | Q(error_type__icontains=term)
            )
        return qs.order_by("-updated_at", "-pk")

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _load(complaint_id: int) -> Complaint | None:
        return (
            Complaint.objects.select_related(*_RELATED)
            .prefetch_related("attachments")
            .filter(pk=complaint_id)
            .first()
        )

    @staticmethod
    def _check_version(complaint: Complaint, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != complaint.version:
            raise Conflict(
                "The complaint was modified by someone else; reload and try again.",
                context={
                    "complaint_id": complaint.pk,
                    "expected_version": expected_version,
                    "version": complaint.version,
                },
            )

    @staticmethod
    def _actor(principal: Principal) -> User:
        actor = User.objects.filter(pk=principal.id, is_active=True).first()
        if actor is None:
            raise PermissionDenied(context={"principal_id": principal.id})
        return actor

    @staticmethod
    def _resolve_client(client_id: int | None, principal: Principal, actor: User) -> User:
        if client_id is None or client_id == principal.id:
            return actor
        if principal.role == UserRole.CLIENT:
            raise PermissionDenied(context={"action": "create_on_behalf"})

        client = User.objects.filter(pk=client_id, is_active=True, role=UserRole.CLIENT).first()
        if client is None:
            raise ValidationError(
                "Client does not exist or is inactive.", field="client_id",
            )
        return client


class NatureTypeService:

    @staticmethod
    def list_active() -> QuerySet[NatureType]:
        return NatureType.objects.filter(is_active=True).order_by("name")
