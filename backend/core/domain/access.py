"""
core.domain.access — Role × relationship permission matrix.

Every complaint operation is gated here.  A permission decision is a pure
function of two inputs:

* the principal's **role** (client / employee / manager / admin), and
* the principal's **relationship** to the complaint (owner, current
  assignee, same department, or none).

╔══════════════════════════════════════════════════════════════════╗
║  Role alone is never enough.  A manager outranks an employee but ║
║  only inside their own department; an employee may act only on   ║
║  complaints currently assigned to them.                          ║
╚══════════════════════════════════════════════════════════════════╝

Matrix
------
    role      │ read        │ create │ advance     │ reassign
    ──────────┼─────────────┼────────┼─────────────┼──────────────────────
    admin     │ any         │ yes    │ any         │ any
    manager   │ DEPARTMENT  │ yes    │ DEPARTMENT  │ DEPARTMENT
    employee  │ ASSIGNEE    │ no     │ ASSIGNEE    │ ASSIGNEE + hand-off
    client    │ OWNER       │ yes    │ never       │ never

Architecture overview
---------------------

    ┌─────────┐      ┌────────────────────┐      ┌──────────────────┐
    │  View   │─────▶│ Workflow service   │─────▶│ core.domain      │
    │ (thin)  │      │ authorize(...)     │      │   .access        │
    └─────────┘      └────────────────────┘      │ (pure checks)    │
                                                 └──────────────────┘

Nothing here touches the database except ``scope_complaints``, which only
adds filters to a queryset the caller supplies.  Decisions are evaluated
freshly on every call.

Usage in a service::

    from core.domain.access import Action, Principal, authorize

    principal = Principal.from_user(request.user)
    authorize(principal, Action.ADVANCE, complaint)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NamedTuple

from django.db.models import Q, QuerySet

from accounts.models import UserRole
from core.domain.exceptions import NotFound, PermissionDenied
from core.permissions_constants import AccountsPerms

if TYPE_CHECKING:
    from accounts.models import Department, User

HAND_OFF_PERMISSION = AccountsPerms.full(AccountsPerms.CAN_HAND_OFF_WITHIN_DEPARTMENT)


class Action(str, enum.Enum):
    READ = "read"
    CREATE = "create"
    ADVANCE = "advance"
    REASSIGN = "reassign"


class Relationship(str, enum.Enum):
    OWNER = "owner"
    ASSIGNEE = "assignee"
    DEPARTMENT = "department"
    NONE = "none"


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller as seen by the workflow engine.

    Built from the request user by ``from_user``; carries nothing that
    could go stale within a single operation.
    """

    id: int
    role: str
    department_id: int | None = None
    can_hand_off: bool = False
    display_name: str = ""

    @classmethod
    def from_user(cls, user: User) -> Principal:
        role = UserRole.ADMIN if user.is_superuser else user.role
        return cls(
            id=user.pk,
            role=str(role),
            department_id=user.department_id,
            can_hand_off=user.has_perm(HAND_OFF_PERMISSION),
            display_name=user.get_full_name() or user.get_username(),
        )


class _Rule(NamedTuple):
    """
    ``relationships is None`` means any complaint; an empty set means
    the role may never perform the action.
    """

    relationships: frozenset[Relationship] | None
    requires_hand_off: bool = False


_ANY = _Rule(None)
_NEVER = _Rule(frozenset())


def _only(*rels: Relationship, hand_off: bool = False) -> _Rule:
    return _Rule(frozenset(rels), hand_off)


PERMISSION_MATRIX: dict[str, dict[Action, _Rule]] = {
    UserRole.ADMIN: {
        Action.READ: _ANY,
        Action.CREATE: _ANY,
        Action.ADVANCE: _ANY,
        Action.REASSIGN: _ANY,
    },
    UserRole.MANAGER: {
        Action.READ: _only(Relationship.DEPARTMENT),
        Action.CREATE: _ANY,
        Action.ADVANCE: _only(Relationship.DEPARTMENT),
        Action.REASSIGN: _only(Relationship.DEPARTMENT),
    },
    UserRole.EMPLOYEE: {
        Action.READ: _only(Relationship.ASSIGNEE),
        Action.CREATE: _NEVER,
        Action.ADVANCE: _only(Relationship.ASSIGNEE),
        Action.REASSIGN: _only(Relationship.ASSIGNEE, hand_off=True),
    },
    UserRole.CLIENT: {
        Action.READ: _only(Relationship.OWNER),
        Action.CREATE: _ANY,
        Action.ADVANCE: _NEVER,
        Action.REASSIGN: _NEVER,
    },
}


def _rule_for(principal: Principal, action: Action) -> _Rule:
    return PERMISSION_MATRIX.get(principal.role, {}).get(action, _NEVER)


def relationship_of(complaint: Any, principal: Principal) -> set[Relationship]:
    """
    Return every relationship the principal holds to ``complaint``.

    ``complaint`` only needs ``client_id``, ``current_assignee_id`` and
    ``department_id`` attributes.
    """
    rels: set[Relationship] = set()
    if complaint.client_id == principal.id:
        rels.add(Relationship.OWNER)
    if complaint.current_assignee_id == principal.id:
        rels.add(Relationship.ASSIGNEE)
    if (
        principal.department_id is not None
        and complaint.department_id == principal.department_id
    ):
        rels.add(Relationship.DEPARTMENT)
    return rels or {Relationship.NONE}


def can_perform(principal: Principal, action: Action, complaint: Any = None) -> bool:
    """
    Pure matrix lookup.  ``complaint`` may be ``None`` only for
    ``Action.CREATE``.
    """
    rule = _rule_for(principal, action)
    if rule.relationships is None:
        return True
    if not rule.relationships:
        return False
    if rule.requires_hand_off and not principal.can_hand_off:
        return False
    if complaint is None:
        return False
    return bool(rule.relationships & relationship_of(complaint, principal))


def can_reassign_to(
    principal: Principal,
    complaint: Any,
    assignee: User,
    department: Department,
) -> bool:
    """
    Validate the *target* of a reassignment.

    The caller must already have passed ``authorize(..., REASSIGN, ...)``;
    this only decides whether the chosen assignee / department pair is
    within the principal's reach.
    """
    if not assignee.is_active or not department.is_active:
        return False
    if assignee.role == UserRole.CLIENT:
        return False

    if principal.role == UserRole.ADMIN:
        return True

    if principal.role == UserRole.MANAGER:
        if department.pk != principal.department_id:
            return False
        return assignee.department_id == department.pk or assignee.pk in (
            department.manager_id,
            department.default_assignee_id,
        )

    if principal.role == UserRole.EMPLOYEE:
        # Hand-off stays inside the complaint's department.
        return (
            department.pk == complaint.department_id
            and assignee.department_id == complaint.department_id
        )

    return False


def authorize(principal: Principal, action: Action, complaint: Any = None) -> None:
    """
    Gate used by the workflow service before any mutation or read.

    Order of checks:
      1. role never allowed the action        → ``PermissionDenied``
      2. complaint not visible to the caller  → ``NotFound``
      3. visible but relationship too weak    → ``PermissionDenied``
    """
    ctx = {"action": action.value, "role": principal.role}
    if complaint is not None:
        ctx["complaint_id"] = complaint.pk

    if _rule_for(principal, action) == _NEVER:
        raise PermissionDenied(context=ctx)

    if action is Action.CREATE:
        return

    if not can_perform(principal, Action.READ, complaint):
        raise NotFound(
            f"Complaint with id {complaint.pk} not found.",
            context=ctx,
        )

    if not can_perform(principal, action, complaint):
        raise PermissionDenied(context=ctx)


# ── Queryset scoping ────────────────────────────────────────────────

_RELATIONSHIP_FILTERS = {
    Relationship.OWNER: lambda p: Q(client_id=p.id),
    Relationship.ASSIGNEE: lambda p: Q(current_assignee_id=p.id),
    Relationship.DEPARTMENT: lambda p: (
        Q(department_id=p.department_id) if p.department_id is not None else Q(pk__in=[])
    ),
}


def scope_complaints(queryset: QuerySet, principal: Principal) -> QuerySet:
    """
    Restrict ``queryset`` to the complaints the principal may read.

    The filter is derived from the READ column of the matrix so that
    list endpoints and single-object checks cannot disagree.
    """
    rule = _rule_for(principal, Action.READ)
    if rule.relationships is None:
        return queryset
    if not rule.relationships:
        return queryset.none()

    condition = Q()
    for rel in sorted(rule.relationships, key=lambda r: r.value):
        condition |= _RELATIONSHIP_FILTERS[rel](principal)
    return queryset.filter(condition)
