"""
complaints.routing — Initial department / assignee selection.

Architecture
------------
- ``RoutingConfig``    — immutable snapshot of the operator's routing
  settings, loaded from the ``system`` ``SystemSettings`` row.
- ``RoutingResolver``  — turns a config (plus an optional department
  a manager or admin asked for) into a ``RoutingDecision``.
- Policies             — plain functions choosing one department from the
  active auto-routing candidates; registered by name so operators can
  switch between them in settings.

Resolution order
----------------
1. Auto-routing enabled with active candidates → configured policy; a
   requested department is ignored.
2. Department requested explicitly → must exist and be active.
3. The configured default department, when active.
4. The first active department by name.
5. Nothing active → ``ConfigurationError``.

The chosen department's ``default_assignee`` becomes the initial assignee;
a missing or inactive default assignee is a ``ConfigurationError``.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Sequence

from django.db.models import Count

from accounts.models import Department, User
from accounts.services import DepartmentService
from core.domain.exceptions import ConfigurationError
from core.models import RoutingPolicy, SystemSettings

from .models import Complaint, ComplaintStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutingConfig:
    enabled: bool = False
    department_ids: tuple[int, ...] = ()
    default_department_id: int | None = None
    policy: str = RoutingPolicy.RANDOM

    @classmethod
    def load(cls) -> RoutingConfig:
        row = SystemSettings.ensure_system_settings()
        return cls(
            enabled=row.auto_routing_enabled,
            department_ids=tuple(
                row.auto_routing_departments.order_by("pk").values_list("pk", flat=True)
            ),
            default_department_id=row.default_department_id,
            policy=row.routing_policy,
        )


@dataclass(frozen=True)
class RoutingDecision:
    department: Department
    assignee: User
    reason: str = field(default="")


# ────────────────────────────────────────────────────────────────────
# Policies
# ────────────────────────────────────────────────────────────────────

RoutingPolicyFn = Callable[[Sequence[Department]], Department]


def pick_random(candidates: Sequence[Department]) -> Department:
    return random.choice(list(candidates))


def pick_round_robin(candidates: Sequence[Department]) -> Department:
    """
    Next candidate after the department that received the most recently
    created complaint.  Stateless: the rotation is derived from the
    complaints table.
    """
    ids = [d.pk for d in candidates]
    last = (
        Complaint.objects.filter(department_id__in=ids)
        .order_by("-created_at", "-pk")
        .values_list("department_id", flat=True)
        .first()
    )
    if last is None:
        return candidates[0]
    return candidates[(ids.index(last) + 1) % len(candidates)]


def pick_least_loaded(candidates: Sequence[Department]) -> Department:
    """Fewest open (non-Closed) complaints; ties broken by name."""
    loads = dict(
        Complaint.objects.filter(department__in=[d.pk for d in candidates])
        .exclude(status=ComplaintStatus.CLOSED)
        .values("department_id")
        .annotate(n=Count("id"))
        .values_list("department_id", "n")
    )
    return min(candidates, key=lambda d: (loads.get(d.pk, 0), d.name))


DEFAULT_POLICIES: dict[str, RoutingPolicyFn] = {
    RoutingPolicy.RANDOM: pick_random,
    RoutingPolicy.ROUND_ROBIN: pick_round_robin,
    RoutingPolicy.LEAST_LOADED: pick_least_loaded,
}


# ────────────────────────────────────────────────────────────────────
# Resolver
# ────────────────────────────────────────────────────────────────────

class RoutingResolver:

    def __init__(self, policies: dict[str, RoutingPolicyFn] | None = None) -> None:
        self.policies: dict[str, RoutingPolicyFn] = dict(DEFAULT_POLICIES)
        if policies:
            self.policies.update(policies)

    def register_policy(self, name: str, fn: RoutingPolicyFn) -> None:
        self.policies[name] = fn

    def resolve(
        self,
        config: RoutingConfig,
        requested_department_id: int | None = None,
    ) -> RoutingDecision:
        department, reason = self._choose_department(config, requested_department_id)

        assignee = department.default_assignee
        if assignee is None or not assignee.is_active:
            raise ConfigurationError(
                f"Department '{department.name}' has no active default assignee.",
                context={"department_id": department.pk},
            )

        logger.debug(
            "Routed to department %s (assignee %s) via %s",
            department.pk, assignee.pk, reason,
        )
        return RoutingDecision(department=department, assignee=assignee, reason=reason)

    def _choose_department(
        self,
        config: RoutingConfig,
        requested_department_id: int | None,
    ) -> tuple[Department, str]:
        active = Department.objects.filter(is_active=True).select_related("default_assignee")

        if config.enabled and config.department_ids:
            candidates = list(active.filter(pk__in=config.department_ids).order_by("name", "pk"))
            if candidates:
                policy = self.policies.get(config.policy)
                if policy is None:
                    raise ConfigurationError(
                        f"Unknown routing policy '{config.policy}'.",
                        context={"policy": config.policy},
                    )
                return policy(candidates), f"auto:{config.policy}"
            logger.warning(
                "Auto-routing enabled but none of departments %s is active; falling back",
                list(config.department_ids),
            )

        if requested_department_id is not None:
            return DepartmentService.get_active(requested_department_id), "requested"

        if config.default_department_id is not None:
            default = active.filter(pk=config.default_department_id).first()
            if default is not None:
                return default, "default"

        first = active.order_by("name", "pk").first()
        if first is not None:
            return first, "fallback"

        raise ConfigurationError("No active department is available for routing.")
