"""
Accounts Service Layer.

Views must remain *thin*: they call a service method and return the
result wrapped in a DRF ``Response``.

Architecture
------------
- ``CurrentUserService`` — "Me" endpoint helper.
- ``DepartmentService``  — department lookups shared with the routing
  resolver and the complaint filters.
"""

from __future__ import annotations

from django.db.models import QuerySet

from core.domain.exceptions import ValidationError

from .models import Department, User


class CurrentUserService:

    @staticmethod
    def get_profile(user: User) -> User:
        """Re-read the user with the department joined."""
        return User.objects.select_related("department").get(pk=user.pk)


class DepartmentService:

    @staticmethod
    def list_active() -> QuerySet[Department]:
        return Department.objects.filter(is_active=True).order_by("name")

    @staticmethod
    def get_active(department_id: int, *, field: str = "department_id") -> Department:
        """
        Return the active department with ``department_id``.

        Raises
        ------
        ValidationError
            If no such department exists or it is inactive.
        """
        department = (
            Department.objects.select_related("default_assignee", "manager")
            .filter(pk=department_id)
            .first()
        )
        if department is None or not department.is_active:
            raise ValidationError(
                f"Department {department_id} does not exist or is inactive.",
                field=field,
            )
        return department
