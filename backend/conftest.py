"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``make_user`` / ``make_department`` / ``make_nature_type`` factory
    fixtures for the reference data every complaint needs.
  - ``principal`` turning a user into the ``Principal`` the workflow
    service expects.
  - ``locmem_outbox`` clearing and returning the in-memory delivery
    outbox.
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def make_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(make_user, make_department):
            dept = make_department(name="Billing")
            clerk = make_user(role="employee", department=dept)
            client = make_user(phone_number="03001234567")

    ``email`` defaults to ``<username>@test.local``; ``phone_number``
    defaults to empty so WhatsApp is skipped unless a test asks for it.
    ``hand_off=True`` grants the department hand-off permission.
    """
    from django.contrib.auth.models import Permission

    from accounts.models import User, UserRole
    from core.permissions_constants import AccountsPerms

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        role: str = UserRole.CLIENT,
        department=None,
        email: str | None = None,
        phone_number: str = "",
        hand_off: bool = False,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"{role}{_counter}"
        if email is None:
            email = f"{username}@test.local"

        user = User.objects.create_user(
            username=username,
            password=password,
            email=email,
            phone_number=phone_number,
            role=role,
            department=department,
            **kwargs,
        )
        if hand_off:
            user.user_permissions.add(
                Permission.objects.get(
                    codename=AccountsPerms.CAN_HAND_OFF_WITHIN_DEPARTMENT,
                    content_type__app_label="accounts",
                )
            )
            # Drop the cached permission set.
            user = User.objects.get(pk=user.pk)
        return user

    return _factory


@pytest.fixture()
def make_department(db):
    """
    Factory fixture for departments.

    ``default_assignee`` and ``manager`` are set after creation so the
    users can themselves belong to the new department::

        dept = make_department(name="Support")
        agent = make_user(role="employee", department=dept)
        make_department.staff(dept, default_assignee=agent)
    """
    from accounts.models import Department

    _counter = 0

    def _factory(*, name: str | None = None, is_active: bool = True, **kwargs) -> Department:
        nonlocal _counter
        _counter += 1
        return Department.objects.create(
            name=name or f"Department {_counter}",
            is_active=is_active,
            **kwargs,
        )

    def _staff(department: Department, *, default_assignee=None, manager=None) -> Department:
        if default_assignee is not None:
            department.default_assignee = default_assignee
        if manager is not None:
            department.manager = manager
        department.save(update_fields=["default_assignee", "manager", "updated_at"])
        return department

    _factory.staff = _staff
    return _factory


@pytest.fixture()
def make_nature_type(db):
    from complaints.models import NatureType

    _counter = 0

    def _factory(*, name: str | None = None, is_active: bool = True) -> NatureType:
        nonlocal _counter
        _counter += 1
        return NatureType.objects.create(
            name=name or f"Nature {_counter}",
            is_active=is_active,
        )

    return _factory


@pytest.fixture()
def principal():
    """Return ``Principal.from_user`` so tests read ``principal(user)``."""
    from core.domain.access import Principal

    return Principal.from_user


@pytest.fixture()
def locmem_outbox():
    """Empty the in-memory backend before and after the test."""
    from notifications.backends import LocmemDeliveryBackend

    LocmemDeliveryBackend.reset()
    yield LocmemDeliveryBackend.outbox
    LocmemDeliveryBackend.reset()
