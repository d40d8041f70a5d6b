"""
Accounts app models.

Defines organisational departments and a custom User model that extends
Django's ``AbstractUser`` with a fixed role, a department membership and
the contact details used for notification delivery.
"""

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models

from core.models import TimeStampedModel
from core.permissions_constants import AccountsPerms


class UserRole(models.TextChoices):
    CLIENT = "client", "Client"
    EMPLOYEE = "employee", "Employee"
    MANAGER = "manager", "Manager"
    ADMIN = "admin", "Admin"


# Roles that must belong to a department.
DEPARTMENT_ROLES = (UserRole.EMPLOYEE, UserRole.MANAGER)


class Department(TimeStampedModel):
    """
    An organisational unit complaints are routed to.

    ``default_assignee`` receives every complaint routed to the
    department; ``manager`` oversees all of the department's complaints
    and is notified about movements in and out of it.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Department Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    manager = models.ForeignKey(
        "accounts.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="managed_departments",
        verbose_name="Manager",
    )
    default_assignee = models.ForeignKey(
        "accounts.User",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="default_for_departments",
        verbose_name="Default Assignee",
        help_text="Receives newly routed complaints.",
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        verbose_name="Active",
    )

    class Meta:
        verbose_name = "Department"
        verbose_name_plural = "Departments"
        ordering = ["name"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    Custom user model for the complaint system.

    Each user holds exactly **one** fixed role.  Employees and managers
    belong to a department; clients and admins may not.  ``email`` and
    ``phone_number`` are optional: a user without one simply receives no
    notifications on that channel.
    """

    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CLIENT,
        db_index=True,
        verbose_name="Role",
    )
    department = models.ForeignKey(
        Department,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="members",
        verbose_name="Department",
    )
    phone_number = models.CharField(
        max_length=20,
        blank=True,
        default="",
        verbose_name="Phone Number",
        help_text="Used for WhatsApp notifications.",
    )
    email = models.EmailField(
        blank=True,
        default="",
        verbose_name="Email Address",
    )

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        permissions = [
            (
                AccountsPerms.CAN_HAND_OFF_WITHIN_DEPARTMENT,
                "Can hand off assigned complaints within own department",
            ),
        ]

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    def clean(self):
        super().clean()
        if self.role in DEPARTMENT_ROLES and self.department_id is None:
            raise ValidationError(
                {"department": "Employees and managers must belong to a department."}
            )

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
