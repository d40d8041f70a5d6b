"""
Permissions Constants — **Single Source of Truth**

Every custom permission referenced in code (service layer, admin, tests)
MUST use one of the constants defined here.

Role-level decisions live in the permission matrix
(``core.domain.access``); Django permissions are only used for the few
per-user grants that sit on top of a role.  Adding a new one requires:
    1. Add the constant below.
    2. Add the ``(codename, description)`` to the related model's
       ``Meta.permissions``.
    3. Add a migration inserting it into ``auth_permission`` (Django's
       post-migrate signal does this for ``Meta.permissions``).

Constants store the **codename only**; ``full()`` adds the app label.
"""


class AccountsPerms:
    """Custom per-user grants for the accounts app."""

    # Lets an employee hand a complaint assigned to them over to another
    # member of the same department.
    CAN_HAND_OFF_WITHIN_DEPARTMENT = "can_hand_off_within_department"

    @staticmethod
    def full(codename: str) -> str:
        return f"accounts.{codename}"
