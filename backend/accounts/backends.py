"""
Custom authentication backend for username-or-email login.

Allows users to authenticate using either their ``username`` or their
``email`` together with their ``password``.

This backend is registered in ``settings.AUTHENTICATION_BACKENDS``
so that Django's ``authenticate()`` call dispatches to it.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

User = get_user_model()


class UsernameOrEmailBackend(ModelBackend):
    """
    Authenticate against ``username`` or ``email``.

    Email is optional and not unique, so an email that matches more than
    one account is rejected rather than guessed.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        identifier = username or kwargs.get(User.USERNAME_FIELD)
        if not identifier or password is None:
            return None

        matches = list(
            User.objects.filter(Q(username=identifier) | Q(email__iexact=identifier))[:2]
        )
        if len(matches) != 1:
            # Run the default password hasher to mitigate timing attacks
            User().set_password(password)
            return None

        user = matches[0]
        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
