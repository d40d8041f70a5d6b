"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF handler translating those exceptions.
transactions       Helpers for ``transaction.atomic`` + ``select_for_update``.
access             Role × relationship permission matrix.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.transactions import lock_for_update
    from core.domain.access import Action, Principal, authorize
"""
