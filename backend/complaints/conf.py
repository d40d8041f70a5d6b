"""
App-level settings for the complaint workflow.

Values are read from the ``COMPLAINTS`` dict in Django settings, falling
back to ``DEFAULTS`` key by key, so a deployment only overrides what it
needs::

    COMPLAINTS = {
        "NOTIFICATION_CHANNELS": ["email"],
        "MAX_ATTEMPTS": 3,
    }

Read lazily on every call so ``override_settings`` works in tests.
"""

from __future__ import annotations

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    # Channels the dispatcher fans out to, in order.
    "NOTIFICATION_CHANNELS": ["email", "whatsapp"],
    # channel → dotted path of a delivery backend class
    "DELIVERY_BACKENDS": {
        "email": "notifications.backends.EmailDeliveryBackend",
        "whatsapp": "notifications.backends.WaapiWhatsAppBackend",
    },
    # Delivery retry policy
    "MAX_ATTEMPTS": 5,
    "BACKOFF_SECONDS": 30,
    # WAAPI (WhatsApp) transport
    "WAAPI_BASE_URL": "https://waapi.app/api/v1",
    "WAAPI_INSTANCE_ID": "",
    "WAAPI_API_KEY": "",
    "WAAPI_TIMEOUT": 10.0,
    "DEFAULT_COUNTRY_CODE": "92",
    # Used to build links in notification messages
    "PUBLIC_BASE_URL": "",
}


def get_setting(name: str) -> Any:
    if name not in DEFAULTS:
        raise KeyError(f"Unknown COMPLAINTS setting: {name!r}")
    overrides = getattr(settings, "COMPLAINTS", {}) or {}
    return overrides.get(name, DEFAULTS[name])
