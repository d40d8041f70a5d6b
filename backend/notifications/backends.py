"""
notifications.backends — Pluggable message transports.

Each backend exposes ``send(destination, channel, body, *, subject="")``
and reports failure by raising:

* ``TransientDeliveryError`` — worth retrying (network, timeout, 5xx, 429);
* ``PermanentDeliveryError`` — retrying cannot help (bad address, 4xx,
  missing credentials).

Backends are selected per channel through
``COMPLAINTS["DELIVERY_BACKENDS"]`` and instantiated with
``import_string``; see ``load_backends``.
"""

from __future__ import annotations

import logging
import re
import smtplib
from dataclasses import dataclass, field

import httpx
from django.core.mail import BadHeaderError, send_mail
from django.utils.module_loading import import_string

from complaints.conf import get_setting
from core.domain.exceptions import PermanentDeliveryError, TransientDeliveryError

logger = logging.getLogger(__name__)


class DeliveryBackend:
    """Base class; subclasses implement ``send``."""

    def send(self, destination: str, channel: str, body: str, *, subject: str = "") -> None:
        raise NotImplementedError


# ════════════════════════════════════════════════════════════════════
#  Email
# ════════════════════════════════════════════════════════════════════

class EmailDeliveryBackend(DeliveryBackend):
    """Delivers through Django's configured ``EMAIL_BACKEND``."""

    def send(self, destination, channel, body, *, subject=""):
        try:
            send_mail(
                subject or "Complaint Update",
                body,
                None,  # DEFAULT_FROM_EMAIL
                [destination],
                fail_silently=False,
            )
        except smtplib.SMTPRecipientsRefused as exc:
            raise PermanentDeliveryError(
                f"Recipient refused: {destination}",
                context={"destination": destination},
            ) from exc
        except BadHeaderError as exc:
            raise PermanentDeliveryError(str(exc)) from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise TransientDeliveryError(f"SMTP error: {exc}") from exc


# ════════════════════════════════════════════════════════════════════
#  WhatsApp (WAAPI)
# ════════════════════════════════════════════════════════════════════

# Leading digits that already look like a country code.
_INTERNATIONAL_PREFIX = re.compile(r"^(?:[1-8]\d|9[0-5])")


def format_chat_id(phone: str, default_country_code: str) -> str:
    """
    Normalise a phone number to a WAAPI chat id (``<digits>@c.us``).

    Local numbers (leading ``0``, or ten digits without a recognisable
    country code) get ``default_country_code`` prepended.

    Raises
    ------
    PermanentDeliveryError
        If the number has no digits at all.
    """
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        raise PermanentDeliveryError(
            f"Unusable phone number: {phone!r}",
            context={"destination": phone},
        )
    if digits.startswith("0"):
        digits = default_country_code + digits[1:]
    elif len(digits) == 10 and not _INTERNATIONAL_PREFIX.match(digits):
        digits = default_country_code + digits
    return f"{digits}@c.us"


class WaapiWhatsAppBackend(DeliveryBackend):
    """
    Sends WhatsApp messages through the WAAPI HTTP API::

        POST {base_url}/instances/{instance_id}/client/action/send-message
        Authorization: Bearer {api_key}
        {"chatId": "...@c.us", "message": "..."}
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        instance_id: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        default_country_code: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or get_setting("WAAPI_BASE_URL")).rstrip("/")
        self.instance_id = instance_id if instance_id is not None else get_setting("WAAPI_INSTANCE_ID")
        self.api_key = api_key if api_key is not None else get_setting("WAAPI_API_KEY")
        self.timeout = timeout if timeout is not None else get_setting("WAAPI_TIMEOUT")
        self.default_country_code = default_country_code or get_setting("DEFAULT_COUNTRY_CODE")
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/instances/{self.instance_id}/client/action/send-message"

    def send(self, destination, channel, body, *, subject=""):
        if not self.instance_id or not self.api_key:
            raise PermanentDeliveryError("WAAPI credentials are not configured.")

        chat_id = format_chat_id(destination, self.default_country_code)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = client.post(
                    self.endpoint,
                    json={"chatId": chat_id, "message": body},
                    headers=headers,
                )
            except httpx.TimeoutException as exc:
                raise TransientDeliveryError(
                    f"WAAPI request timed out after {self.timeout}s"
                ) from exc
            except httpx.RequestError as exc:
                raise TransientDeliveryError(f"WAAPI request failed: {exc}") from exc

        self._check_response(response, chat_id)

    @staticmethod
    def _check_response(response: httpx.Response, chat_id: str) -> None:
        code = response.status_code
        if code < 400:
            return
        ctx = {"status_code": code, "chat_id": chat_id}
        detail = response.text[:500]
        if code == 429 or code >= 500:
            raise TransientDeliveryError(f"WAAPI returned {code}: {detail}", context=ctx)
        raise PermanentDeliveryError(f"WAAPI rejected message ({code}): {detail}", context=ctx)


# ════════════════════════════════════════════════════════════════════
#  In-memory (tests / development)
# ════════════════════════════════════════════════════════════════════

@dataclass
class SentMessage:
    destination: str
    channel: str
    body: str
    subject: str = ""


class LocmemDeliveryBackend(DeliveryBackend):
    """
    Records messages in the class-level ``outbox`` instead of sending.

    Failures can be scripted per destination::

        LocmemDeliveryBackend.script("+15550100", [TransientDeliveryError(), None])

    Each ``send`` to that destination pops the next entry; an exception
    entry is raised, ``None`` means success.
    """

    outbox: list[SentMessage] = []
    _scripts: dict[str, list] = {}

    @classmethod
    def reset(cls) -> None:
        cls.outbox = []
        cls._scripts = {}

    @classmethod
    def script(cls, destination: str, outcomes: list) -> None:
        cls._scripts[destination] = list(outcomes)

    def send(self, destination, channel, body, *, subject=""):
        queue = self._scripts.get(destination)
        if queue:
            outcome = queue.pop(0)
            if outcome is not None:
                raise outcome
        self.outbox.append(SentMessage(destination, channel, body, subject))


# ════════════════════════════════════════════════════════════════════
#  Loading
# ════════════════════════════════════════════════════════════════════

@dataclass
class BackendRegistry:
    backends: dict[str, DeliveryBackend] = field(default_factory=dict)

    def for_channel(self, channel: str) -> DeliveryBackend:
        try:
            return self.backends[channel]
        except KeyError:
            raise PermanentDeliveryError(
                f"No delivery backend configured for channel '{channel}'.",
                context={"channel": channel},
            )


def load_backends() -> BackendRegistry:
    """Instantiate every backend named in ``COMPLAINTS["DELIVERY_BACKENDS"]``."""
    return BackendRegistry(
        {
            channel: import_string(path)()
            for channel, path in get_setting("DELIVERY_BACKENDS").items()
        }
    )
