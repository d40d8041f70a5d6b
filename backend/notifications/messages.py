"""
Message templates for complaint notifications.

One template per event type.  The same body is used on every channel;
WhatsApp renders the ``*bold*`` markers, email shows them literally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from complaints.conf import get_setting
from core.constants import short_id

from .models import NotificationEvent

if TYPE_CHECKING:
    from .dispatcher import TransitionOutcome

# event_type → (subject, body template)
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    NotificationEvent.CREATED: (
        "New Complaint Created",
        "🆕 *New Complaint Created*\n\n"
        "*ID:* #{short_id}\n"
        "*Title:* {title}\n"
        "*Client:* {client}\n"
        "*Department:* {new_department}\n"
        "*Assigned to:* {new_assignee}\n"
        "*Status:* {new_status}\n"
        "*Created by:* {actor}\n"
        "{link}",
    ),
    NotificationEvent.STATUS_CHANGED: (
        "Complaint Status Updated",
        "📋 *Complaint Status Updated*\n\n"
        "*ID:* #{short_id}\n"
        "*Title:* {title}\n"
        "*Status:* {old_status} → *{new_status}*\n"
        "*Updated by:* {actor}\n"
        "*Assigned to:* {new_assignee}\n"
        "{notes}"
        "{link}",
    ),
    NotificationEvent.REASSIGNED: (
        "Complaint Reassigned",
        "🔄 *Complaint Reassigned*\n\n"
        "*ID:* #{short_id}\n"
        "*Title:* {title}\n"
        "*From:* {old_assignee} ({old_department})\n"
        "*To:* {new_assignee} ({new_department})\n"
        "*Reassigned by:* {actor}\n"
        "{notes}"
        "{link}",
    ),
}

_UNKNOWN = "Unknown"


def _name(user) -> str:
    return user.display_name if user is not None else _UNKNOWN


def subject_for(event_type: str) -> str:
    return _EVENT_TEMPLATES.get(event_type, ("Complaint Update", ""))[0]


def render(outcome: TransitionOutcome) -> str:
    """Render the notification body for ``outcome``."""
    complaint = outcome.complaint
    _, template = _EVENT_TEMPLATES[outcome.event_type]

    base_url = get_setting("PUBLIC_BASE_URL").rstrip("/")
    link = f"\nView details: {base_url}/complaints/{complaint.pk}" if base_url else ""
    notes = f"*Notes:* {outcome.history.notes}\n" if outcome.history.notes else ""

    return template.format(
        short_id=short_id(complaint.pk),
        title=complaint.title,
        client=_name(complaint.client),
        old_status=outcome.old_status or "-",
        new_status=outcome.new_status or complaint.status,
        old_assignee=_name(outcome.old_assignee),
        new_assignee=_name(outcome.new_assignee),
        old_department=outcome.old_department.name if outcome.old_department else _UNKNOWN,
        new_department=outcome.new_department.name if outcome.new_department else _UNKNOWN,
        actor=_name(outcome.actor) if outcome.actor is not None else "System",
        notes=notes,
        link=link,
    ).rstrip()
