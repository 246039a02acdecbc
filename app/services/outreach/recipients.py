# app/services/outreach/recipients.py
import enum
import re
from typing import Iterable, List

from app.models.contact import Contact

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class RecipientScope(str, enum.Enum):
    SCHEDULED = "scheduled"
    MANUAL = "manual"


# Statuses never emailed, per kind of send. A manual send may still reach a
# donor who already gave (e.g. a thank-you), never a suppressed address.
EXCLUDED_STATUSES = {
    RecipientScope.SCHEDULED: frozenset({"donated", "bounced", "complained"}),
    RecipientScope.MANUAL: frozenset({"bounced", "complained"}),
}


def is_valid_email(value) -> bool:
    return bool(EMAIL_PATTERN.match(str(value or "").strip()))


def filter_recipients(contacts: Iterable[Contact], scope: RecipientScope) -> List[Contact]:
    """
    Contacts that are eligible to be emailed for this kind of send.

    Read-only and advisory: a contact may change status after it is
    returned, so the send engine checks the suppression set again when it
    writes.
    """
    excluded = EXCLUDED_STATUSES[scope]
    return [
        contact
        for contact in contacts
        if is_valid_email(contact.email) and (contact.status or "draft") not in excluded
    ]
