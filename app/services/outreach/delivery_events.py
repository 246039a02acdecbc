# app/services/outreach/delivery_events.py
"""
Delivery callbacks from the email provider.

Resend posts events shaped like::

    {
        "type": "email.bounced",
        "created_at": "2024-01-02T02:31:07.000Z",
        "data": {
            "email_id": "...",
            "to": ["donor@example.com"],
            "tags": {"contact_id": "ctc_...", "athlete_id": "ath_...", ...},
            "bounce": {"message": "..."}
        }
    }

The tracking tags are the ones attached by the send engine.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app import crud
from app.models.contact import Contact
from app.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

# provider event -> (short event name, contact status to apply)
EVENT_STATUS = {
    "email.delivered": ("delivered", "sent"),
    "email.bounced": ("bounced", "bounced"),
    "email.failed": ("failed", "bounced"),
    "email.complained": ("complained", "complained"),
}


@dataclass
class DeliveryEvent:
    event_type: str
    recipient: str
    contact_id: Optional[str]
    athlete_id: Optional[str]
    campaign_id: Optional[str]
    organization_id: Optional[str]
    occurred_at: datetime
    error: Optional[str]
    payload: Dict[str, Any]

    @property
    def new_status(self) -> Optional[str]:
        return EVENT_STATUS.get(f"email.{self.event_type}", (None, None))[1]


def _normalize_tags(raw) -> Dict[str, str]:
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items() if v is not None}
    if isinstance(raw, list):
        return {
            str(item.get("name")): str(item.get("value"))
            for item in raw
            if isinstance(item, dict) and item.get("name") and item.get("value") is not None
        }
    return {}


def _parse_timestamp(value) -> datetime:
    if not value:
        return utcnow()
    try:
        return ensure_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        return utcnow()


def parse_delivery_event(payload: Any) -> Optional[DeliveryEvent]:
    """Returns None when the payload is not a delivery event at all."""
    if not isinstance(payload, dict):
        return None
    raw_type = payload.get("type")
    data = payload.get("data")
    if not raw_type or not isinstance(data, dict):
        return None

    raw_type = str(raw_type)
    event_type = EVENT_STATUS.get(raw_type, (raw_type.replace("email.", "", 1), None))[0]

    to = data.get("to")
    if isinstance(to, list):
        to = to[0] if to else ""
    recipient = str(to or "").strip().lower()

    tags = _normalize_tags(data.get("tags"))
    bounce = data.get("bounce") if isinstance(data.get("bounce"), dict) else {}
    error = None
    if event_type in ("bounced", "failed", "complained"):
        error = bounce.get("message") or data.get("reason") or event_type

    return DeliveryEvent(
        event_type=event_type,
        recipient=recipient,
        contact_id=tags.get("contact_id") or None,
        athlete_id=tags.get("athlete_id") or None,
        campaign_id=tags.get("campaign_id") or None,
        organization_id=tags.get("org_id") or None,
        occurred_at=_parse_timestamp(payload.get("created_at")),
        error=error,
        payload=payload,
    )


def _resolve_contact(db: Session, event: DeliveryEvent) -> Optional[Contact]:
    if event.contact_id:
        contact = crud.contact.get(db, event.contact_id)
        if contact is not None:
            return contact
    if event.recipient and event.athlete_id and event.organization_id:
        matches = crud.contact.find_by_email(
            db,
            org_id=event.organization_id,
            athlete_id=event.athlete_id,
            email=event.recipient,
        )
        if matches:
            return matches[0]
    return None


def ingest_delivery_event(db: Session, event: DeliveryEvent) -> Optional[Contact]:
    """
    Apply one delivery event to its contact (when found) and append it to
    the message event log. Returns the updated contact, if any.
    """
    contact = _resolve_contact(db, event)
    if contact is not None:
        contact = crud.contact.record_delivery_event(
            db,
            contact=contact,
            event_type=event.event_type,
            event_at=event.occurred_at,
            new_status=event.new_status,
            error=event.error,
            clear_error=event.event_type == "delivered",
        )
        logger.info(
            f"Delivery event {event.event_type} applied to contact {contact.id} "
            f"(status={contact.status})"
        )
    else:
        logger.info(f"Delivery event {event.event_type} for {event.recipient} matched no contact")

    crud.message_event.log_event(
        db,
        source="resend",
        event_type=event.event_type,
        recipient=event.recipient,
        contact_id=event.contact_id,
        athlete_id=event.athlete_id,
        campaign_id=event.campaign_id,
        organization_id=event.organization_id,
        payload=event.payload,
    )
    return contact
