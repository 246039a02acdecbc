# app/services/outreach/manual_send.py
"""
Manual outreach: an athlete or coach picks contacts and sends now.

Uses the same send engine as the drip sweep but never touches the athlete's
drip cursor, and may reach contacts who already donated.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.athlete import Athlete
from app.models.campaign import Campaign
from app.services.outreach.drip_scheduler import build_donate_url
from app.services.outreach.recipients import RecipientScope
from app.services.outreach.send_engine import BatchSendEngine, RenderedMessage, SendResult
from app.services.outreach.templates import (
    DEFAULT_DONOR_INVITE_TEMPLATE,
    TemplateContext,
    render_invite_template,
)

logger = logging.getLogger(__name__)

MAX_MANUAL_RECIPIENTS = 200
MANUAL_PHASE = "manual"


def send_manual_message(
    db: Session,
    *,
    athlete: Athlete,
    campaign: Campaign,
    contact_ids: List[str],
    template: Optional[str] = None,
    subject: Optional[str] = None,
    phase: Optional[str] = None,
    engine: Optional[BatchSendEngine] = None,
) -> SendResult:
    if not contact_ids:
        raise ValidationError("No contacts selected")
    if len(contact_ids) > MAX_MANUAL_RECIPIENTS:
        raise ValidationError("Too many contacts in one send")

    org = crud.organization.get(db, athlete.organization_id)
    frontend_url = ((org.frontend_url if org else None) or settings.FRONTEND_URL or "").rstrip("/")
    donate_url = build_donate_url(frontend_url, campaign.id, athlete.id)

    athlete_name = athlete.name or "our athlete"
    team_name = campaign.team_name or "our team"
    content = template.strip() if template and template.strip() else DEFAULT_DONOR_INVITE_TEMPLATE
    text = render_invite_template(
        content,
        TemplateContext(
            athlete_name=athlete_name,
            team_name=team_name,
            campaign_name=campaign.name,
            donate_url=donate_url,
        ),
    )
    message_subject = (
        subject.strip()
        if subject and subject.strip()
        else f"Can you support {athlete_name} and {team_name}?"
    )

    # dict.fromkeys keeps the caller's order while dropping repeats
    contacts = crud.contact.get_many(
        db,
        ids=list(dict.fromkeys(contact_ids)),
        org_id=athlete.organization_id,
        athlete_id=athlete.id,
    )

    engine = engine or BatchSendEngine()
    result = engine.send(
        db,
        contacts=contacts,
        message=RenderedMessage(
            organization_id=athlete.organization_id,
            athlete_id=athlete.id,
            campaign_id=campaign.id,
            phase=phase or MANUAL_PHASE,
            subject=message_subject,
            text=text,
            is_automated=False,
            donate_url=donate_url or None,
            athlete_name=athlete_name,
        ),
        scope=RecipientScope.MANUAL,
    )
    logger.info(
        f"Manual send for athlete {athlete.id}: {result.sent} sent, "
        f"{len(result.failed)} failed, {len(contact_ids)} requested"
    )
    return result
