# app/api/v1/endpoints/outreach.py
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.core.config import settings
from app.core.exceptions import AllSendsFailed, NoValidRecipients, ValidationError
from app.models.athlete import Athlete
from app.schemas.outreach import (
    DripPhaseResponse,
    DripStatusResponse,
    ManualSendRequest,
    SendResultResponse,
)
from app.schemas.token import TokenPayload
from app.services.outreach.manual_send import send_manual_message
from app.services.outreach.phases import get_phase_schedule, phase_index
from app.utils.time_utils import ensure_utc

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Outreach"])


@router.post("/outreach/athletes/{athlete_id}/send", response_model=SendResultResponse)
def send_athlete_message(
    athlete_id: str,
    send_in: ManualSendRequest,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_outreach_sender),
    athlete: Athlete = Depends(deps.get_athlete_for_user),
):
    """
    Send an outreach email to selected contacts right away.

    Does not move the athlete's drip cursor.
    """
    campaign = crud.campaign.get(db, send_in.campaign_id)
    if not campaign:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")
    if campaign.organization_id != current_user.org_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Org mismatch")
    if athlete.campaign_id and athlete.campaign_id != campaign.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Athlete not assigned to campaign"
        )

    try:
        result = send_manual_message(
            db,
            athlete=athlete,
            campaign=campaign,
            contact_ids=send_in.contact_ids,
            template=send_in.template,
            subject=send_in.subject,
            phase=send_in.phase,
        )
    except NoValidRecipients as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)
    except AllSendsFailed as e:
        logger.error(f"Manual send for athlete {athlete_id} failed for every recipient")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": e.message, "failures": e.failed},
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return SendResultResponse(
        requested=len(send_in.contact_ids),
        attempted=result.attempted,
        sent=result.sent,
        failed=len(result.failed),
        partial=result.partial,
        failures=[f.to_dict() for f in result.failed],
    )


@router.get("/outreach/athletes/{athlete_id}/drip", response_model=DripStatusResponse)
def get_athlete_drip(
    db: Session = Depends(deps.get_db),
    athlete: Athlete = Depends(deps.get_athlete_for_user),
):
    """Computed drip schedule and the persisted cursor for one athlete."""
    campaign = crud.campaign.get(db, athlete.campaign_id) if athlete.campaign_id else None
    org = crud.organization.get(db, athlete.organization_id)
    time_zone = (org.time_zone if org else None) or settings.DEFAULT_ORG_TIME_ZONE

    schedule = get_phase_schedule(campaign.start_date if campaign else None, time_zone)
    try:
        sent_through = phase_index(athlete.drip_last_phase_sent)
    except ValidationError:
        sent_through = -1

    return DripStatusResponse(
        athlete_id=athlete.id,
        auto_send_enabled=bool(athlete.drip_auto_send_enabled),
        time_zone=time_zone,
        state=athlete.drip_state or ("no_schedule" if not schedule else "waiting"),
        last_phase_sent=athlete.drip_last_phase_sent,
        last_sent_at=ensure_utc(athlete.drip_last_sent_at),
        next_phase=athlete.drip_next_phase,
        next_send_at=ensure_utc(athlete.drip_next_send_at),
        schedule=[
            DripPhaseResponse(
                key=phase.key,
                offset_days=phase.offset_days,
                send_at=phase.send_at,
                sent=index <= sent_through,
            )
            for index, phase in enumerate(schedule)
        ],
    )
