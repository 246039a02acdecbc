# app/services/outreach/drip_scheduler.py
"""
Periodic drip sweep.

Every sweep looks at each athlete with auto-send enabled, works out which
phase (if any) is due and sends it through the batch send engine. At most
one phase is sent per athlete per sweep. A failed send leaves the cursor
where it was, so the same phase is retried on the next sweep.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.exceptions import (
    AllSendsFailed,
    NoValidRecipients,
    TransientDependencyError,
    ValidationError,
)
from app.models.athlete import Athlete
from app.models.campaign import Campaign
from app.services.outreach.phases import DripState, evaluate_drip, get_phase_schedule, next_after
from app.services.outreach.recipients import RecipientScope
from app.services.outreach.send_engine import BatchSendEngine, CursorUpdate, RenderedMessage
from app.services.outreach.templates import (
    TemplateContext,
    render_invite_template,
    resolve_phase_subject,
    resolve_phase_template,
)
from app.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutreachConfig:
    """Organization outreach settings as read at the start of one athlete's turn."""

    organization_id: str
    time_zone: str
    drip_global_enabled: bool
    default_template: Optional[str]
    phase_templates: Dict[str, str]
    phase_subjects: Dict[str, str]
    frontend_url: str
    config_version: int

    @classmethod
    def load(cls, db: Session, organization_id: str) -> Optional["OutreachConfig"]:
        org = crud.organization.get(db, organization_id)
        if org is None:
            return None
        return cls(
            organization_id=org.id,
            time_zone=org.time_zone or settings.DEFAULT_ORG_TIME_ZONE,
            drip_global_enabled=bool(org.drip_global_enabled),
            default_template=org.donor_invite_template,
            phase_templates=dict(org.donor_invite_templates or {}),
            phase_subjects=dict(org.donor_invite_subjects or {}),
            frontend_url=(org.frontend_url or settings.FRONTEND_URL or "").rstrip("/"),
            config_version=org.config_version or 1,
        )


@dataclass
class SweepSummary:
    athletes_checked: int = 0
    sent: int = 0
    waiting: int = 0
    exhausted: int = 0
    no_schedule: int = 0
    failed: int = 0
    errors: int = 0

    def record(self, outcome: str):
        setattr(self, outcome, getattr(self, outcome) + 1)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def build_donate_url(frontend_url: str, campaign_id: str, athlete_id: str) -> str:
    if not frontend_url:
        return ""
    return f"{frontend_url}/donate/{campaign_id}/athlete/{athlete_id}"


def _campaign_ended(campaign: Campaign, now: datetime) -> bool:
    end_date = ensure_utc(campaign.end_date)
    return end_date is not None and now > end_date


def process_athlete(
    db: Session,
    athlete: Athlete,
    *,
    now: datetime,
    engine: BatchSendEngine,
) -> str:
    """
    Run one athlete's drip step. Returns the outcome name counted in the
    sweep summary: sent, waiting, exhausted, no_schedule or failed.
    """
    campaign = crud.campaign.get(db, athlete.campaign_id) if athlete.campaign_id else None
    config = OutreachConfig.load(db, athlete.organization_id)

    if (
        campaign is None
        or config is None
        or not config.drip_global_enabled
        or campaign.start_date is None
        or _campaign_ended(campaign, now)
    ):
        crud.athlete.set_drip_cursor(
            db, athlete=athlete, state=DripState.NO_SCHEDULE.value, next_phase=None, next_send_at=None
        )
        return "no_schedule"

    schedule = get_phase_schedule(campaign.start_date, config.time_zone)
    decision = evaluate_drip(schedule, athlete.drip_last_phase_sent, now)

    if decision.state == DripState.NO_SCHEDULE:
        crud.athlete.set_drip_cursor(
            db, athlete=athlete, state=decision.state.value, next_phase=None, next_send_at=None
        )
        return "no_schedule"

    if decision.state == DripState.EXHAUSTED:
        crud.athlete.set_drip_cursor(
            db, athlete=athlete, state=decision.state.value, next_phase=None, next_send_at=None
        )
        return "exhausted"

    if decision.state == DripState.WAITING:
        crud.athlete.set_drip_cursor(
            db,
            athlete=athlete,
            state=decision.state.value,
            next_phase=decision.next_phase.key,
            next_send_at=decision.next_phase.send_at,
        )
        return "waiting"

    due = decision.due_phase
    template = resolve_phase_template(
        due.key,
        athlete_templates=athlete.donor_invite_templates,
        org_templates=config.phase_templates,
        org_default=config.default_template,
    )
    donate_url = build_donate_url(config.frontend_url, campaign.id, athlete.id)
    text = render_invite_template(
        template,
        TemplateContext(
            athlete_name=athlete.name,
            team_name=campaign.team_name,
            campaign_name=campaign.name,
            donate_url=donate_url,
        ),
    )
    subject = resolve_phase_subject(due.key, config.phase_subjects)

    following = next_after(schedule, due.key)
    cursor_update = CursorUpdate(
        last_phase_sent=due.key,
        next_phase=following.key if following else None,
        next_send_at=following.send_at if following else None,
        state=DripState.WAITING.value if following else DripState.EXHAUSTED.value,
    )

    contacts = crud.contact.get_by_athlete(db, org_id=athlete.organization_id, athlete_id=athlete.id)
    try:
        result = engine.send(
            db,
            contacts=contacts,
            message=RenderedMessage(
                organization_id=athlete.organization_id,
                athlete_id=athlete.id,
                campaign_id=campaign.id,
                phase=due.key,
                subject=subject,
                text=text,
                is_automated=True,
                donate_url=donate_url or None,
                athlete_name=athlete.name,
            ),
            scope=RecipientScope.SCHEDULED,
            athlete=athlete,
            cursor_update=cursor_update,
        )
    except (NoValidRecipients, AllSendsFailed) as e:
        logger.warning(
            f"Drip phase {due.key} for athlete {athlete.id} not sent ({e.code}): {e.message}"
        )
        crud.athlete.set_drip_cursor(
            db, athlete=athlete, state=DripState.DUE.value, next_phase=due.key, next_send_at=due.send_at
        )
        return "failed"

    logger.info(
        f"Drip phase {due.key} sent for athlete {athlete.id} "
        f"(config v{config.config_version}): {result.sent} sent, {len(result.failed)} failed"
    )
    return "sent"


def run_drip_sweep(
    db: Session,
    *,
    now: Optional[datetime] = None,
    engine: Optional[BatchSendEngine] = None,
) -> SweepSummary:
    """
    Process every auto-send athlete once, sequentially.

    An exception for one athlete is logged and the sweep moves on to the
    next one.
    """
    now = ensure_utc(now) if now else utcnow()
    engine = engine or BatchSendEngine()
    summary = SweepSummary()

    athlete_ids = [a.id for a in crud.athlete.get_auto_send_enabled(db)]
    for athlete_id in athlete_ids:
        summary.athletes_checked += 1
        try:
            athlete = crud.athlete.get(db, athlete_id)
            if athlete is None or not athlete.drip_auto_send_enabled:
                continue
            summary.record(process_athlete(db, athlete, now=now, engine=engine))
        except ValidationError as e:
            db.rollback()
            summary.errors += 1
            logger.error(f"Drip skipped for athlete {athlete_id}: {e.message}")
        except TransientDependencyError as e:
            db.rollback()
            summary.errors += 1
            logger.warning(f"Drip deferred for athlete {athlete_id}, will retry next sweep: {e.message}")
        except Exception as e:
            db.rollback()
            summary.errors += 1
            logger.exception(f"Drip failed for athlete {athlete_id}: {e}")

    logger.info(f"Drip sweep complete: {summary.to_dict()}")
    return summary
