# app/services/reporting/rollups.py
import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.exceptions import DuplicateIdempotentWrite
from app.models.donation_rollup import DonationRollup
from app.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class RollupSummary:
    date_key: str
    donations_seen: int = 0
    created: List[str] = field(default_factory=list)
    already_present: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def day_bounds(day: date, time_zone: str):
    """UTC [start, end) of a calendar day in the given zone."""
    zone = ZoneInfo(time_zone)
    start = datetime.combine(day, time(0, 0), tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def previous_local_day(now: datetime, time_zone: str) -> date:
    return ensure_utc(now).astimezone(ZoneInfo(time_zone)).date() - timedelta(days=1)


def run_daily_rollups(
    db: Session,
    *,
    day: Optional[date] = None,
    time_zone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RollupSummary:
    """
    Write per-organization totals of paid donations for one local day.

    Defaults to "yesterday" in the rollup zone. Rollups are write-once: an
    existing ``<org>_<YYYYMMDD>`` row is left untouched.
    """
    time_zone = time_zone or settings.ROLLUP_TIME_ZONE
    day = day or previous_local_day(now or utcnow(), time_zone)
    date_key = day.strftime("%Y%m%d")
    start, end = day_bounds(day, time_zone)

    donations = crud.donation.get_created_in_range(db, start=start, end=end, status="paid")
    summary = RollupSummary(date_key=date_key, donations_seen=len(donations))
    if not donations:
        logger.info(f"No donations to roll up for {date_key}")
        return summary

    totals: Dict[str, Dict] = {}
    for donation in donations:
        amount = int(donation.amount or 0)
        if not donation.organization_id or amount <= 0:
            continue
        org_totals = totals.setdefault(
            donation.organization_id,
            {"total_amount_cents": 0, "donation_count": 0, "by_campaign": {}},
        )
        org_totals["total_amount_cents"] += amount
        org_totals["donation_count"] += 1
        campaign_key = donation.campaign_id or "unknown"
        by_campaign = org_totals["by_campaign"].setdefault(
            campaign_key, {"total_amount_cents": 0, "donation_count": 0}
        )
        by_campaign["total_amount_cents"] += amount
        by_campaign["donation_count"] += 1

    for org_id, org_totals in totals.items():
        rollup_id = f"{org_id}_{date_key}"
        try:
            crud.donation_rollup.create_if_absent(
                db,
                db_obj=DonationRollup(
                    id=rollup_id,
                    organization_id=org_id,
                    date_key=date_key,
                    **org_totals,
                ),
            )
            summary.created.append(rollup_id)
        except DuplicateIdempotentWrite:
            summary.already_present.append(rollup_id)

    logger.info(
        f"Daily rollups {date_key}: {len(summary.created)} created, "
        f"{len(summary.already_present)} already present"
    )
    return summary
