# app/services/outreach/phases.py
"""
Drip phase schedule and cursor state machine.

Each campaign sends up to six outreach emails per athlete. Phases are anchored
to the campaign start date in the organization's local time zone and always
go out at 18:30 local wall-clock time, so a DST change between two phases
shifts the UTC instant rather than the local hour.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import ValidationError
from app.utils.time_utils import ensure_utc

logger = logging.getLogger(__name__)

# (phase key, days after campaign start)
PHASES = (
    ("week1a", 0),
    ("week1b", 3),
    ("week2", 7),
    ("week3", 14),
    ("week4", 21),
    ("week5", 28),
)
PHASE_KEYS = tuple(key for key, _ in PHASES)
SEND_HOUR = 18
SEND_MINUTE = 30


class DripState(str, enum.Enum):
    NO_SCHEDULE = "no_schedule"
    WAITING = "waiting"
    DUE = "due"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class ScheduledPhase:
    key: str
    offset_days: int
    send_at: datetime  # UTC


@dataclass(frozen=True)
class DripDecision:
    state: DripState
    cursor_index: int  # index of the last sent phase, -1 when nothing sent
    due_phase: Optional[ScheduledPhase] = None
    next_phase: Optional[ScheduledPhase] = None


def _load_zone(time_zone: Optional[str]) -> Optional[ZoneInfo]:
    if not time_zone:
        return None
    try:
        return ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone '{time_zone}', no drip schedule computed")
        return None


def get_phase_schedule(
    start_date: Optional[Union[date, datetime]], time_zone: Optional[str]
) -> List[ScheduledPhase]:
    """
    Compute the UTC send instant of every phase.

    Returns an empty list when the start date or the zone is unknown.
    A datetime start is first converted into the zone and only its calendar
    date is used.
    """
    if start_date is None:
        return []
    zone = _load_zone(time_zone)
    if zone is None:
        return []

    if isinstance(start_date, datetime):
        local_start = ensure_utc(start_date).astimezone(zone).date()
    else:
        local_start = start_date

    schedule = []
    for key, offset_days in PHASES:
        local_day = local_start + timedelta(days=offset_days)
        local_send = datetime.combine(local_day, time(SEND_HOUR, SEND_MINUTE), tzinfo=zone)
        schedule.append(
            ScheduledPhase(
                key=key,
                offset_days=offset_days,
                send_at=local_send.astimezone(timezone.utc),
            )
        )
    return schedule


def phase_index(phase_key: Optional[str]) -> int:
    """Position of a persisted cursor key; -1 for none. Unknown keys are rejected."""
    if not phase_key:
        return -1
    try:
        return PHASE_KEYS.index(phase_key)
    except ValueError:
        raise ValidationError(f"Unknown drip phase '{phase_key}'", code="UNKNOWN_PHASE")


def evaluate_drip(
    schedule: List[ScheduledPhase],
    last_phase_sent: Optional[str],
    now: datetime,
) -> DripDecision:
    """
    Decide what the drip cursor should do at ``now``.

    The phase to fire is the most advanced phase after the cursor whose send
    time has passed. Earlier phases whose window has fully elapsed (the
    following phase is already due) are passed over. This is deliberately
    not first-due catch-up: a late or paused athlete jumps straight to the
    latest due phase instead of sending one stale phase per sweep.
    """
    cursor = phase_index(last_phase_sent)
    if not schedule:
        return DripDecision(state=DripState.NO_SCHEDULE, cursor_index=cursor)

    now = ensure_utc(now)
    remaining = schedule[cursor + 1:]
    if not remaining:
        return DripDecision(state=DripState.EXHAUSTED, cursor_index=cursor)

    due = [phase for phase in remaining if phase.send_at <= now]
    upcoming = [phase for phase in remaining if phase.send_at > now]
    next_phase = upcoming[0] if upcoming else None

    if due:
        return DripDecision(
            state=DripState.DUE,
            cursor_index=cursor,
            due_phase=due[-1],
            next_phase=next_phase,
        )
    return DripDecision(state=DripState.WAITING, cursor_index=cursor, next_phase=next_phase)


def next_after(schedule: List[ScheduledPhase], phase_key: str) -> Optional[ScheduledPhase]:
    """The phase following ``phase_key`` in the schedule, if any."""
    index = phase_index(phase_key)
    if index + 1 < len(schedule):
        return schedule[index + 1]
    return None
