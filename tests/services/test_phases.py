"""
Tests for the drip phase schedule and cursor decisions.

Verifies:
1. Phases land at 18:30 local time on the right days
2. A DST change shifts the UTC instant, not the local hour
3. Unknown zones or missing start dates give no schedule
4. evaluate_drip picks waiting / due / exhausted correctly
5. Only the most advanced due phase fires after a gap
6. Unknown cursor keys are rejected
"""

import pytest
from datetime import date, datetime, timezone

from app.core.exceptions import ValidationError
from app.services.outreach.phases import (
    PHASE_KEYS,
    DripState,
    evaluate_drip,
    get_phase_schedule,
    next_after,
    phase_index,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


LA_SCHEDULE = get_phase_schedule(date(2024, 1, 1), "America/Los_Angeles")


# ================================================================
# Schedule computation
# ================================================================

class TestGetPhaseSchedule:

    def test_los_angeles_winter_schedule(self):
        send_times = {phase.key: phase.send_at for phase in LA_SCHEDULE}

        assert send_times == {
            "week1a": utc(2024, 1, 2, 2, 30),
            "week1b": utc(2024, 1, 5, 2, 30),
            "week2": utc(2024, 1, 9, 2, 30),
            "week3": utc(2024, 1, 16, 2, 30),
            "week4": utc(2024, 1, 23, 2, 30),
            "week5": utc(2024, 1, 30, 2, 30),
        }

    def test_phases_are_in_order_and_strictly_increasing(self):
        assert tuple(phase.key for phase in LA_SCHEDULE) == PHASE_KEYS
        for earlier, later in zip(LA_SCHEDULE, LA_SCHEDULE[1:]):
            assert earlier.send_at < later.send_at

    def test_dst_start_keeps_local_send_time(self):
        schedule = get_phase_schedule(date(2024, 3, 8), "America/Los_Angeles")

        # PST before the switch on March 10, PDT after it
        assert schedule[0].send_at == utc(2024, 3, 9, 2, 30)
        assert schedule[1].send_at == utc(2024, 3, 12, 1, 30)

    def test_other_zone(self):
        schedule = get_phase_schedule(date(2024, 1, 1), "America/New_York")

        assert schedule[0].send_at == utc(2024, 1, 1, 23, 30)

    def test_datetime_start_uses_local_calendar_date(self):
        # 03:00 UTC on Jan 2 is still Jan 1 in Los Angeles
        schedule = get_phase_schedule(utc(2024, 1, 2, 3, 0), "America/Los_Angeles")

        assert schedule[0].send_at == utc(2024, 1, 2, 2, 30)

    def test_unknown_zone_gives_no_schedule(self):
        assert get_phase_schedule(date(2024, 1, 1), "Mars/Olympus_Mons") == []

    def test_missing_start_date_gives_no_schedule(self):
        assert get_phase_schedule(None, "America/Los_Angeles") == []

    def test_missing_zone_gives_no_schedule(self):
        assert get_phase_schedule(date(2024, 1, 1), None) == []


# ================================================================
# Cursor decisions
# ================================================================

class TestEvaluateDrip:

    def test_waiting_before_first_phase(self):
        decision = evaluate_drip(LA_SCHEDULE, None, utc(2024, 1, 1, 12, 0))

        assert decision.state == DripState.WAITING
        assert decision.cursor_index == -1
        assert decision.due_phase is None
        assert decision.next_phase.key == "week1a"

    def test_due_at_exact_send_time(self):
        decision = evaluate_drip(LA_SCHEDULE, None, utc(2024, 1, 2, 2, 30))

        assert decision.state == DripState.DUE
        assert decision.due_phase.key == "week1a"
        assert decision.next_phase.key == "week1b"

    def test_waiting_between_phases(self):
        decision = evaluate_drip(LA_SCHEDULE, "week1a", utc(2024, 1, 3, 0, 0))

        assert decision.state == DripState.WAITING
        assert decision.cursor_index == 0
        assert decision.next_phase.key == "week1b"

    def test_only_most_advanced_due_phase_fires(self):
        # Nothing sent yet, three phases already past
        decision = evaluate_drip(LA_SCHEDULE, None, utc(2024, 1, 9, 3, 0))

        assert decision.state == DripState.DUE
        assert decision.due_phase.key == "week2"
        assert decision.next_phase.key == "week3"

    def test_last_phase_due_has_no_next(self):
        decision = evaluate_drip(LA_SCHEDULE, "week4", utc(2024, 2, 15, 0, 0))

        assert decision.state == DripState.DUE
        assert decision.due_phase.key == "week5"
        assert decision.next_phase is None

    def test_exhausted_after_final_phase(self):
        decision = evaluate_drip(LA_SCHEDULE, "week5", utc(2024, 3, 1, 0, 0))

        assert decision.state == DripState.EXHAUSTED
        assert decision.cursor_index == 5

    def test_empty_schedule_is_no_schedule(self):
        decision = evaluate_drip([], None, utc(2024, 1, 9, 3, 0))

        assert decision.state == DripState.NO_SCHEDULE

    def test_naive_now_is_treated_as_utc(self):
        decision = evaluate_drip(LA_SCHEDULE, None, datetime(2024, 1, 2, 2, 30))

        assert decision.state == DripState.DUE

    def test_unknown_cursor_key_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            evaluate_drip(LA_SCHEDULE, "week9", utc(2024, 1, 9, 3, 0))

        assert exc_info.value.code == "UNKNOWN_PHASE"


class TestPhaseHelpers:

    def test_phase_index(self):
        assert phase_index(None) == -1
        assert phase_index("week1a") == 0
        assert phase_index("week5") == 5

    def test_next_after(self):
        assert next_after(LA_SCHEDULE, "week2").key == "week3"
        assert next_after(LA_SCHEDULE, "week5") is None
