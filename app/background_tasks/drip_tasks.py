# app/background_tasks/drip_tasks.py
"""
Background task for automated donor outreach.

- run_athlete_drip(): every DRIP_SWEEP_INTERVAL_MINUTES (default 15)
"""

import logging

from app.db.session import SessionLocal
from app.services.outreach.drip_scheduler import run_drip_sweep

logger = logging.getLogger(__name__)


def run_athlete_drip():
    """
    Background task: send any drip phase that has come due.

    Per-athlete failures are handled inside the sweep; anything escaping it
    (e.g. the database being unreachable) is logged here and the next run
    starts from the same persisted cursors.
    """
    db = SessionLocal()

    try:
        summary = run_drip_sweep(db)
        if summary.athletes_checked:
            logger.info(f"Drip sweep checked {summary.athletes_checked} athletes, sent {summary.sent}")
        return True

    except Exception as e:
        logger.error(f"Error running athlete drip: {e}")
        db.rollback()
        return False

    finally:
        db.close()
