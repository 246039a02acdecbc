# app/background_tasks/rollup_tasks.py
"""
Background task for write-once daily donation rollups.

- run_daily_donation_rollups(): daily at 02:00 in ROLLUP_TIME_ZONE
"""

import logging

from app.db.session import SessionLocal
from app.services.reporting.rollups import run_daily_rollups

logger = logging.getLogger(__name__)


def run_daily_donation_rollups():
    """Background task: roll up yesterday's paid donations per organization."""
    db = SessionLocal()

    try:
        run_daily_rollups(db)
        return True

    except Exception as e:
        logger.error(f"Error computing daily donation rollups: {e}")
        db.rollback()
        return False

    finally:
        db.close()
