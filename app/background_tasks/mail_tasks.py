# app/background_tasks/mail_tasks.py
"""
Background task for the transactional mail outbox (donation receipts).

- send_queued_mail(): every minute
"""

import logging

from app.db.session import SessionLocal
from app.services.mail_outbox import process_outbox

logger = logging.getLogger(__name__)


def send_queued_mail():
    """Background task: send queued outbox messages."""
    db = SessionLocal()

    try:
        process_outbox(db)
        return True

    except Exception as e:
        logger.error(f"Error sending queued mail: {e}")
        db.rollback()
        return False

    finally:
        db.close()
