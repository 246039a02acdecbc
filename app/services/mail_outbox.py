# app/services/mail_outbox.py
"""
Sends queued transactional mail (donation receipts) through Resend.

A failed send is recorded on the row and left for an operator; it is not
retried automatically.
"""
import logging
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.email import send_email

logger = logging.getLogger(__name__)


def process_outbox(
    db: Session,
    *,
    limit: Optional[int] = None,
    send_func: Optional[Callable[..., dict]] = None,
) -> Dict[str, int]:
    send_func = send_func or send_email
    queued = crud.mail_outbox.get_queued(db, limit=limit or settings.MAIL_OUTBOX_BATCH_SIZE)
    sent = failed = 0

    for mail in queued:
        result = send_func(
            to_email=mail.to_email,
            subject=mail.subject,
            html=mail.html or f"<p>{mail.text or ''}</p>",
            text=mail.text,
            tags={"category": mail.category},
        )
        if result.get("success"):
            crud.mail_outbox.mark_sent(db, mail=mail, provider_message_id=result.get("id"))
            sent += 1
        else:
            error = str(result.get("error") or "unknown error")
            crud.mail_outbox.mark_failed(db, mail=mail, error_message=error)
            logger.error(f"Outbox mail {mail.id} to {mail.to_email} failed: {error}")
            failed += 1

    if queued:
        logger.info(f"Mail outbox processed: {sent} sent, {failed} failed")
    return {"processed": len(queued), "sent": sent, "failed": failed}
