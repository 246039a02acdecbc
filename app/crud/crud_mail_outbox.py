# app/crud/crud_mail_outbox.py
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.mail_outbox import MailOutbox
from app.utils.time_utils import utcnow


class CRUDMailOutbox(CRUDBase[MailOutbox, BaseModel, BaseModel]):

    def enqueue(
        self,
        db: Session,
        *,
        id: str,
        to_email: str,
        subject: str,
        html: Optional[str] = None,
        text: Optional[str] = None,
        category: Optional[str] = None,
    ) -> MailOutbox:
        """Queue a message at most once. Raises DuplicateIdempotentWrite on a repeat id."""
        return self.create_if_absent(
            db,
            db_obj=MailOutbox(
                id=id,
                to_email=to_email,
                subject=subject,
                html=html,
                text=text,
                category=category,
                status="queued",
            ),
        )

    def get_queued(self, db: Session, *, limit: int = 50) -> List[MailOutbox]:
        return (
            db.query(self.model)
            .filter(self.model.status == "queued")
            .order_by(self.model.created_at)
            .limit(limit)
            .all()
        )

    def mark_sent(self, db: Session, *, mail: MailOutbox, provider_message_id: Optional[str]):
        mail.status = "sent"
        mail.attempts = (mail.attempts or 0) + 1
        mail.sent_at = utcnow()
        mail.provider_message_id = provider_message_id
        mail.error_message = None
        db.add(mail)
        db.commit()
        return mail

    def mark_failed(self, db: Session, *, mail: MailOutbox, error_message: str):
        mail.status = "failed"
        mail.attempts = (mail.attempts or 0) + 1
        mail.error_message = error_message
        db.add(mail)
        db.commit()
        return mail


mail_outbox = CRUDMailOutbox(MailOutbox)
