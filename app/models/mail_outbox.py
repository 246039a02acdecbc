# app/models/mail_outbox.py
from sqlalchemy import Column, String, DateTime, Integer, Text, func
from app.db.base_class import Base


class MailOutbox(Base):
    """
    Queued transactional email (donation receipts).

    Ids are deterministic (e.g. ``receipt_<session id>``) so that queueing the
    same message twice fails on the primary key.
    """

    __tablename__ = "mail_outbox"

    id = Column(String(255), primary_key=True)
    to_email = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    html = Column(Text, nullable=True)
    text = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)

    status = Column(String(20), nullable=False, default="queued", server_default="queued", index=True)
    # Values: 'queued', 'sent', 'failed'
    attempts = Column(Integer, nullable=False, default=0, server_default="0")
    provider_message_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)
