# app/models/outreach_message.py
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Text, func
from sqlalchemy.sql import expression
from app.db.base_class import Base


class OutreachMessage(Base):
    """Append-only audit record of one outreach email handed to the provider."""

    __tablename__ = "outreach_messages"

    id = Column(String, primary_key=True, default=lambda: f"msg_{uuid.uuid4().hex[:12]}")
    organization_id = Column(String, nullable=False, index=True)
    athlete_id = Column(String, nullable=False, index=True)
    campaign_id = Column(String, nullable=True, index=True)
    contact_id = Column(String, nullable=False, index=True)

    to_email = Column(String(255), nullable=False)
    to_name = Column(String(200), nullable=True)
    subject = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)

    channel = Column(String(20), nullable=False, default="email", server_default="email")
    phase = Column(String(20), nullable=False)
    is_automated = Column(Boolean, nullable=False, default=False, server_default=expression.false())

    status = Column(String(20), nullable=False, default="sent", server_default="sent")
    provider_message_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
