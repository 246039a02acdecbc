# app/models/message_event.py
import uuid
from sqlalchemy import Column, String, DateTime, JSON, func
from app.db.base_class import Base


class MessageEvent(Base):
    """Raw delivery callback from the email provider, kept for audit."""

    __tablename__ = "message_events"

    id = Column(String, primary_key=True, default=lambda: f"mev_{uuid.uuid4().hex[:12]}")
    source = Column(String(50), nullable=False)
    event_type = Column(String(50), nullable=False)
    recipient = Column(String(255), nullable=True)

    contact_id = Column(String, nullable=True, index=True)
    athlete_id = Column(String, nullable=True)
    campaign_id = Column(String, nullable=True)
    organization_id = Column(String, nullable=True)

    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
