# app/models/contact.py
import uuid
from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, Index, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base

TERMINAL_CONTACT_STATUSES = ("donated", "bounced", "complained")


class Contact(Base):
    __tablename__ = "athlete_contacts"
    __table_args__ = (
        Index("ix_athlete_contacts_org_athlete_email", "organization_id", "athlete_id", "email_lower"),
    )

    id = Column(String, primary_key=True, default=lambda: f"ctc_{uuid.uuid4().hex[:12]}")
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    athlete_id = Column(String, ForeignKey("athletes.id"), nullable=False, index=True)

    name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=False)
    email_lower = Column(String(255), nullable=False)

    status = Column(String(20), nullable=False, default="draft", server_default="draft")
    # Values: 'draft', 'sent', 'bounced', 'complained', 'donated'
    # donated/bounced/complained are terminal

    last_sent_at = Column(DateTime(timezone=True), nullable=True)
    last_phase_sent = Column(String(20), nullable=True)
    donated_at = Column(DateTime(timezone=True), nullable=True)

    # Delivery callbacks
    delivery_status = Column(String(20), nullable=True)
    last_delivery_event = Column(String(50), nullable=True)
    last_delivery_at = Column(DateTime(timezone=True), nullable=True)
    last_delivery_error = Column(Text, nullable=True)
    bounce_count = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    athlete = relationship("Athlete", back_populates="contacts")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CONTACT_STATUSES
