# app/models/athlete.py
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Integer, JSON, ForeignKey, func
from sqlalchemy.sql import expression
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class Athlete(Base):
    __tablename__ = "athletes"

    id = Column(String, primary_key=True, default=lambda: f"ath_{uuid.uuid4().hex[:12]}")
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    campaign_id = Column(String, ForeignKey("campaigns.id"), nullable=True, index=True)

    name = Column(String(255), nullable=True)

    # Athlete-specific per-phase body overrides (phase key -> text)
    donor_invite_templates = Column(JSON, nullable=True)

    # Drip cursor. Only the scheduler writes these.
    drip_auto_send_enabled = Column(
        Boolean, nullable=False, default=False, server_default=expression.false(), index=True
    )
    drip_last_phase_sent = Column(String(20), nullable=True)
    drip_last_sent_at = Column(DateTime(timezone=True), nullable=True)
    drip_next_phase = Column(String(20), nullable=True)
    drip_next_send_at = Column(DateTime(timezone=True), nullable=True)
    drip_state = Column(String(20), nullable=True)
    # Values: 'no_schedule', 'waiting', 'due', 'exhausted'

    # Aggregates, only written by the payment ledger transaction
    public_total_raised_cents = Column(Integer, nullable=False, default=0, server_default="0")
    public_donor_count = Column(Integer, nullable=False, default=0, server_default="0")
    public_last_donation_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    campaign = relationship("Campaign", back_populates="athletes")
    contacts = relationship("Contact", back_populates="athlete")
