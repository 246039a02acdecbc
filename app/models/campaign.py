# app/models/campaign.py
import uuid
from sqlalchemy import Column, String, Date, DateTime, Integer, ForeignKey, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(String, primary_key=True, default=lambda: f"cmp_{uuid.uuid4().hex[:12]}")
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    team_name = Column(String(255), nullable=True)

    # start_date anchors the drip schedule; it is not changed once phases fire
    start_date = Column(Date, nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    # Aggregates, only written by the payment ledger transaction
    public_total_raised_cents = Column(Integer, nullable=False, default=0, server_default="0")
    public_donor_count = Column(Integer, nullable=False, default=0, server_default="0")
    public_last_donation_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    organization = relationship("Organization", back_populates="campaigns")
    athletes = relationship("Athlete", back_populates="campaign")
