# app/models/donation_rollup.py
from sqlalchemy import Column, String, DateTime, Integer, JSON, func
from app.db.base_class import Base


class DonationRollup(Base):
    """Write-once daily totals per organization, id ``<org id>_<YYYYMMDD>``."""

    __tablename__ = "donation_rollups"

    id = Column(String(255), primary_key=True)
    organization_id = Column(String, nullable=False, index=True)
    date_key = Column(String(8), nullable=False)
    total_amount_cents = Column(Integer, nullable=False)
    donation_count = Column(Integer, nullable=False)
    by_campaign = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
