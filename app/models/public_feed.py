# app/models/public_feed.py
"""
Public, campaign-page records created after a donation is recorded.

Both tables are keyed by the checkout session id so a repeated payment
confirmation collides on the primary key instead of adding a second row.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, func
from sqlalchemy.sql import expression
from app.db.base_class import Base


class DonationComment(Base):
    __tablename__ = "donation_comments"

    id = Column(String(255), primary_key=True)
    campaign_id = Column(String, nullable=False, index=True)
    display_name = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    is_anonymous = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PublicDonor(Base):
    __tablename__ = "public_donors"

    id = Column(String(255), primary_key=True)
    campaign_id = Column(String, nullable=False, index=True)
    athlete_id = Column(String, nullable=True)
    display_name = Column(String(200), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    is_anonymous = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
