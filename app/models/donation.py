# app/models/donation.py
from sqlalchemy import Column, String, Boolean, DateTime, Integer, func
from sqlalchemy.sql import expression
from app.db.base_class import Base


class Donation(Base):
    """
    Ledger entry for one confirmed checkout.

    The primary key is the Stripe Checkout Session id supplied by the
    payment confirmation; it is never generated locally.
    """

    __tablename__ = "donations"

    id = Column(String(255), primary_key=True)
    organization_id = Column(String, nullable=True, index=True)
    campaign_id = Column(String, nullable=True, index=True)
    athlete_id = Column(String, nullable=True, index=True)

    donor_name = Column(String(200), nullable=True)
    donor_email = Column(String(255), nullable=True)

    amount = Column(Integer, nullable=False)  # minor units (cents)
    currency = Column(String(3), nullable=False, default="usd", server_default="usd")

    status = Column(String(20), nullable=False, default="pending", server_default="pending")
    # Values: 'pending', 'paid'

    # Source event
    stripe_event_id = Column(String(255), nullable=True)
    stripe_event_type = Column(String(100), nullable=True)
    stripe_payment_intent = Column(String(255), nullable=True)
    stripe_customer = Column(String(255), nullable=True)
    stripe_livemode = Column(Boolean, nullable=False, default=False, server_default=expression.false())

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"
