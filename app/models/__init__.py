# app/models/__init__.py
# Import all models so SQLAlchemy can resolve relationships and
# Base.metadata knows every table (Alembic autogenerate, tests).

from app.db.base_class import Base
from app.models.organization import Organization
from app.models.campaign import Campaign
from app.models.athlete import Athlete
from app.models.contact import Contact, TERMINAL_CONTACT_STATUSES

# Ledger models
from app.models.donation import Donation
from app.models.public_feed import DonationComment, PublicDonor
from app.models.donation_rollup import DonationRollup

# Outreach models
from app.models.outreach_message import OutreachMessage
from app.models.message_event import MessageEvent
from app.models.mail_outbox import MailOutbox
