# app/crud/__init__.py

from .crud_athlete import athlete, campaign, organization
from .crud_contact import contact
from .crud_donation import donation
from .crud_donation_rollup import donation_rollup
from .crud_mail_outbox import mail_outbox
from .crud_message_event import message_event
from .crud_public_feed import donation_comment, public_donor
