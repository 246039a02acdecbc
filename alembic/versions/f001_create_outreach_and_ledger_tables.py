"""create outreach and ledger tables

Revision ID: f001_outreach_ledger
Revises:
Create Date: 2026-10-19 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'f001_outreach_ledger'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _aggregates():
    return [
        sa.Column('public_total_raised_cents', sa.Integer(), server_default='0', nullable=False),
        sa.Column('public_donor_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('public_last_donation_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """
    Create the outreach and donation ledger schema.

    Tables:
    1. organizations, campaigns, athletes, athlete_contacts
    2. donations (ledger, keyed by checkout session id) and its public feed
    3. outreach_messages and message_events (append-only logs)
    4. mail_outbox and donation_rollups
    """
    op.create_table(
        'organizations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('time_zone', sa.String(length=64), nullable=True),
        sa.Column('drip_global_enabled', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('donor_invite_template', sa.Text(), nullable=True),
        sa.Column('donor_invite_templates', sa.JSON(), nullable=True),
        sa.Column('donor_invite_subjects', sa.JSON(), nullable=True),
        sa.Column('frontend_url', sa.String(length=500), nullable=True),
        sa.Column('config_version', sa.Integer(), server_default='1', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'campaigns',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('team_name', sa.String(length=255), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        *_aggregates(),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_campaigns_organization_id', 'campaigns', ['organization_id'])

    op.create_table(
        'athletes',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('campaign_id', sa.String(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('donor_invite_templates', sa.JSON(), nullable=True),
        sa.Column('drip_auto_send_enabled', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('drip_last_phase_sent', sa.String(length=20), nullable=True),
        sa.Column('drip_last_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('drip_next_phase', sa.String(length=20), nullable=True),
        sa.Column('drip_next_send_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('drip_state', sa.String(length=20), nullable=True),
        *_aggregates(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_athletes_organization_id', 'athletes', ['organization_id'])
    op.create_index('ix_athletes_campaign_id', 'athletes', ['campaign_id'])
    op.create_index('ix_athletes_drip_auto_send_enabled', 'athletes', ['drip_auto_send_enabled'])

    op.create_table(
        'athlete_contacts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('athlete_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('email_lower', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='draft', nullable=False),
        sa.Column('last_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_phase_sent', sa.String(length=20), nullable=True),
        sa.Column('donated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivery_status', sa.String(length=20), nullable=True),
        sa.Column('last_delivery_event', sa.String(length=50), nullable=True),
        sa.Column('last_delivery_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_delivery_error', sa.Text(), nullable=True),
        sa.Column('bounce_count', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['athlete_id'], ['athletes.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_athlete_contacts_organization_id', 'athlete_contacts', ['organization_id'])
    op.create_index('ix_athlete_contacts_athlete_id', 'athlete_contacts', ['athlete_id'])
    op.create_index(
        'ix_athlete_contacts_org_athlete_email',
        'athlete_contacts',
        ['organization_id', 'athlete_id', 'email_lower'],
    )

    op.create_table(
        'donations',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=True),
        sa.Column('campaign_id', sa.String(), nullable=True),
        sa.Column('athlete_id', sa.String(), nullable=True),
        sa.Column('donor_name', sa.String(length=200), nullable=True),
        sa.Column('donor_email', sa.String(length=255), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), server_default='usd', nullable=False),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('stripe_event_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_event_type', sa.String(length=100), nullable=True),
        sa.Column('stripe_payment_intent', sa.String(length=255), nullable=True),
        sa.Column('stripe_customer', sa.String(length=255), nullable=True),
        sa.Column('stripe_livemode', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_donations_organization_id', 'donations', ['organization_id'])
    op.create_index('ix_donations_campaign_id', 'donations', ['campaign_id'])
    op.create_index('ix_donations_athlete_id', 'donations', ['athlete_id'])
    op.create_index('ix_donations_created_at', 'donations', ['created_at'])

    for table in ('donation_comments', 'public_donors'):
        columns = [
            sa.Column('id', sa.String(length=255), nullable=False),
            sa.Column('campaign_id', sa.String(), nullable=False),
        ]
        if table == 'public_donors':
            columns.append(sa.Column('athlete_id', sa.String(), nullable=True))
        columns.append(sa.Column('display_name', sa.String(length=200), nullable=False))
        if table == 'donation_comments':
            columns.append(sa.Column('message', sa.Text(), nullable=False))
        columns += [
            sa.Column('amount_cents', sa.Integer(), nullable=False),
            sa.Column('is_anonymous', sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        ]
        op.create_table(table, *columns)
        op.create_index(f'ix_{table}_campaign_id', table, ['campaign_id'])

    op.create_table(
        'outreach_messages',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('athlete_id', sa.String(), nullable=False),
        sa.Column('campaign_id', sa.String(), nullable=True),
        sa.Column('contact_id', sa.String(), nullable=False),
        sa.Column('to_email', sa.String(length=255), nullable=False),
        sa.Column('to_name', sa.String(length=200), nullable=True),
        sa.Column('subject', sa.String(length=500), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('channel', sa.String(length=20), server_default='email', nullable=False),
        sa.Column('phase', sa.String(length=20), nullable=False),
        sa.Column('is_automated', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='sent', nullable=False),
        sa.Column('provider_message_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('organization_id', 'athlete_id', 'campaign_id', 'contact_id'):
        op.create_index(f'ix_outreach_messages_{column}', 'outreach_messages', [column])

    op.create_table(
        'message_events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('recipient', sa.String(length=255), nullable=True),
        sa.Column('contact_id', sa.String(), nullable=True),
        sa.Column('athlete_id', sa.String(), nullable=True),
        sa.Column('campaign_id', sa.String(), nullable=True),
        sa.Column('organization_id', sa.String(), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_message_events_contact_id', 'message_events', ['contact_id'])

    op.create_table(
        'mail_outbox',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('to_email', sa.String(length=255), nullable=False),
        sa.Column('subject', sa.String(length=500), nullable=False),
        sa.Column('html', sa.Text(), nullable=True),
        sa.Column('text', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='queued', nullable=False),
        sa.Column('attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('provider_message_id', sa.String(length=255), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_mail_outbox_status', 'mail_outbox', ['status'])

    op.create_table(
        'donation_rollups',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=False),
        sa.Column('date_key', sa.String(length=8), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('donation_count', sa.Integer(), nullable=False),
        sa.Column('by_campaign', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_donation_rollups_organization_id', 'donation_rollups', ['organization_id'])


def downgrade() -> None:
    """Drop the outreach and ledger schema."""
    for table in (
        'donation_rollups',
        'mail_outbox',
        'message_events',
        'outreach_messages',
        'public_donors',
        'donation_comments',
        'donations',
        'athlete_contacts',
        'athletes',
        'campaigns',
        'organizations',
    ):
        op.drop_table(table)
