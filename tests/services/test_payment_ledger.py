"""
Tests for the idempotent payment ledger.

Verifies:
1. A paid checkout is recorded once, no matter how often it is delivered
2. Campaign and athlete aggregates are incremented exactly once
3. Follow-up records (comment, public donor, receipt) are keyed by session id
4. Matching contacts are flipped to donated
5. A failing follow-up never undoes the ledger write
6. Only completed and paid checkout events produce a confirmation
7. Sessions without an id or a positive integer amount are rejected
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from app import crud
from app.core.exceptions import ValidationError
from app.models.contact import Contact
from app.models.donation import Donation
from app.models.mail_outbox import MailOutbox
from app.models.public_feed import DonationComment, PublicDonor
from app.services.ledger.payment_ledger import (
    CheckoutConfirmation,
    apply_payment,
    record_checkout_completed,
)
from app.services.payment.provider_interface import WebhookEvent, WebhookEventType
from tests.utils.fundraiser import create_contact, create_fundraiser


@pytest.fixture
def fundraiser(db):
    org, campaign, athlete = create_fundraiser(db)
    donor_contact = create_contact(db, athlete, "pat@example.com", status="sent")
    other_contact = create_contact(db, athlete, "sam@example.com")
    return org, campaign, athlete, donor_contact, other_contact


def checkout_session(org, campaign, athlete, session_id="sess_123", **overrides):
    session = {
        "id": session_id,
        "object": "checkout.session",
        "amount_total": 5000,
        "currency": "usd",
        "payment_status": "paid",
        "payment_intent": "pi_123",
        "customer": None,
        "customer_details": {"name": "Pat Donor", "email": "Pat@Example.com"},
        "metadata": {
            "campaignId": campaign.id,
            "athleteId": athlete.id,
            "orgId": org.id,
            "donorName": "Pat Donor",
            "donorAnonymous": "false",
            "donorMessage": "  Go Wolves!  ",
        },
    }
    session.update(overrides)
    return session


# ================================================================
# Idempotent recording
# ================================================================

class TestRecordCheckoutCompleted:

    def test_same_session_twice_is_recorded_once(self, db, fundraiser):
        org, campaign, athlete, donor_contact, other_contact = fundraiser
        confirmation = CheckoutConfirmation.from_session(
            checkout_session(org, campaign, athlete), event_id="evt_1"
        )

        first = record_checkout_completed(db, confirmation)
        second = record_checkout_completed(db, confirmation)

        assert first.newly_paid is True
        assert second.newly_paid is False
        assert first.post_steps == {
            "comment": "done",
            "public_donor": "done",
            "contacts": "done",
            "receipt": "done",
        }
        assert second.post_steps["comment"] == "exists"
        assert second.post_steps["public_donor"] == "exists"
        assert second.post_steps["receipt"] == "exists"

        assert db.query(Donation).count() == 1
        assert db.query(DonationComment).count() == 1
        assert db.query(PublicDonor).count() == 1
        assert db.query(MailOutbox).count() == 1

        db.refresh(campaign)
        db.refresh(athlete)
        assert campaign.public_total_raised_cents == 5000
        assert campaign.public_donor_count == 1
        assert campaign.public_last_donation_at is not None
        assert athlete.public_total_raised_cents == 5000
        assert athlete.public_donor_count == 1

    def test_donation_row_contents(self, db, fundraiser):
        org, campaign, athlete, _, _ = fundraiser
        confirmation = CheckoutConfirmation.from_session(
            checkout_session(org, campaign, athlete),
            event_id="evt_1",
            event_type="checkout.session.completed",
        )

        record_checkout_completed(db, confirmation)

        donation = db.get(Donation, "sess_123")
        assert donation.status == "paid"
        assert donation.amount == 5000
        assert donation.currency == "usd"
        assert donation.organization_id == org.id
        assert donation.campaign_id == campaign.id
        assert donation.athlete_id == athlete.id
        assert donation.donor_email == "Pat@Example.com"
        assert donation.stripe_event_id == "evt_1"
        assert donation.stripe_payment_intent == "pi_123"
        assert donation.paid_at is not None

        comment = db.get(DonationComment, "sess_123")
        assert comment.message == "Go Wolves!"
        assert comment.display_name == "Pat Donor"

        receipt = db.get(MailOutbox, "receipt_sess_123")
        assert receipt.to_email == "Pat@Example.com"
        assert receipt.subject == "Thank you for your donation!"
        assert receipt.status == "queued"
        assert "$50.00" in receipt.html

    def test_matching_contacts_marked_donated(self, db, fundraiser):
        org, campaign, athlete, donor_contact, other_contact = fundraiser
        confirmation = CheckoutConfirmation.from_session(checkout_session(org, campaign, athlete))

        record_checkout_completed(db, confirmation)

        donor = db.get(Contact, donor_contact.id)
        assert donor.status == "donated"
        assert donor.donated_at is not None
        assert db.get(Contact, other_contact.id).status == "draft"

    def test_pending_row_is_flipped_to_paid(self, db, fundraiser):
        org, campaign, athlete, _, _ = fundraiser
        db.add(Donation(id="sess_123", amount=5000, status="pending"))
        db.commit()
        confirmation = CheckoutConfirmation.from_session(checkout_session(org, campaign, athlete))

        assert apply_payment(db, confirmation) is True
        assert apply_payment(db, confirmation) is False

        assert db.get(Donation, "sess_123").status == "paid"
        db.refresh(campaign)
        assert campaign.public_total_raised_cents == 5000

    def test_anonymous_donor_without_message(self, db, fundraiser):
        org, campaign, athlete, _, _ = fundraiser
        session = checkout_session(org, campaign, athlete)
        session["metadata"].update({"donorAnonymous": "true", "donorMessage": ""})
        confirmation = CheckoutConfirmation.from_session(session)

        result = record_checkout_completed(db, confirmation)

        assert "comment" not in result.post_steps
        donor = db.get(PublicDonor, "sess_123")
        assert donor.display_name == "Anonymous"
        assert donor.is_anonymous is True

    def test_no_email_skips_contacts_and_receipt(self, db, fundraiser):
        org, campaign, athlete, _, _ = fundraiser
        session = checkout_session(org, campaign, athlete, customer_details={})
        confirmation = CheckoutConfirmation.from_session(session)

        result = record_checkout_completed(db, confirmation)

        assert set(result.post_steps) == {"comment", "public_donor"}
        assert db.query(MailOutbox).count() == 0


# ================================================================
# Failure isolation
# ================================================================

class TestPostStepFailures:

    def test_failed_step_does_not_undo_payment(self, db, fundraiser):
        org, campaign, athlete, donor_contact, _ = fundraiser
        confirmation = CheckoutConfirmation.from_session(checkout_session(org, campaign, athlete))

        with patch.object(
            crud.public_donor, "create_if_absent", side_effect=RuntimeError("db down")
        ):
            result = record_checkout_completed(db, confirmation)

        assert result.newly_paid is True
        assert result.post_steps["public_donor"] == "failed"
        assert result.post_steps["receipt"] == "done"
        assert db.get(Donation, "sess_123").status == "paid"
        assert db.get(Contact, donor_contact.id).status == "donated"

        # Redelivery fills in the missing record without touching the totals
        retry = record_checkout_completed(db, confirmation)
        assert retry.newly_paid is False
        assert retry.post_steps["public_donor"] == "done"
        db.refresh(campaign)
        assert campaign.public_donor_count == 1

    def test_exhausted_time_budget_skips_follow_ups(self, db, fundraiser):
        org, campaign, athlete, _, _ = fundraiser
        confirmation = CheckoutConfirmation.from_session(checkout_session(org, campaign, athlete))

        result = record_checkout_completed(db, confirmation, timeout_seconds=-1)

        assert result.newly_paid is True
        assert set(result.post_steps.values()) == {"skipped"}
        assert db.get(Donation, "sess_123").status == "paid"


# ================================================================
# Confirmation parsing
# ================================================================

def webhook_event(event_type, data, raw_type=None):
    return WebhookEvent(
        event_id="evt_1",
        event_type=event_type,
        raw_type=raw_type or event_type.value,
        data=data,
        created_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
        livemode=False,
    )


class TestCheckoutConfirmation:

    def test_from_paid_completed_event(self):
        event = webhook_event(
            WebhookEventType.CHECKOUT_SESSION_COMPLETED,
            {
                "id": "sess_9",
                "amount_total": 2500,
                "currency": "USD",
                "payment_status": "paid",
                "metadata": {"campaignId": "cmp_1", "orgId": "org_1", "donorName": "Lee"},
            },
        )

        confirmation = CheckoutConfirmation.from_webhook_event(event)

        assert confirmation.session_id == "sess_9"
        assert confirmation.amount_cents == 2500
        assert confirmation.currency == "usd"
        assert confirmation.organization_id == "org_1"
        assert confirmation.athlete_id is None
        assert confirmation.donor_name == "Lee"
        assert confirmation.event_type == "checkout.session.completed"

    def test_unpaid_session_is_ignored(self):
        event = webhook_event(
            WebhookEventType.CHECKOUT_SESSION_COMPLETED,
            {"id": "sess_9", "amount_total": 2500, "payment_status": "unpaid"},
        )

        assert CheckoutConfirmation.from_webhook_event(event) is None

    def test_other_event_types_are_ignored(self):
        event = webhook_event(
            WebhookEventType.PAYMENT_INTENT_SUCCEEDED,
            {"id": "pi_1", "payment_status": "paid"},
        )

        assert CheckoutConfirmation.from_webhook_event(event) is None

    def test_long_message_is_trimmed(self):
        confirmation = CheckoutConfirmation.from_session(
            {"id": "sess_1", "amount_total": 100, "metadata": {"donorMessage": "x" * 800}}
        )

        assert len(confirmation.donor_message) == 500

    @pytest.mark.parametrize(
        "session",
        [
            {"amount_total": 2500},
            {"id": "", "amount_total": 2500},
            {"id": "sess_1", "amount_total": "abc"},
            {"id": "sess_1", "amount_total": 0},
            {"id": "sess_1"},
        ],
    )
    def test_unusable_session_is_rejected(self, session):
        with pytest.raises(ValidationError):
            CheckoutConfirmation.from_session(session)
