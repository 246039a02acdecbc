# app/services/ledger/payment_ledger.py
"""
Idempotent payment ledger.

A confirmed checkout is recorded in two stages:

1. One transaction flips the Donation row (keyed by the checkout session id)
   to paid and increments the campaign and athlete aggregates. A repeated
   confirmation finds the row already paid and changes nothing.
2. Best-effort follow-ups run afterwards, each on its own: the public
   comment, the public donor entry, the contact "donated" flip and the
   receipt email. Each of them is keyed by the session id as well, so a
   redelivered confirmation cannot duplicate them, and none of them can
   undo the ledger write.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.email import render_receipt_html
from app.core.exceptions import DuplicateIdempotentWrite, ValidationError
from app.models.athlete import Athlete
from app.models.campaign import Campaign
from app.models.donation import Donation
from app.models.public_feed import DonationComment, PublicDonor
from app.services.payment.provider_interface import WebhookEvent, WebhookEventType
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

MAX_DONOR_MESSAGE_LENGTH = 500
RECEIPT_SUBJECT = "Thank you for your donation!"


@dataclass(frozen=True)
class CheckoutConfirmation:
    """A paid checkout session, flattened from the provider payload."""

    session_id: str
    amount_cents: int
    currency: str = "usd"
    organization_id: Optional[str] = None
    campaign_id: Optional[str] = None
    athlete_id: Optional[str] = None
    donor_name: str = "Anonymous"
    donor_email: Optional[str] = None
    donor_message: str = ""
    donor_anonymous: bool = False
    event_id: Optional[str] = None
    event_type: Optional[str] = None
    payment_intent: Optional[str] = None
    customer: Optional[str] = None
    livemode: bool = False

    @property
    def display_name(self) -> str:
        if self.donor_anonymous:
            return "Anonymous"
        return self.donor_name or "Supporter"

    @classmethod
    def from_session(
        cls,
        session: Dict[str, Any],
        *,
        event_id: Optional[str] = None,
        event_type: Optional[str] = None,
        livemode: bool = False,
    ) -> "CheckoutConfirmation":
        """Raises ValidationError when the session id or amount is unusable."""
        session_id = session.get("id")
        if not isinstance(session_id, str) or not session_id.strip():
            raise ValidationError("Checkout session has no id")
        amount = session.get("amount_total")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(
                f"Checkout session {session_id} has an invalid amount_total: {amount!r}"
            )

        metadata = session.get("metadata") or {}
        customer_details = session.get("customer_details") or {}
        message = metadata.get("donorMessage") or ""
        if not isinstance(message, str):
            message = ""
        return cls(
            session_id=session_id,
            amount_cents=amount,
            currency=(session.get("currency") or "usd").lower(),
            organization_id=metadata.get("orgId") or None,
            campaign_id=metadata.get("campaignId") or None,
            athlete_id=metadata.get("athleteId") or None,
            donor_name=customer_details.get("name") or metadata.get("donorName") or "Anonymous",
            donor_email=customer_details.get("email") or session.get("customer_email") or None,
            donor_message=message.strip()[:MAX_DONOR_MESSAGE_LENGTH],
            donor_anonymous=metadata.get("donorAnonymous") == "true",
            event_id=event_id,
            event_type=event_type,
            payment_intent=session.get("payment_intent"),
            customer=session.get("customer"),
            livemode=livemode,
        )

    @classmethod
    def from_webhook_event(cls, event: WebhookEvent) -> Optional["CheckoutConfirmation"]:
        """Returns None unless the event is a completed and paid checkout."""
        if event.event_type != WebhookEventType.CHECKOUT_SESSION_COMPLETED:
            return None
        if event.data.get("payment_status") != "paid":
            return None
        return cls.from_session(
            event.data,
            event_id=event.event_id,
            event_type=event.raw_type,
            livemode=event.livemode,
        )


@dataclass
class LedgerResult:
    session_id: str
    newly_paid: bool
    post_steps: Dict[str, str] = field(default_factory=dict)


def _increment_aggregates(db: Session, model, row_id: str, amount_cents: int, now):
    db.execute(
        update(model)
        .where(model.id == row_id)
        .values(
            public_total_raised_cents=model.public_total_raised_cents + amount_cents,
            public_donor_count=model.public_donor_count + 1,
            public_last_donation_at=now,
        )
        .execution_options(synchronize_session=False)
    )


def apply_payment(db: Session, confirmation: CheckoutConfirmation) -> bool:
    """
    Record the paid transition. Returns True when this call made it and
    False when the donation was already paid.
    """
    try:
        donation = crud.donation.get_for_update(db, id=confirmation.session_id)
        if donation is not None and donation.is_paid:
            db.rollback()
            return False

        now = utcnow()
        if donation is None:
            donation = Donation(id=confirmation.session_id, created_at=now)
            db.add(donation)

        donation.organization_id = confirmation.organization_id
        donation.campaign_id = confirmation.campaign_id
        donation.athlete_id = confirmation.athlete_id
        donation.donor_name = confirmation.donor_name
        donation.donor_email = confirmation.donor_email
        donation.amount = confirmation.amount_cents
        donation.currency = confirmation.currency
        donation.status = "paid"
        donation.paid_at = now
        donation.stripe_event_id = confirmation.event_id
        donation.stripe_event_type = confirmation.event_type
        donation.stripe_payment_intent = confirmation.payment_intent
        donation.stripe_customer = confirmation.customer
        donation.stripe_livemode = confirmation.livemode

        if confirmation.campaign_id:
            _increment_aggregates(db, Campaign, confirmation.campaign_id, confirmation.amount_cents, now)
        if confirmation.athlete_id:
            _increment_aggregates(db, Athlete, confirmation.athlete_id, confirmation.amount_cents, now)

        db.commit()
        return True
    except IntegrityError:
        # Another delivery of the same session inserted the row first
        db.rollback()
        logger.info(f"Donation {confirmation.session_id} recorded concurrently, skipping")
        return False
    except Exception:
        db.rollback()
        raise


def _create_comment(db: Session, confirmation: CheckoutConfirmation):
    crud.donation_comment.create_if_absent(
        db,
        db_obj=DonationComment(
            id=confirmation.session_id,
            campaign_id=confirmation.campaign_id,
            display_name=confirmation.display_name,
            message=confirmation.donor_message,
            amount_cents=confirmation.amount_cents,
            is_anonymous=confirmation.donor_anonymous,
        ),
    )


def _create_public_donor(db: Session, confirmation: CheckoutConfirmation):
    crud.public_donor.create_if_absent(
        db,
        db_obj=PublicDonor(
            id=confirmation.session_id,
            campaign_id=confirmation.campaign_id,
            athlete_id=confirmation.athlete_id,
            display_name=confirmation.display_name,
            amount_cents=confirmation.amount_cents,
            is_anonymous=confirmation.donor_anonymous,
        ),
    )


def _mark_contacts_donated(db: Session, confirmation: CheckoutConfirmation):
    changed = crud.contact.mark_donated(
        db,
        org_id=confirmation.organization_id or "",
        athlete_id=confirmation.athlete_id,
        email=confirmation.donor_email,
    )
    logger.info(f"Marked {changed} contacts donated for session {confirmation.session_id}")


def _queue_receipt(db: Session, confirmation: CheckoutConfirmation):
    crud.mail_outbox.enqueue(
        db,
        id=f"receipt_{confirmation.session_id}",
        to_email=confirmation.donor_email,
        subject=RECEIPT_SUBJECT,
        html=render_receipt_html(confirmation.display_name, confirmation.amount_cents),
        text=f"We received your donation of ${confirmation.amount_cents / 100:.2f}. Thank you!",
        category="receipt",
    )


def run_post_steps(
    db: Session,
    confirmation: CheckoutConfirmation,
    *,
    deadline: Optional[float] = None,
) -> Dict[str, str]:
    """
    Run the follow-up writes, each independently.

    Returns step name -> "done" | "exists" | "failed" | "skipped".
    ``deadline`` is a time.monotonic() value; steps not started by then are
    skipped.
    """
    steps: Dict[str, Callable[[Session, CheckoutConfirmation], None]] = {}
    if confirmation.campaign_id and confirmation.donor_message:
        steps["comment"] = _create_comment
    if confirmation.campaign_id:
        steps["public_donor"] = _create_public_donor
    if confirmation.donor_email and confirmation.athlete_id:
        steps["contacts"] = _mark_contacts_donated
    if confirmation.donor_email:
        steps["receipt"] = _queue_receipt

    results: Dict[str, str] = {}
    for name, step in steps.items():
        if deadline is not None and time.monotonic() > deadline:
            logger.warning(
                f"Webhook time budget exhausted for {confirmation.session_id}, skipping {name}"
            )
            results[name] = "skipped"
            continue
        try:
            step(db, confirmation)
            results[name] = "done"
        except DuplicateIdempotentWrite as e:
            logger.info(f"{e.message}, skipping")
            results[name] = "exists"
        except Exception as e:
            db.rollback()
            logger.exception(
                f"Post-payment step {name} failed for {confirmation.session_id}: {e}"
            )
            results[name] = "failed"
    return results


def record_checkout_completed(
    db: Session,
    confirmation: CheckoutConfirmation,
    *,
    timeout_seconds: Optional[float] = None,
) -> LedgerResult:
    """Apply one paid checkout confirmation. Safe to call any number of times."""
    started = time.monotonic()
    budget = timeout_seconds if timeout_seconds is not None else settings.WEBHOOK_TIMEOUT_SECONDS

    newly_paid = apply_payment(db, confirmation)
    if newly_paid:
        logger.info(
            f"Donation {confirmation.session_id} recorded: {confirmation.amount_cents} "
            f"{confirmation.currency} for campaign {confirmation.campaign_id}"
        )
    else:
        logger.info(f"Donation {confirmation.session_id} already paid")

    post_steps = run_post_steps(db, confirmation, deadline=started + budget)
    return LedgerResult(
        session_id=confirmation.session_id,
        newly_paid=newly_paid,
        post_steps=post_steps,
    )
