# app/api/v1/endpoints/webhooks.py
"""
Webhook endpoints for the payment and email providers.

SECURITY NOTES:
- Stripe signatures are verified before the body is parsed
- Events are processed idempotently (the checkout session id is the key)
- A failed ledger write returns 500 and Stripe redelivers; failures in the
  follow-up steps are logged and still acknowledged with 200
"""
import hmac
import json
import logging
from typing import Optional
from fastapi import APIRouter, Request, HTTPException, Depends, Header
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core.config import settings
from app.core.exceptions import SignatureInvalid, ValidationError
from app.services.ledger.payment_ledger import CheckoutConfirmation, record_checkout_completed
from app.services.outreach.delivery_events import ingest_delivery_event, parse_delivery_event
from app.services.payment.provider_interface import WebhookEvent
from app.services.payment.provider_factory import get_payment_provider
from app.services.payment.providers.stripe_provider import PaymentError

logger = logging.getLogger(__name__)

router = APIRouter()


def _verified_event(provider, body: bytes, signature: str) -> WebhookEvent:
    """Parse the body only after its signature checks out."""
    if not provider.verify_webhook_signature(body, signature):
        raise SignatureInvalid("Stripe signature verification failed")
    return provider.parse_webhook_event(body)


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
):
    """
    Handle Stripe webhook events.

    Only `checkout.session.completed` with `payment_status == "paid"` changes
    anything; every other verified event is acknowledged and ignored.
    """
    # Get raw body
    body = await request.body()

    if not stripe_signature:
        logger.warning("Webhook received without Stripe-Signature header")
        raise HTTPException(status_code=400, detail="Missing signature")

    client_ip = request.client.host if request.client else None

    try:
        provider = get_payment_provider("stripe")
    except ValueError as e:
        logger.error(f"Stripe webhook received but provider unavailable: {e}")
        raise HTTPException(status_code=500, detail="Payment provider not configured")

    try:
        event = _verified_event(provider, body, stripe_signature)
    except SignatureInvalid:
        logger.warning(f"Invalid webhook signature from {client_ip}")
        raise HTTPException(status_code=400, detail="Invalid signature")
    except PaymentError as e:
        raise HTTPException(status_code=400, detail=e.message)

    logger.info(f"Stripe webhook received: type={event.raw_type} id={event.event_id}")

    try:
        confirmation = CheckoutConfirmation.from_webhook_event(event)
    except ValidationError as e:
        logger.warning(f"Malformed checkout in event {event.event_id}: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)
    if confirmation is None:
        return {"received": True, "status": "ignored"}

    try:
        result = record_checkout_completed(db, confirmation)
    except Exception as e:
        logger.exception(f"Error recording donation for event {event.event_id}: {e}")
        # A non-2xx makes Stripe redeliver, which the ledger absorbs
        raise HTTPException(status_code=500, detail="Webhook handler error")

    return {
        "received": True,
        "status": "recorded" if result.newly_paid else "already_recorded",
        "session_id": result.session_id,
    }


def _email_webhook_secret_ok(provided: Optional[str]) -> bool:
    expected = settings.EMAIL_EVENTS_WEBHOOK_SECRET
    if not expected:
        return True
    return hmac.compare_digest(expected, provided or "")


@router.post("/email-events")
async def email_events_webhook(
    request: Request,
    x_webhook_secret: str = Header(None, alias="X-Webhook-Secret"),
    db: Session = Depends(get_db),
):
    """
    Handle delivery events (delivered, bounced, complained) from Resend.

    Bounces and complaints suppress the contact from future outreach.
    """
    if not _email_webhook_secret_ok(x_webhook_secret):
        logger.warning("Email event webhook with bad secret")
        raise HTTPException(status_code=401, detail="Invalid webhook secret")

    try:
        payload = json.loads(await request.body())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")

    event = parse_delivery_event(payload)
    if event is None:
        raise HTTPException(status_code=400, detail="Invalid payload")

    if not event.recipient:
        return {"status": "no_recipient"}

    try:
        contact = ingest_delivery_event(db, event)
    except Exception as e:
        db.rollback()
        logger.error(f"Email event webhook failed for {event.recipient}: {e}")
        return {"status": "ignored"}

    return {"status": "ok", "contact_id": contact.id if contact else None}
